from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.policy import Action, Resource, enforce
from ..crud.users import create_user, delete_user, list_users, require_user, update_user
from ..db.session import get_db
from ..deps.auth import gate
from ..schemas.equipment import MessageOut
from ..schemas.user import UserCreate, UserOut, UserUpdate

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[UserOut], dependencies=[Depends(gate(Action.READ, Resource.ACCOUNT))])
def api_list(db: Session = Depends(get_db)):
    return list_users(db)


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(gate(Action.READ, Resource.ACCOUNT))])
def api_get(user_id: str, db: Session = Depends(get_db)):
    return require_user(db, user_id)


@router.post(
    "",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(gate(Action.CREATE, Resource.ACCOUNT))],
)
def api_create(payload: UserCreate, db: Session = Depends(get_db)):
    return create_user(db, payload.model_dump())


@router.put("/{user_id}", response_model=UserOut)
def api_update(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(gate(Action.UPDATE, Resource.ACCOUNT)),
):
    user = require_user(db, user_id)
    # Admin rows are protected no matter who asks.
    enforce(actor, Action.UPDATE, Resource.ACCOUNT, target_role=user.role)
    return update_user(db, user, payload.model_dump(exclude_none=True))


@router.delete("/{user_id}", response_model=MessageOut)
def api_delete(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(gate(Action.DELETE, Resource.ACCOUNT)),
):
    user = require_user(db, user_id)
    enforce(actor, Action.DELETE, Resource.ACCOUNT, target_role=user.role)
    delete_user(db, user)
    return {"message": "User deleted"}
