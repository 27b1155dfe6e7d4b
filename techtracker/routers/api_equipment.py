from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import NotFoundError
from ..core.policy import Action, Resource
from ..crud.equipment import (
    create_equipment,
    delete_equipment,
    get_equipment,
    list_equipment,
    update_equipment,
)
from ..db.session import get_db
from ..deps.auth import gate
from ..schemas.equipment import EquipmentIn, EquipmentOut, MessageOut

router = APIRouter(prefix="/api/v1/equipment", tags=["equipment"])


@router.get("", response_model=list[EquipmentOut], dependencies=[Depends(gate(Action.READ, Resource.EQUIPMENT))])
def api_list(db: Session = Depends(get_db)):
    return list_equipment(db)


@router.get("/{equipment_id}", response_model=EquipmentOut, dependencies=[Depends(gate(Action.READ, Resource.EQUIPMENT))])
def api_get(equipment_id: str, db: Session = Depends(get_db)):
    item = get_equipment(db, equipment_id)
    if item is None:
        raise NotFoundError(f"Equipment '{equipment_id}' was not found.")
    return item


@router.post("", response_model=EquipmentOut, status_code=status.HTTP_201_CREATED)
def api_create(
    payload: EquipmentIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(gate(Action.CREATE, Resource.EQUIPMENT)),
):
    return create_equipment(db, payload.model_dump(), changed_by=actor.username)


@router.put("/{equipment_id}", response_model=EquipmentOut)
def api_update(
    equipment_id: str,
    payload: EquipmentIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(gate(Action.UPDATE, Resource.EQUIPMENT)),
):
    item, _ = update_equipment(db, equipment_id, payload.model_dump(), changed_by=actor.username)
    return item


@router.delete("/{equipment_id}", response_model=MessageOut)
def api_delete(
    equipment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(gate(Action.DELETE, Resource.EQUIPMENT)),
):
    delete_equipment(db, equipment_id, changed_by=actor.username)
    return {"message": "Equipment deleted"}
