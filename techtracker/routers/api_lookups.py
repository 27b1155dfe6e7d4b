"""Distinct categories and locations, used to populate the pickers."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.policy import Action, Resource
from ..crud.equipment import list_categories, list_locations
from ..db.session import get_db
from ..deps.auth import gate

router = APIRouter(prefix="/api/v1", tags=["lookups"])


@router.get("/categories", response_model=list[str], dependencies=[Depends(gate(Action.READ, Resource.CATEGORY))])
def api_categories(db: Session = Depends(get_db)):
    return list_categories(db)


@router.get("/locations", response_model=list[str], dependencies=[Depends(gate(Action.READ, Resource.LOCATION))])
def api_locations(db: Session = Depends(get_db)):
    return list_locations(db)
