from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.policy import Action, Resource
from ..crud.history import list_history
from ..db.session import get_db
from ..deps.auth import gate
from ..schemas.history import HistoryEntryOut

router = APIRouter(prefix="/api/v1/history", tags=["history"])


@router.get("", response_model=list[HistoryEntryOut], dependencies=[Depends(gate(Action.READ, Resource.HISTORY))])
def api_history(
    equipment_id: Optional[str] = Query(default=None, description="Only entries for this equipment id"),
    limit: Optional[int] = Query(default=None, ge=1, description="Page size; omit for the full history"),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_history(db, equipment_id=equipment_id, limit=limit, offset=offset)
