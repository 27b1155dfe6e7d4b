from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class HistoryEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    equipment_id: str
    equipment_name: str
    equipment_inventory_number: Optional[str] = None
    details: str
    changed_by: str
    changed_at: str
