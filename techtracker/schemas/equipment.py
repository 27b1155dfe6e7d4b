"""Request/response contracts for equipment.

The JSON surface uses camelCase (``inventoryNumber``, ``dateAdded``) while the
Python side keeps snake_case attribute names.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.normalize import parse_date_added


class EquipmentIn(BaseModel):
    """Full-record payload used by both create and update."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "name": "HP EliteBook",
                "inventoryNumber": "INV001",
                "category": "laptops",
                "location": "office 101",
                "dateAdded": "2024-03-15",
            }
        },
    )

    name: str = Field(..., min_length=1)
    inventory_number: str = Field(..., alias="inventoryNumber", min_length=1)
    category: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    date_added: str = Field(..., alias="dateAdded", min_length=1)

    @field_validator("date_added")
    @classmethod
    def validate_date_added(cls, value: str) -> str:
        return parse_date_added(value)


class EquipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    inventory_number: str = Field(alias="inventoryNumber")
    category: str
    location: str
    date_added: str = Field(alias="dateAdded")
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    last_modified_by: Optional[str] = Field(default=None, alias="lastModifiedBy")


class MessageOut(BaseModel):
    message: str
