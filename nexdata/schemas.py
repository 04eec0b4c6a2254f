"""Pydantic schemas validating records entered by hand or through the API."""
from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .records import Category, DataRecord, Status, new_record_id, today


class RecordCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    product_name: str = Field(
        "", alias="productName", validate_default=True, description="Display name of the product."
    )
    category: Category = Category.OTHER
    quantity: int = Field(0, ge=0)
    price: float = Field(0, ge=0, allow_inf_nan=False)
    status: Status = Status.IN_STOCK
    notes: str | None = None
    date_added: date | None = Field(None, alias="dateAdded")

    @field_validator("product_name")
    @classmethod
    def _require_product_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Product name is required")
        return value

    @field_validator("quantity", "price", "date_added", "notes", mode="before")
    @classmethod
    def _blank_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        # HTML forms submit empty inputs as "".
        if isinstance(value, str) and value.strip() == "":
            return None if info.field_name in {"date_added", "notes"} else 0
        return value

    def to_record(self) -> DataRecord:
        return DataRecord(
            id=new_record_id(),
            product_name=self.product_name,
            category=self.category,
            quantity=self.quantity,
            price=self.price,
            date_added=self.date_added.isoformat() if self.date_added else today(),
            status=self.status,
            notes=self.notes,
        )


class HealthStatus(BaseModel):
    status: str = "ok"
    environment: str


__all__ = ["RecordCreate", "HealthStatus"]
