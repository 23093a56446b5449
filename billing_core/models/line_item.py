from __future__ import annotations
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .money import ZERO, quantize_money, to_decimal

LineSource = Literal["time_entry", "expense", "custom"]


class TimeEntry(BaseModel):
    id: str
    duration_seconds: Decimal = ZERO
    hourly_rate: Decimal = ZERO
    project: Optional[str] = None
    task: Optional[str] = None
    task_id: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id", "task_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return None if v is None else str(v)

    @field_validator("duration_seconds", "hourly_rate", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        return to_decimal(v)

    class Config:
        extra = "ignore"


class Expense(BaseModel):
    id: str
    amount: Decimal = ZERO
    description: str = ""
    category: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        return to_decimal(v)

    class Config:
        extra = "ignore"


class CustomItem(BaseModel):
    """Ligne libre saisie dans le formulaire (peut être incomplète pendant l'édition)."""
    description: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = ZERO
    tax_rate: Optional[Decimal] = None
    discount: Decimal = ZERO
    discount_percent: Optional[Decimal] = None  # remise % des lignes de devis

    @field_validator("quantity", "unit_price", "discount", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        return to_decimal(v)

    @field_validator("tax_rate", "discount_percent", mode="before")
    @classmethod
    def _as_optional_decimal(cls, v):
        return None if v is None or v == "" else to_decimal(v)

    class Config:
        extra = "ignore"


class LineItem(BaseModel):
    description: str = ""
    quantity: Decimal = Field(default=ZERO, ge=0)
    unit_price: Decimal = Field(default=ZERO, ge=0)
    tax_rate: Decimal = Field(default=ZERO, ge=0)
    discount: Decimal = ZERO
    source: LineSource = "custom"

    @field_validator("quantity", "unit_price", "tax_rate", "discount", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        return to_decimal(v)

    @property
    def amount(self) -> Decimal:
        return quantize_money(self.quantity * self.unit_price)

    @property
    def net_amount(self) -> Decimal:
        return self.amount - quantize_money(self.discount)

    class Config:
        frozen = True
