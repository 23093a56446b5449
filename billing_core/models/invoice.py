from __future__ import annotations
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from .money import ZERO, to_decimal

InvoiceType = Literal["invoice", "advance", "final", "quote", "credit_note"]
InvoiceStatus = Literal["draft", "sent", "paid", "cancelled"]


class Invoice(BaseModel):
    """Vue en lecture seule d'une facture renvoyée par l'API (acomptes / solde)."""
    id: str
    client_id: str
    type: InvoiceType = "invoice"
    status: str = "draft"
    total: Decimal = ZERO

    number: Optional[str] = None
    advance_percentage: Optional[Decimal] = None
    final_invoice_id: Optional[str] = None  # acompte déjà rattaché à une facture de solde

    @field_validator("id", "client_id", "final_invoice_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return None if v is None else str(v)

    @field_validator("total", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        return to_decimal(v)

    @field_validator("advance_percentage", mode="before")
    @classmethod
    def _as_optional_decimal(cls, v):
        return None if v is None or v == "" else to_decimal(v)

    def is_advance(self) -> bool:
        return self.type == "advance"

    def is_linked_to_final(self) -> bool:
        return self.is_advance() and self.final_invoice_id is not None

    class Config:
        extra = "ignore"  # tolère les champs supplémentaires de l'API
        frozen = True
