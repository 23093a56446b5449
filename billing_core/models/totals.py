from __future__ import annotations
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .money import ZERO, to_decimal

DiscountType = Literal["fixed", "percentage"]
# document : remise globale répartie au prorata des taux (factures)
# per_line : remises déjà nettes sur chaque ligne, pas de répartition (devis)
DiscountMode = Literal["document", "per_line"]


class DiscountSpec(BaseModel):
    amount: Decimal = Field(default=ZERO, ge=0)
    type: DiscountType = "fixed"

    @field_validator("amount", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        return to_decimal(v)

    @classmethod
    def none(cls) -> "DiscountSpec":
        return cls()

    class Config:
        frozen = True


class TaxBucket(BaseModel):
    rate: Decimal
    base: Decimal = ZERO
    tax_amount: Decimal = ZERO

    class Config:
        frozen = True


class Totals(BaseModel):
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO
    tax_by_rate: Dict[Decimal, TaxBucket] = Field(default_factory=dict)
    # remise sans bucket à réduire (sous-total nul), 0 sinon
    unallocated_discount: Decimal = ZERO

    def buckets(self) -> List[TaxBucket]:
        """Buckets par taux décroissant (ordre d'affichage)."""
        return [self.tax_by_rate[r] for r in sorted(self.tax_by_rate, reverse=True)]

    @property
    def taxable_base(self) -> Decimal:
        return self.subtotal - self.discount_amount

    class Config:
        frozen = True


class SettlementResult(BaseModel):
    advances_total: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    advance_ids: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class AdvanceAnalysis(BaseModel):
    advances_count: int = 0
    advances_total: Decimal = ZERO
    advances_percentage: Decimal = ZERO
    remaining_percentage: Decimal = ZERO
    suggested_project_total: Optional[Decimal] = None
    suggested_balance: Optional[Decimal] = None
    matches_current_total: Optional[bool] = None

    class Config:
        frozen = True
