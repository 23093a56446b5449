from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from billing_core.models.line_item import CustomItem, Expense, LineItem, TimeEntry
from billing_core.models.money import ZERO
from billing_core.models.totals import DiscountMode, DiscountSpec, Totals
from billing_core.services.discount_service import allocate
from billing_core.services.line_item_service import normalize
from billing_core.services.settings_service import EngineSettings, load_settings
from billing_core.services.tax_service import aggregate, build_buckets

logger = logging.getLogger(__name__)


def compute_totals(
    lines: Iterable[LineItem],
    discount: Optional[DiscountSpec] = None,
    mode: DiscountMode = "document",
) -> Totals:
    """
    Sous-total, remise, TVA par taux et total TTC.

    mode="document" : la remise globale est répartie au prorata des bases (factures).
    mode="per_line" : seules les remises de ligne comptent, la remise globale est ignorée (devis).
    Fonction pure : mêmes entrées -> même résultat.
    """
    if mode not in ("document", "per_line"):
        raise ValueError(f"Unknown discount mode: {mode!r}")

    lines = list(lines)
    subtotal = sum((ln.net_amount for ln in lines), ZERO)
    bases = aggregate(lines)

    if mode == "document":
        post_bases, discount_amount = allocate(bases, subtotal, discount)
    else:
        post_bases, discount_amount = bases, ZERO

    tax_by_rate = build_buckets(post_bases)
    tax_amount = sum((b.tax_amount for b in tax_by_rate.values()), ZERO)
    total = subtotal - discount_amount + tax_amount
    unallocated = sum(post_bases.values(), ZERO) - (subtotal - discount_amount)

    logger.debug(
        "Totals: %d lignes, %d taux, sous-total=%s remise=%s tva=%s total=%s",
        len(lines), len(tax_by_rate), subtotal, discount_amount, tax_amount, total,
    )
    return Totals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total=total,
        tax_by_rate=tax_by_rate,
        unallocated_discount=unallocated,
    )


class TotalsService:
    """Point d'entrée des formulaires facture / devis, avec le taux par défaut configuré."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or load_settings()

    @property
    def default_tax_rate(self) -> Decimal:
        return self.settings.default_tax_rate

    def normalize(
        self,
        time_entries: Iterable[TimeEntry | Dict[str, Any]] = (),
        selected_time_entry_ids: Optional[Iterable[Any]] = None,
        expenses: Iterable[Expense | Dict[str, Any]] = (),
        selected_expense_ids: Optional[Iterable[Any]] = None,
        custom_items: Iterable[CustomItem | Dict[str, Any]] = (),
    ) -> list[LineItem]:
        return normalize(
            time_entries, selected_time_entry_ids,
            expenses, selected_expense_ids,
            custom_items,
            default_tax_rate=self.default_tax_rate,
        )

    def invoice_totals(
        self,
        time_entries: Iterable[TimeEntry | Dict[str, Any]] = (),
        selected_time_entry_ids: Optional[Iterable[Any]] = None,
        expenses: Iterable[Expense | Dict[str, Any]] = (),
        selected_expense_ids: Optional[Iterable[Any]] = None,
        custom_items: Iterable[CustomItem | Dict[str, Any]] = (),
        discount: Optional[DiscountSpec] = None,
    ) -> Totals:
        lines = self.normalize(time_entries, selected_time_entry_ids, expenses, selected_expense_ids, custom_items)
        return compute_totals(lines, discount, mode="document")

    def quote_totals(self, custom_items: Iterable[CustomItem | Dict[str, Any]]) -> Totals:
        lines = self.normalize(custom_items=custom_items)
        return compute_totals(lines, mode="per_line")
