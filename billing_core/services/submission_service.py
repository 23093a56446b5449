# billing_core/services/submission_service.py
from __future__ import annotations
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence

from billing_core.errors import NoBillableItems
from billing_core.models.line_item import LineItem
from billing_core.models.money import quantize_money
from billing_core.models.totals import DiscountSpec, Totals
from billing_core.services.tax_service import bucket_tax
from billing_core.services.workflow_service import ensure_mutable

logger = logging.getLogger(__name__)

ADVANCE_TYPES = ("advance", "final")


# ---------- Formats ----------
def _money_str(value: Any) -> str:
    return f"{quantize_money(value):.2f}"


def _qty_str(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"


def _rate_str(value: Decimal) -> str:
    return f"{value:.2f}"


# ---------- Validation ----------
def is_billable(line: LineItem) -> bool:
    if line.source in ("time_entry", "expense"):
        return True
    return bool(line.description.strip()) and line.quantity > 0 and line.unit_price > 0


def billable_lines(lines: Iterable[LineItem]) -> List[LineItem]:
    return [ln for ln in lines if is_billable(ln)]


def ensure_billable(lines: Iterable[LineItem]) -> List[LineItem]:
    out = billable_lines(lines)
    if not out:
        raise NoBillableItems()
    return out


# ---------- Payload ----------
def _item_payload(line: LineItem, position: int) -> Dict[str, Any]:
    net = line.net_amount
    tax = bucket_tax(net, line.tax_rate)
    return {
        "type": line.source,
        "description": line.description,
        "quantity": _qty_str(line.quantity),
        "unit_price": _money_str(line.unit_price),
        "tax_rate": _rate_str(line.tax_rate),
        "discount": _money_str(line.discount),
        "subtotal": _money_str(net),
        "tax_amount": _money_str(tax),
        "total": _money_str(net + tax),
        "position": position,
    }


def _totals_payload(totals: Totals) -> Dict[str, Any]:
    return {
        "subtotal": _money_str(totals.subtotal),
        "discount_amount": _money_str(totals.discount_amount),
        "tax_amount": _money_str(totals.tax_amount),
        "total": _money_str(totals.total),
        "tax_breakdown": [
            {"rate": _rate_str(b.rate), "base": _money_str(b.base), "tax_amount": _money_str(b.tax_amount)}
            for b in totals.buckets()
        ],
    }


def build_invoice_payload(
    lines: Sequence[LineItem],
    totals: Totals,
    *,
    invoice_type: str = "invoice",
    discount: Optional[DiscountSpec] = None,
    advance_ids: Optional[Iterable[Any]] = None,
    advance_percentage: Optional[Any] = None,
    current_status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Corps de requête envoyé à l'API de facturation.
    - current_status : statut de la facture éditée (None = création) ; un statut
      verrouillé lève DocumentLocked avant tout appel réseau
    - lignes non facturables écartées, aucune ligne -> NoBillableItems
    - advance_percentage (type advance) / advance_ids (type final)
    """
    if current_status is not None:
        ensure_mutable(invoice_type, current_status)
    items = ensure_billable(lines)

    discount = discount or DiscountSpec.none()
    payload: Dict[str, Any] = {
        "type": invoice_type,
        "items": [_item_payload(ln, i + 1) for i, ln in enumerate(items)],
        "discount_type": discount.type,
        **_totals_payload(totals),
    }
    if invoice_type in ADVANCE_TYPES:
        if advance_percentage is not None:
            payload["advance_percentage"] = _rate_str(quantize_money(advance_percentage))
        if advance_ids is not None:
            payload["advance_ids"] = [str(i) for i in advance_ids]
    elif advance_ids:
        logger.debug("advance_ids ignorés pour une facture de type %s", invoice_type)
    return payload


def build_quote_payload(
    lines: Sequence[LineItem],
    totals: Totals,
    *,
    current_status: Optional[str] = None,
) -> Dict[str, Any]:
    if current_status is not None:
        ensure_mutable("quote", current_status)
    items = ensure_billable(lines)
    payload = {"items": [_item_payload(ln, i + 1) for i, ln in enumerate(items)], **_totals_payload(totals)}
    payload.pop("discount_amount")
    return payload
