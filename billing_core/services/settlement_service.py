# billing_core/services/settlement_service.py
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from billing_core.errors import CrossClientAdvance
from billing_core.models.invoice import Invoice
from billing_core.models.money import CENT, HUNDRED, ZERO, percent_of, quantize_money, to_decimal
from billing_core.models.totals import AdvanceAnalysis, SettlementResult, Totals
from billing_core.services.settings_service import EngineSettings, load_settings

logger = logging.getLogger(__name__)

DEFAULT_ADVANCE_PERCENTAGE = Decimal("30")


def _as_invoice(obj: Invoice | Dict[str, Any]) -> Invoice:
    return obj if isinstance(obj, Invoice) else Invoice.model_validate(obj)


def _final_total(final_totals: Totals | Any) -> Decimal:
    if isinstance(final_totals, Totals):
        return final_totals.total
    return to_decimal(final_totals)


# ----------- solde -----------
def settlement(
    final_totals: Totals | Decimal,
    selected_advances: Iterable[Invoice | Dict[str, Any]] = (),
) -> SettlementResult:
    """
    Montant déjà encaissé via les acomptes sélectionnés et reste à payer.
    Le reste à payer n'est jamais négatif : un trop-perçu relève d'un avoir.
    Pas de sélection -> la facture de solde se comporte comme une facture standard.
    """
    advances = [_as_invoice(a) for a in (selected_advances or ())]
    total = _final_total(final_totals)
    advances_total = sum((a.total for a in advances), ZERO)
    remaining = total - advances_total
    if advances_total > max(total, ZERO):
        logger.warning(
            "Acomptes (%s) supérieurs au total de la facture de solde (%s), reste à payer ramené à 0",
            advances_total, total,
        )
    remaining = max(remaining, ZERO)
    return SettlementResult(
        advances_total=advances_total,
        remaining_balance=remaining,
        advance_ids=[a.id for a in advances],
    )


# ----------- sélection (côté appelant) -----------
def available_advances(
    invoices: Iterable[Invoice | Dict[str, Any]],
    client_id: Any,
    *,
    final_invoice_id: Optional[Any] = None,
) -> List[Invoice]:
    """Acomptes du client, non annulés, pas encore rattachés à une autre facture de solde."""
    cid = str(client_id)
    fid = None if final_invoice_id is None else str(final_invoice_id)
    out: List[Invoice] = []
    for d in invoices or ():
        inv = _as_invoice(d)
        if not inv.is_advance() or inv.client_id != cid or inv.status == "cancelled":
            continue
        if inv.final_invoice_id is not None and inv.final_invoice_id != fid:
            continue
        out.append(inv)
    return out


def check_same_client(client_id: Any, advances: Iterable[Invoice | Dict[str, Any]]) -> None:
    cid = str(client_id)
    foreign = [a.id for a in map(_as_invoice, advances or ()) if a.client_id != cid]
    if foreign:
        raise CrossClientAdvance(cid, foreign)


# ----------- acomptes -----------
def advance_amount(
    project_total: Any,
    percentage: Optional[Any] = None,
    explicit_amount: Optional[Any] = None,
    *,
    default_percentage: Any = DEFAULT_ADVANCE_PERCENTAGE,
) -> Decimal:
    """Montant d'une facture d'acompte : montant explicite, sinon % (borné 0-100) du total projet."""
    if explicit_amount is not None:
        return quantize_money(explicit_amount)
    pct = to_decimal(percentage if percentage is not None else default_percentage)
    pct = max(ZERO, min(HUNDRED, pct))
    return quantize_money(percent_of(project_total, pct))


def analyze_advances(
    selected_advances: Iterable[Invoice | Dict[str, Any]],
    current_total: Optional[Any] = None,
) -> AdvanceAnalysis:
    """
    Analyse des acomptes sélectionnés :
    - total en € et en %, % restant à facturer
    - total projet suggéré à partir du premier acompte portant un % (montant x 100 / %)
    - solde suggéré et cohérence avec le total saisi (à un centime près)
    """
    advances = [_as_invoice(a) for a in (selected_advances or ())]
    if not advances:
        return AdvanceAnalysis()

    total_amount = sum((a.total for a in advances), ZERO)
    with_pct = [a for a in advances if a.advance_percentage and a.advance_percentage > 0]
    total_pct = sum((a.advance_percentage for a in with_pct), ZERO)

    suggested: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    matches: Optional[bool] = None
    if with_pct:
        first = with_pct[0]
        suggested = quantize_money(first.total * HUNDRED / first.advance_percentage)
        balance = suggested - total_amount
        if current_total is not None:
            matches = abs(to_decimal(current_total) - suggested) < CENT

    return AdvanceAnalysis(
        advances_count=len(advances),
        advances_total=total_amount,
        advances_percentage=total_pct,
        remaining_percentage=HUNDRED - total_pct,
        suggested_project_total=suggested,
        suggested_balance=balance,
        matches_current_total=matches,
    )


class SettlementService:
    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or load_settings()

    def settle(self, final_totals: Totals | Decimal, selected_advances: Iterable[Invoice | Dict[str, Any]] = ()) -> SettlementResult:
        return settlement(final_totals, selected_advances)

    def advance_amount(self, project_total: Any, percentage: Optional[Any] = None, explicit_amount: Optional[Any] = None) -> Decimal:
        return advance_amount(
            project_total, percentage, explicit_amount,
            default_percentage=self.settings.advance_percentage,
        )
