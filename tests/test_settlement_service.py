import logging
from decimal import Decimal

import pytest

from billing_core.errors import CrossClientAdvance
from billing_core.models.invoice import Invoice
from billing_core.models.totals import DiscountSpec
from billing_core.services.settings_service import EngineSettings
from billing_core.services.settlement_service import (
    SettlementService,
    advance_amount,
    analyze_advances,
    available_advances,
    check_same_client,
    settlement,
)
from billing_core.services.totals_service import compute_totals

D = Decimal


def _advance(id, total, client_id="c1", **kw):
    return Invoice(id=id, client_id=client_id, type="advance", status="paid", total=total, **kw)


def test_remaining_balance_after_advances():
    result = settlement(D("1000"), [_advance("a1", 200), _advance("a2", 100)])
    assert result.advances_total == D("300")
    assert result.remaining_balance == D("700")
    assert result.advance_ids == ["a1", "a2"]


def test_overpaid_final_invoice_is_floored_at_zero():
    result = settlement(D("1000"), [_advance("a1", 1500)])
    assert result.advances_total == D("1500")
    assert result.remaining_balance == 0


def test_no_advances_behaves_like_a_standard_invoice():
    result = settlement(D("1000"), [])
    assert result.advances_total == 0
    assert result.remaining_balance == D("1000")


def test_settlement_accepts_totals_and_plain_records(make_line):
    totals = compute_totals([make_line(qty=1, price=1000, rate=20)], DiscountSpec.none())
    result = settlement(totals, [{"id": 5, "client_id": 1, "type": "advance", "total": "360.00", "status": "paid"}])
    assert result.remaining_balance == D("840.00")
    assert result.advance_ids == ["5"]


@pytest.mark.parametrize("total,advances", [(0, [0]), (10, [3, 3, 3]), (10, [20]), (D("0.01"), [D("0.02")])])
def test_remaining_balance_is_never_negative(total, advances):
    result = settlement(total, [_advance(str(i), a) for i, a in enumerate(advances)])
    assert result.remaining_balance >= 0
    assert result.remaining_balance == max(D("0"), D(str(total)) - result.advances_total)


def test_settlement_does_not_mutate_inputs():
    advances = [_advance("a1", 200)]
    settlement(D("1000"), advances)
    assert advances[0].total == D("200")
    assert advances[0].final_invoice_id is None


def test_available_advances_filters_client_type_status_and_links():
    invoices = [
        _advance("a1", 100),
        _advance("a2", 100, client_id="c2"),
        Invoice(id="i1", client_id="c1", type="invoice", total=100),
        Invoice(id="a3", client_id="c1", type="advance", status="cancelled", total=100),
        _advance("a4", 100, final_invoice_id="f9"),
        _advance("a5", 100, final_invoice_id="f1"),
    ]
    assert [a.id for a in available_advances(invoices, "c1")] == ["a1"]
    assert [a.id for a in available_advances(invoices, "c1", final_invoice_id="f1")] == ["a1", "a5"]


def test_check_same_client_reports_foreign_advances():
    check_same_client("c1", [_advance("a1", 100)])
    with pytest.raises(CrossClientAdvance) as exc:
        check_same_client("c1", [_advance("a1", 100), _advance("a2", 100, client_id="c2")])
    assert exc.value.code == "cross_client_advance"
    assert exc.value.advance_ids == ["a2"]


def test_advance_amount_from_percentage():
    assert advance_amount(D("1234.56"), 30) == D("370.37")
    assert advance_amount(1000) == D("300.00")
    assert advance_amount(1000, 150) == D("1000.00")
    assert advance_amount(1000, -5) == D("0.00")
    assert advance_amount(1000, 30, explicit_amount="250") == D("250.00")


def test_service_uses_configured_advance_percentage():
    service = SettlementService(EngineSettings(advance_percentage=40))
    assert service.advance_amount(1000) == D("400.00")
    assert service.settle(D("1000"), [_advance("a1", 400)]).remaining_balance == D("600")


def test_analyze_advances_suggests_project_total():
    advances = [
        _advance("a1", 300, advance_percentage=30),
        _advance("a2", 200, advance_percentage=20),
    ]
    analysis = analyze_advances(advances, current_total=D("1000.004"))
    assert analysis.advances_count == 2
    assert analysis.advances_total == D("500")
    assert analysis.advances_percentage == D("50")
    assert analysis.remaining_percentage == D("50")
    assert analysis.suggested_project_total == D("1000.00")
    assert analysis.suggested_balance == D("500.00")
    assert analysis.matches_current_total is True

    assert analyze_advances(advances, current_total=900).matches_current_total is False


def test_analyze_advances_without_percentages():
    analysis = analyze_advances([_advance("a1", 300)])
    assert analysis.advances_total == D("300")
    assert analysis.suggested_project_total is None
    assert analysis.matches_current_total is None
    assert analyze_advances([]).advances_count == 0


def test_overpayment_warning_only_when_advances_exceed_total(caplog):
    with caplog.at_level(logging.WARNING, logger="billing_core.services.settlement_service"):
        result = settlement(D("-10"), [])
    assert result.remaining_balance == 0
    assert caplog.records == []

    with caplog.at_level(logging.WARNING, logger="billing_core.services.settlement_service"):
        settlement(D("1000"), [_advance("a1", 1500)])
    assert "supérieurs au total" in caplog.text
