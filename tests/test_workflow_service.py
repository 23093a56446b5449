import pytest

from billing_core.errors import DocumentLocked, InvalidTransition
from billing_core.services.workflow_service import (
    CREDIT_NOTE_WORKFLOW,
    INVOICE_WORKFLOW,
    QUOTE_WORKFLOW,
    can_mutate,
    can_perform,
    can_transition,
    ensure_mutable,
    machine_for,
)


class TestInvoiceWorkflow:
    def test_transitions(self):
        assert can_transition("invoice", "draft", "sent")
        assert can_transition("invoice", "sent", "paid")
        assert can_transition("invoice", "sent", "cancelled")
        assert not can_transition("invoice", "draft", "paid")
        assert not can_transition("invoice", "paid", "sent")
        assert not can_transition("invoice", "cancelled", "draft")

    def test_terminal_statuses_are_locked(self):
        assert can_mutate("invoice", "draft")
        assert can_mutate("invoice", "sent")
        assert not can_mutate("invoice", "paid")
        assert not can_mutate("invoice", "cancelled")

    def test_edit_on_paid_invoice_raises_document_locked(self):
        with pytest.raises(DocumentLocked) as exc:
            ensure_mutable("invoice", "paid")
        assert exc.value.code == "document_locked"
        assert exc.value.details == {"kind": "invoice", "status": "paid", "action": "edit"}

    def test_only_drafts_can_be_deleted(self):
        assert INVOICE_WORKFLOW.can_delete("draft")
        assert not INVOICE_WORKFLOW.can_delete("sent")

    def test_advance_and_final_share_the_invoice_machine(self):
        assert machine_for("advance") is INVOICE_WORKFLOW
        assert machine_for("final") is INVOICE_WORKFLOW


class TestQuoteWorkflow:
    def test_draft_and_sent_go_back_and_forth(self):
        assert can_transition("quote", "draft", "sent")
        assert can_transition("quote", "sent", "draft")

    def test_decisions_happen_from_sent(self):
        assert QUOTE_WORKFLOW.next_statuses("sent") == ["draft", "accepted", "rejected", "expired"]
        assert not can_transition("quote", "draft", "accepted")
        assert QUOTE_WORKFLOW.next_statuses("accepted") == []

    @pytest.mark.parametrize("status,editable", [
        ("draft", True), ("sent", True), ("accepted", False), ("rejected", False), ("expired", False),
    ])
    def test_editable_statuses(self, status, editable):
        assert can_mutate("quote", status) is editable


class TestCreditNoteWorkflow:
    def test_lifecycle(self):
        assert can_transition("credit_note", "draft", "issued")
        assert can_transition("credit_note", "issued", "applied")
        assert not can_transition("credit_note", "applied", "draft")

    def test_issued_credit_note_is_append_only(self):
        assert not can_mutate("credit_note", "issued")
        with pytest.raises(DocumentLocked):
            ensure_mutable("credit_note", "issued")
        with pytest.raises(DocumentLocked):
            ensure_mutable("credit_note", "applied", action="delete")

    @pytest.mark.parametrize("action", ["send", "download", "print"])
    def test_non_mutating_actions_always_allowed(self, action):
        for status in ("draft", "issued", "applied"):
            assert can_perform("credit_note", status, action)

    def test_draft_is_editable_and_deletable(self):
        assert CREDIT_NOTE_WORKFLOW.can_perform("draft", "edit")
        assert CREDIT_NOTE_WORKFLOW.can_perform("draft", "delete")


def test_unknown_status_is_never_mutable_nor_transitionable():
    assert not can_mutate("invoice", "archived")
    assert not can_transition("invoice", "archived", "sent")
    assert not can_perform("invoice", "archived", "send")


@pytest.mark.parametrize("status", ["pending", "viewed", "overdue"])
def test_api_statuses_outside_the_table_are_locked(status):
    assert not can_mutate("invoice", status)
    with pytest.raises(DocumentLocked):
        ensure_mutable("invoice", status)


def test_invalid_transition_error():
    with pytest.raises(InvalidTransition) as exc:
        INVOICE_WORKFLOW.ensure_transition("paid", "draft")
    assert exc.value.details["target"] == "draft"
    INVOICE_WORKFLOW.ensure_transition("draft", "sent")


def test_unknown_kind_or_action():
    with pytest.raises(ValueError):
        machine_for("purchase_order")
    with pytest.raises(ValueError):
        can_perform("invoice", "draft", "archive")
