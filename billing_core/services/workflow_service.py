from __future__ import annotations
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, get_args

from billing_core.errors import DocumentLocked, InvalidTransition
from billing_core.models.credit_note import CreditNoteStatus
from billing_core.models.invoice import InvoiceStatus
from billing_core.models.quote import QuoteStatus

MUTATING_ACTIONS = frozenset({"edit", "delete"})
READ_ONLY_ACTIONS = frozenset({"send", "download", "print"})


class StateMachine:
    """
    Cycle de vie d'un type de document : transitions autorisées et statuts éditables.
    Ne réalise pas la transition (c'est le serveur), répond seulement "est-ce permis ?".
    Un statut inconnu n'est ni éditable ni source d'une transition.
    """

    def __init__(
        self,
        kind: str,
        statuses: Iterable[str],
        transitions: Mapping[str, Iterable[str]],
        mutable: Iterable[str],
        deletable: Optional[Iterable[str]] = None,
    ):
        self.kind = kind
        self.statuses: Tuple[str, ...] = tuple(statuses)
        self.transitions: Dict[str, FrozenSet[str]] = {s: frozenset(t) for s, t in transitions.items()}
        self.mutable: FrozenSet[str] = frozenset(mutable)
        self.deletable: FrozenSet[str] = frozenset(deletable) if deletable is not None else self.mutable

    def next_statuses(self, current: str) -> List[str]:
        allowed = self.transitions.get(current, frozenset())
        return [s for s in self.statuses if s in allowed]

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, frozenset())

    def can_mutate(self, current: str) -> bool:
        return current in self.mutable

    def can_delete(self, current: str) -> bool:
        return current in self.deletable

    def can_perform(self, current: str, action: str) -> bool:
        if action == "delete":
            return self.can_delete(current)
        if action in MUTATING_ACTIONS:
            return self.can_mutate(current)
        if action in READ_ONLY_ACTIONS:
            return current in self.statuses
        raise ValueError(f"Unknown action: {action!r}")

    def ensure_mutable(self, current: str, action: str = "edit") -> None:
        if not self.can_perform(current, action):
            raise DocumentLocked(self.kind, current, action=action)

    def ensure_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransition(self.kind, current, target)


# Statuts API hors table (pending, viewed, overdue...) : verrouillés.
INVOICE_WORKFLOW = StateMachine(
    "invoice",
    get_args(InvoiceStatus),
    {"draft": ["sent"], "sent": ["paid", "cancelled"]},
    mutable=["draft", "sent"],
    deletable=["draft"],
)

QUOTE_WORKFLOW = StateMachine(
    "quote",
    get_args(QuoteStatus),
    {"draft": ["sent"], "sent": ["draft", "accepted", "rejected", "expired"]},
    mutable=["draft", "sent"],
)

CREDIT_NOTE_WORKFLOW = StateMachine(
    "credit_note",
    get_args(CreditNoteStatus),
    {"draft": ["issued"], "issued": ["applied"]},
    mutable=["draft"],
)

_MACHINES: Dict[str, StateMachine] = {
    "invoice": INVOICE_WORKFLOW,
    "advance": INVOICE_WORKFLOW,
    "final": INVOICE_WORKFLOW,
    "quote": QUOTE_WORKFLOW,
    "credit_note": CREDIT_NOTE_WORKFLOW,
}


def machine_for(kind: str) -> StateMachine:
    try:
        return _MACHINES[kind]
    except KeyError:
        raise ValueError(f"Unknown document kind: {kind!r}") from None


def can_transition(kind: str, current: str, target: str) -> bool:
    return machine_for(kind).can_transition(current, target)


def can_mutate(kind: str, current: str) -> bool:
    return machine_for(kind).can_mutate(current)


def can_perform(kind: str, current: str, action: str) -> bool:
    return machine_for(kind).can_perform(current, action)


def ensure_mutable(kind: str, current: str, action: str = "edit") -> None:
    machine_for(kind).ensure_mutable(current, action)
