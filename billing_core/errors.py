"""Exceptions remontées à l'appelant (formulaires, soumission)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class BillingError(Exception):
    """Base des erreurs métier de billing_core."""

    message: str
    code: str = "billing_error"
    details: Dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.details is None:
            self.details = {}


class DocumentLocked(BillingError):
    """Modification demandée alors que le statut du document l'interdit."""

    def __init__(self, kind: str, status: str, *, action: str = "edit") -> None:
        self.kind = kind
        self.status = status
        self.action = action
        super().__init__(
            message=f"{kind} in status '{status}' cannot be modified ({action})",
            code="document_locked",
            details={"kind": kind, "status": status, "action": action},
        )


class InvalidTransition(BillingError):
    def __init__(self, kind: str, current: str, target: str) -> None:
        self.kind = kind
        super().__init__(
            message=f"{kind} cannot go from '{current}' to '{target}'",
            code="invalid_transition",
            details={"kind": kind, "current": current, "target": target},
        )


class NoBillableItems(BillingError):
    def __init__(self, message: str = "No time entry, expense or valid line to bill") -> None:
        super().__init__(message=message, code="no_billable_items")


class CrossClientAdvance(BillingError):
    """Acompte d'un autre client sélectionné pour une facture de solde."""

    def __init__(self, client_id: str, advance_ids: list[str]) -> None:
        self.client_id = client_id
        self.advance_ids = advance_ids
        super().__init__(
            message=f"Advances {', '.join(advance_ids)} do not belong to client {client_id}",
            code="cross_client_advance",
            details={"client_id": client_id, "advance_ids": advance_ids},
        )


class ConfigError(BillingError):
    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="config_error", details=details)
