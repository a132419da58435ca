"""Approver validation protocol."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ApproverInfo:
    """Identity of a validated approver."""

    approver_id: str
    name: str


@runtime_checkable
class ApproverValidator(Protocol):
    """
    Protocol for PIN-based approver validation.

    Used by POS awards and counter redemptions. Implemented by
    adapters/pin_validator.py (Approver model); projects with their own
    staff directory plug in another implementation.

    Configuration in settings.py:
        POINTSMAN = {
            "APPROVER_VALIDATOR": "pointsman.adapters.pin_validator.ApproverPinValidator",
        }
    """

    def validate(self, tenant_id: int, pin: str) -> ApproverInfo | None:
        """
        Resolve a PIN to an approver of the tenant.

        Args:
            tenant_id: Tenant the approval is for
            pin: PIN typed by the approver

        Returns:
            ApproverInfo, or None if the PIN matches no active approver
        """
        ...
