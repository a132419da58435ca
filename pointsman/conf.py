"""
Pointsman configuration.

Usage in settings.py:
    POINTSMAN = {
        "CHECKIN_POINTS": 10,
        "WEBHOOK_API_KEY": "...",
        "MESSAGE_SENDER": "myproject.whatsapp.EvolutionSender",
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass
class PointsmanSettings:
    """Pointsman configuration settings."""

    # Points awarded per check-in (tenants may override in RewardSettings)
    CHECKIN_POINTS: int = 10

    # RewardSettings defaults when a tenant has none
    DEFAULT_POINTS_REQUIRED: int = 100
    DEFAULT_CARD_VALUE: Decimal = Decimal("5")
    DEFAULT_EXPIRATION_DAYS: int = 30
    DEFAULT_MAX_ACTIVE_CARDS: int = 5

    # Ledger policy: reject deltas that would leave a negative balance
    ALLOW_OVERDRAFT: bool = False

    # Reward codes
    CODE_PREFIX: str = "GC"
    CODE_MAX_ATTEMPTS: int = 5

    # Lock/statement timeout applied to every ledger transaction
    STORAGE_TIMEOUT_MS: int = 5000

    # Inbound webhook credential (empty rejects every request)
    WEBHOOK_API_KEY: str = ""

    # Collaborators (dotted paths)
    MESSAGE_SENDER: str = "pointsman.adapters.logging_sender.LoggingMessageSender"
    APPROVER_VALIDATOR: str = "pointsman.adapters.pin_validator.ApproverPinValidator"

    # Outbound message retry policy
    DELIVERY_MAX_ATTEMPTS: int = 5
    DELIVERY_BACKOFF_SECONDS: int = 30

    # ProcessedEvent cleanup
    EVENT_CLEANUP_DAYS: int = 90


def get_pointsman_settings() -> PointsmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "POINTSMAN", {})
    return PointsmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_pointsman_settings(), name)


pointsman_settings = _LazySettings()


def load_backend(setting_name: str):
    """Instantiate the collaborator configured under ``setting_name``."""
    return import_string(getattr(pointsman_settings, setting_name))()
