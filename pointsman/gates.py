"""
Pointsman Gates - Boundary validation rules.

G1: WebhookCredential - Inbound webhook carries the configured API key
G2: ReplayProtection - Event cannot be processed twice (persistent via DB)
G3: IndividualSender - Only one-to-one conversations drive the ledger
"""

import hmac
from dataclasses import dataclass

from django.db import IntegrityError, transaction


class GateError(Exception):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None):
        self.gate_name = gate_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{gate_name}] {message}")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


INDIVIDUAL_JID_SUFFIX = "@s.whatsapp.net"


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Pointsman validation gates."""

    # =========================================================================
    # G1: Webhook Credential
    # =========================================================================

    @classmethod
    def webhook_credential(cls, provided: str, expected: str) -> GateResult:
        """
        G1: Webhook request carries the configured API key.

        Compared in constant time. An unconfigured key rejects every
        request: the webhook never runs open.

        Args:
            provided: Key from the request header
            expected: Configured key (POINTSMAN["WEBHOOK_API_KEY"])

        Raises:
            GateError: If no key is configured, or the key is missing/wrong
        """
        if not expected:
            raise GateError(
                "G1_WebhookCredential",
                "Webhook API key is not configured.",
            )

        if not provided:
            raise GateError(
                "G1_WebhookCredential",
                "Missing credential header.",
            )

        if not hmac.compare_digest(provided.encode(), expected.encode()):
            raise GateError(
                "G1_WebhookCredential",
                "Invalid credential.",
            )

        return GateResult(True, "G1_WebhookCredential")

    # =========================================================================
    # G2: Replay Protection (persistent via DB)
    # =========================================================================

    @classmethod
    def replay_protection(
        cls,
        nonce: str,
        provider: str = "whatsapp",
    ) -> GateResult:
        """
        G2: Event cannot be processed twice (persistent via DB).

        Uses ProcessedEvent to store nonces persistently, safe for
        multi-worker deployments. When called inside an outer transaction
        the nonce is only kept if that transaction commits.

        Args:
            nonce: Unique event identifier (provider message id)
            provider: Provider name for categorization

        Raises:
            GateError: If event was already processed
        """
        from pointsman.models import ProcessedEvent

        if not nonce:
            raise GateError(
                "G2_ReplayProtection",
                "Nonce is required.",
            )

        # Unique constraint on nonce rejects duplicates
        try:
            with transaction.atomic():
                ProcessedEvent.objects.create(nonce=nonce, provider=provider)
        except IntegrityError:
            # Confirm it is a duplicate and not some other integrity failure
            if ProcessedEvent.objects.filter(nonce=nonce).exists():
                raise GateError(
                    "G2_ReplayProtection",
                    "Replay detected: event already processed.",
                    {"nonce": nonce, "provider": provider},
                )
            raise

        return GateResult(True, "G2_ReplayProtection")

    # =========================================================================
    # G3: Individual Sender
    # =========================================================================

    @classmethod
    def individual_sender(cls, sender_identity: str) -> GateResult:
        """
        G3: Sender is an individual chat, not a group or broadcast list.

        Args:
            sender_identity: Messaging JID (5491112345678@s.whatsapp.net)

        Raises:
            GateError: If the identity is empty or not an individual chat
        """
        if not sender_identity or not sender_identity.endswith(INDIVIDUAL_JID_SUFFIX):
            raise GateError(
                "G3_IndividualSender",
                "Sender is not an individual chat.",
                {"sender": sender_identity},
            )

        return GateResult(True, "G3_IndividualSender")

    @classmethod
    def check_individual_sender(cls, sender_identity: str) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.individual_sender(sender_identity)
            return True
        except GateError:
            return False
