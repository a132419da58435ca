"""
Pointsman hardening tests.

Tests for:
- Gates G1-G3 (all scenarios)
- Phone normalization
- Customer creation race and opt-out
- Approver PIN hashing
- ProcessedEvent cleanup
- Collaborator protocols and lazy exports
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.db import IntegrityError
from django.utils import timezone

from pointsman.gates import GateError, Gates

# ═══════════════════════════════════════════════════════════════════
# G1: WebhookCredential
# ═══════════════════════════════════════════════════════════════════


class TestG1WebhookCredential:
    """G1: Inbound webhook carries the configured API key."""

    def test_matching_key_passes(self):
        result = Gates.webhook_credential("secret-key", "secret-key")
        assert result.passed
        assert result.gate_name == "G1_WebhookCredential"

    def test_wrong_key_raises(self):
        with pytest.raises(GateError, match="Invalid credential"):
            Gates.webhook_credential("other-key", "secret-key")

    def test_missing_key_raises(self):
        with pytest.raises(GateError, match="Missing credential"):
            Gates.webhook_credential("", "secret-key")

    def test_unconfigured_key_rejects(self):
        """No configured key never means an open webhook."""
        with pytest.raises(GateError, match="not configured"):
            Gates.webhook_credential("anything", "")


# ═══════════════════════════════════════════════════════════════════
# G2: ReplayProtection
# ═══════════════════════════════════════════════════════════════════


class TestG2ReplayProtection:
    """G2: Event cannot be processed twice."""

    def test_first_event_passes(self, db):
        result = Gates.replay_protection("whatsapp:3EB0-001")
        assert result.passed

    def test_replay_raises(self, db):
        Gates.replay_protection("whatsapp:3EB0-002")

        with pytest.raises(GateError, match="Replay detected") as exc_info:
            Gates.replay_protection("whatsapp:3EB0-002")
        assert exc_info.value.details["nonce"] == "whatsapp:3EB0-002"

    def test_empty_nonce_raises(self, db):
        with pytest.raises(GateError, match="Nonce is required"):
            Gates.replay_protection("")

    def test_other_integrity_errors_propagate(self, db):
        from pointsman.models import ProcessedEvent

        with patch.object(ProcessedEvent.objects, "create", side_effect=IntegrityError("boom")):
            with pytest.raises(IntegrityError):
                Gates.replay_protection("whatsapp:3EB0-004")


# ═══════════════════════════════════════════════════════════════════
# G3: IndividualSender
# ═══════════════════════════════════════════════════════════════════


class TestG3IndividualSender:
    """G3: Only one-to-one chats drive the ledger."""

    def test_individual_passes(self):
        assert Gates.individual_sender("584121234567@s.whatsapp.net").passed

    @pytest.mark.parametrize(
        "jid",
        ["120363025246125486@g.us", "status@broadcast", "584121234567", ""],
    )
    def test_non_individual_raises(self, jid):
        with pytest.raises(GateError, match="not an individual chat"):
            Gates.individual_sender(jid)
        assert not Gates.check_individual_sender(jid)


# ═══════════════════════════════════════════════════════════════════
# Phone normalization
# ═══════════════════════════════════════════════════════════════════


class TestPhoneNormalization:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("584121234567@s.whatsapp.net", "584121234567"),
            ("+58 412-123-4567", "584121234567"),
            ("(0412) 123 4567", "04121234567"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        from pointsman.utils import normalize_phone

        assert normalize_phone(raw) == expected

    def test_customer_save_normalizes(self, db):
        from pointsman.models import Customer

        customer = Customer.objects.create(phone="+58 412 123 4567")
        customer.refresh_from_db()
        assert customer.phone == "584121234567"


# ═══════════════════════════════════════════════════════════════════
# Customer identity
# ═══════════════════════════════════════════════════════════════════


class TestCustomerService:
    def test_get_or_create_from_jid(self, db):
        from pointsman.services import customer as customer_service

        cust, created = customer_service.get_or_create("584121234567@s.whatsapp.net", "Ana")
        again, created_again = customer_service.get_or_create("+58 412 123 4567")

        assert created is True
        assert created_again is False
        assert again.pk == cust.pk
        assert cust.name == "Ana"

    def test_default_name(self, db):
        from pointsman.services import customer as customer_service

        cust, _ = customer_service.get_or_create("584121234567")
        assert cust.name == "Usuario"

    def test_lost_creation_race(self, customer):
        """A concurrent first message created the row first."""
        from pointsman.services import customer as customer_service

        with patch.object(customer_service, "get_by_phone", return_value=None):
            cust, created = customer_service.get_or_create(customer.phone)

        assert created is False
        assert cust.pk == customer.pk

    def test_customer_created_signal(self, db, django_capture_on_commit_callbacks):
        from pointsman.services import customer as customer_service
        from pointsman.signals import customer_created

        received = []

        def receiver(sender, customer, **kwargs):
            received.append(customer.phone)

        customer_created.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                customer_service.get_or_create("584149876543")
        finally:
            customer_created.disconnect(receiver)

        assert received == ["584149876543"]

    def test_opt_out_keeps_ledger(self, customer, entry):
        from pointsman.models import LedgerEntry
        from pointsman.services import customer as customer_service

        customer_service.opt_out(customer)
        customer.refresh_from_db()

        assert customer.is_active is False
        assert customer.opt_in_marketing is False
        assert LedgerEntry.objects.filter(customer=customer).exists()

    def test_get_unknown(self, db):
        from pointsman.exceptions import NotFoundError
        from pointsman.services import customer as customer_service

        with pytest.raises(NotFoundError):
            customer_service.get(424242)


# ═══════════════════════════════════════════════════════════════════
# Approver PIN
# ═══════════════════════════════════════════════════════════════════


class TestApproverPin:
    def test_pin_is_hashed(self, approver, approver_pin):
        approver.refresh_from_db()
        assert approver.pin_hash != approver_pin
        assert approver.check_pin(approver_pin)
        assert not approver.check_pin("0000")

    def test_validator(self, tenant, approver, approver_pin):
        from pointsman.adapters.pin_validator import ApproverPinValidator

        info = ApproverPinValidator().validate(tenant.pk, approver_pin)
        assert info.approver_id == "maria"
        assert ApproverPinValidator().validate(tenant.pk, "") is None
        assert ApproverPinValidator().validate(tenant.pk, "1111") is None


# ═══════════════════════════════════════════════════════════════════
# ProcessedEvent cleanup
# ═══════════════════════════════════════════════════════════════════


class TestProcessedEventCleanup:
    def _event(self, nonce, days_old):
        from pointsman.models import ProcessedEvent

        event = ProcessedEvent.objects.create(nonce=nonce, provider="whatsapp")
        ProcessedEvent.objects.filter(pk=event.pk).update(
            processed_at=timezone.now() - timedelta(days=days_old)
        )
        return event

    def test_cleanup_removes_old(self, db):
        from pointsman.models import ProcessedEvent

        self._event("whatsapp:old", 120)
        self._event("whatsapp:new", 1)

        deleted, _ = ProcessedEvent.cleanup_old_events(days=90)

        assert deleted == 1
        assert list(ProcessedEvent.objects.values_list("nonce", flat=True)) == ["whatsapp:new"]

    def test_cleanup_uses_setting(self, db, settings):
        from pointsman.models import ProcessedEvent

        settings.POINTSMAN = {**settings.POINTSMAN, "EVENT_CLEANUP_DAYS": 7}
        self._event("whatsapp:week-old", 8)

        deleted, _ = ProcessedEvent.cleanup_old_events()
        assert deleted == 1

    def test_management_command(self, db, capsys):
        self._event("whatsapp:old", 120)

        call_command("pointsman_cleanup", days=30)

        assert "Deleted 1 old processed events." in capsys.readouterr().out


# ═══════════════════════════════════════════════════════════════════
# Collaborators and public API
# ═══════════════════════════════════════════════════════════════════


class TestCollaborators:
    def test_default_adapters_satisfy_protocols(self):
        from pointsman.adapters.logging_sender import LoggingMessageSender
        from pointsman.adapters.pin_validator import ApproverPinValidator
        from pointsman.protocols import ApproverValidator, MessageSender
        from pointsman.tests.recorder import RecordingSender

        assert isinstance(LoggingMessageSender(), MessageSender)
        assert isinstance(RecordingSender(), MessageSender)
        assert isinstance(ApproverPinValidator(), ApproverValidator)

    def test_load_backend_follows_settings(self, settings):
        from pointsman.conf import load_backend
        from pointsman.tests.recorder import RecordingSender

        settings.POINTSMAN = {"MESSAGE_SENDER": "pointsman.tests.recorder.RecordingSender"}
        assert isinstance(load_backend("MESSAGE_SENDER"), RecordingSender)

    def test_unknown_setting_rejected(self, settings):
        from pointsman.conf import get_pointsman_settings

        settings.POINTSMAN = {"NOT_A_SETTING": 1}
        with pytest.raises(TypeError):
            get_pointsman_settings()

    def test_lazy_exports(self):
        import pointsman
        from pointsman.services.points import PointsService

        assert pointsman.PointsService is PointsService
        assert pointsman.Gates is Gates
        with pytest.raises(AttributeError):
            pointsman.CustomerService
