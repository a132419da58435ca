"""Tests for inbound event classification and routing."""

from unittest.mock import patch

import pytest
from django.db import OperationalError

from pointsman.exceptions import TransientError
from pointsman.inbound import InboundEvent
from pointsman.models import (
    AuditEntry,
    AuditEntryType,
    Challenge,
    Customer,
    LedgerEntry,
    ProcessedEvent,
    RewardCode,
)
from pointsman.services.ledger import LedgerService
from pointsman.services.router import EventKind, EventRouter, RouteStatus, classify

pytestmark = pytest.mark.django_db

PHONE = "584121234567"


def make_event(text, message_id="MSG-1", phone=PHONE, name="Ana", **kwargs):
    return InboundEvent(
        event_type=kwargs.pop("event_type", "message"),
        sender_identity=kwargs.pop("sender_identity", f"{phone}@s.whatsapp.net"),
        raw_text=text,
        from_self=kwargs.pop("from_self", False),
        message_id=message_id,
        sender_name=name,
    )


# ═══════════════════════════════════════════════════════════════════
# classify
# ═══════════════════════════════════════════════════════════════════


class TestClassify:
    def test_check_in(self):
        result = classify("Acme Bakery - Downtown")
        assert result.kind is EventKind.CHECK_IN
        assert result.tenant_name == "Acme Bakery"
        assert result.branch_name == "Downtown"

    def test_check_in_with_prefix_and_tags(self):
        result = classify("Hola, quiero hacer check-in en Acme Bakery - Downtown [BID:12|BRID:34]")
        assert result.kind is EventKind.CHECK_IN
        assert result.tenant_name == "Acme Bakery"
        assert result.branch_name == "Downtown"

    @pytest.mark.parametrize(
        "text,kind",
        [
            ("puntos", EventKind.BALANCE),
            ("POINTS", EventKind.BALANCE),
            (" Retos ", EventKind.CHALLENGES),
            ("challenges", EventKind.CHALLENGES),
            ("ayuda", EventKind.HELP),
            ("HELP", EventKind.HELP),
            ("stop", EventKind.OPT_OUT),
            ("Baja", EventKind.OPT_OUT),
        ],
    )
    def test_keywords(self, text, kind):
        assert classify(text).kind is kind

    def test_check_in_wins_over_keyword(self):
        """A tenant literally named like a command is still a check-in."""
        result = classify("Puntos - Centro")
        assert result.kind is EventKind.CHECK_IN
        assert result.tenant_name == "Puntos"

    def test_keyword_must_be_whole_message(self):
        assert classify("mis puntos por favor").kind is EventKind.UNRECOGNIZED

    def test_structured_info(self):
        result = classify("Acme Bakery -")
        assert result.kind is EventKind.STRUCTURED_INFO
        assert result.tenant_name == "Acme Bakery"

    def test_unrecognized(self):
        assert classify("hola").kind is EventKind.UNRECOGNIZED
        assert classify("").kind is EventKind.UNRECOGNIZED


# ═══════════════════════════════════════════════════════════════════
# Check-in
# ═══════════════════════════════════════════════════════════════════


class TestCheckIn:
    def test_first_check_in_creates_customer_and_entry(self, tenant, branch):
        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert outcome.status is RouteStatus.PROCESSED
        assert outcome.kind is EventKind.CHECK_IN
        assert outcome.created_customer is True

        customer = Customer.objects.get(phone=PHONE)
        assert customer.name == "Ana"
        entry = LedgerEntry.objects.get(customer=customer, tenant=tenant)
        assert entry.total_points == 10
        assert entry.visits_count == 1
        assert entry.lifetime_points == 10
        assert entry.first_visit_at is not None
        assert entry.last_visit_at is not None

        audit = AuditEntry.objects.get()
        assert audit.entry_type == AuditEntryType.CHECKIN
        assert audit.points_delta == 10
        assert audit.branch == branch
        assert audit.operator_id == "whatsapp"

        assert "Check-in exitoso" in outcome.replies[0]
        assert "primera visita" in outcome.replies[0]

    def test_repeat_check_in_accumulates(self, tenant, branch):
        EventRouter.route(make_event("Acme Bakery - Downtown", message_id="MSG-1"))
        outcome = EventRouter.route(make_event("acme bakery - downtown", message_id="MSG-2"))

        assert outcome.status is RouteStatus.PROCESSED
        assert outcome.entry.total_points == 20
        assert outcome.entry.visits_count == 2
        assert "primera visita" not in outcome.replies[0]

    def test_duplicate_event_is_not_applied_twice(self, tenant, branch):
        event = make_event("Acme Bakery - Downtown")

        first = EventRouter.route(event)
        second = EventRouter.route(event)

        assert first.status is RouteStatus.PROCESSED
        assert second.status is RouteStatus.DUPLICATE
        assert second.replies == []
        entry = LedgerEntry.objects.get()
        assert entry.total_points == 10
        assert entry.visits_count == 1
        assert AuditEntry.objects.count() == 1

    def test_unknown_tenant(self, tenant):
        outcome = EventRouter.route(make_event("Nope - Centro"))

        assert outcome.status is RouteStatus.NOT_FOUND
        assert 'No encontramos el negocio "Nope"' in outcome.replies[0]
        assert LedgerEntry.objects.count() == 0
        assert AuditEntry.objects.count() == 0
        assert ProcessedEvent.objects.filter(nonce="whatsapp:MSG-1").exists()

    def test_inactive_tenant_is_not_found(self, tenant):
        tenant.is_active = False
        tenant.save()

        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert outcome.status is RouteStatus.NOT_FOUND
        assert LedgerEntry.objects.count() == 0

    def test_unknown_branch_still_awards(self, tenant, challenge):
        outcome = EventRouter.route(make_event("Acme Bakery - Uptown"))

        assert outcome.status is RouteStatus.PROCESSED
        assert outcome.entry.total_points == 10
        assert "Sucursal: Uptown" in outcome.replies[0]
        assert AuditEntry.objects.get().branch is None
        assert len(outcome.replies) == 1

    def test_tenant_check_in_points_override(self, tenant, branch, reward_settings):
        reward_settings.checkin_points = 25
        reward_settings.save()

        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert outcome.entry.total_points == 25

    def test_check_in_reactivates_opted_out_customer(self, tenant, branch, customer):
        customer.is_active = False
        customer.opt_in_marketing = False
        customer.save()

        EventRouter.route(make_event("Acme Bakery - Downtown"))

        customer.refresh_from_db()
        assert customer.is_active is True
        assert customer.opt_in_marketing is True

    def test_inactive_ledger_entry_fails_and_releases_nonce(self, tenant, branch, entry):
        entry.is_active = False
        entry.save()

        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert outcome.status is RouteStatus.FAILED
        assert "Hubo un error" in outcome.replies[0]
        assert AuditEntry.objects.count() == 0
        assert not ProcessedEvent.objects.exists()

    def test_storage_failure_propagates_and_releases_nonce(self, tenant, branch):
        with patch.object(LedgerService, "apply_delta", side_effect=OperationalError("locked")):
            with pytest.raises(TransientError):
                EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert not ProcessedEvent.objects.exists()

        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))
        assert outcome.status is RouteStatus.PROCESSED

    def test_engine_storage_failure_keeps_check_in_and_reply(self, tenant, branch):
        """The check-in is committed; a failing reward read only defers evaluation."""
        from pointsman.services.rewards import RewardEngine

        with patch.object(
            RewardEngine, "_active_count", side_effect=OperationalError("database is locked")
        ):
            outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert outcome.status is RouteStatus.PROCESSED
        assert outcome.rewards == []
        assert "Check-in exitoso" in outcome.replies[0]
        assert LedgerEntry.objects.get().total_points == 10
        assert ProcessedEvent.objects.count() == 1

    def test_check_in_crossing_threshold_issues_reward(self, tenant, branch, reward_settings, fund):
        fund(95)

        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert [o.issued for o in outcome.rewards] == [True]
        reward = RewardCode.objects.get()
        assert reward.points_consumed == 100
        assert outcome.entry.total_points == 5

    def test_teaser_lists_branch_and_tenant_wide_challenges(self, tenant, branch, challenge):
        Challenge.objects.create(tenant=tenant, name="Reseña", points=5)
        Challenge.objects.create(tenant=tenant, name="Apagado", points=5, is_active=False)

        outcome = EventRouter.route(make_event("Acme Bakery - Downtown"))

        assert len(outcome.replies) == 2
        teaser = outcome.replies[1]
        assert "Retos Disponibles en Acme Bakery" in teaser
        assert "Trae un amigo" in teaser
        assert "Reseña" in teaser
        assert "Apagado" not in teaser

    def test_points_assigned_signal(self, tenant, branch, django_capture_on_commit_callbacks):
        from pointsman.signals import points_assigned

        received = []

        def receiver(sender, entry, delta, entry_type, **kwargs):
            received.append((delta, entry_type))

        points_assigned.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                EventRouter.route(make_event("Acme Bakery - Downtown"))
        finally:
            points_assigned.disconnect(receiver)

        assert received == [(10, AuditEntryType.CHECKIN)]


# ═══════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════


class TestCommands:
    def test_balance_without_entries(self, db):
        outcome = EventRouter.route(make_event("puntos"))

        assert outcome.status is RouteStatus.PROCESSED
        assert outcome.kind is EventKind.BALANCE
        assert "Aún no tienes puntos" in outcome.replies[0]
        assert LedgerEntry.objects.count() == 0
        assert AuditEntry.objects.count() == 0

    def test_balance_lists_active_entries(self, customer, tenant, other_tenant, fund):
        fund(30)
        fund(12, tnt=other_tenant)

        outcome = EventRouter.route(make_event("PUNTOS"))

        reply = outcome.replies[0]
        assert "Total general:* 42 puntos" in reply
        assert "Acme Bakery" in reply
        assert "Café Central" in reply
        assert reply.index("Acme Bakery") < reply.index("Café Central")

    def test_balance_does_not_mutate(self, customer, tenant, fund):
        fund(30)
        before = list(LedgerEntry.objects.values_list("total_points", "visits_count"))

        EventRouter.route(make_event("puntos"))

        assert list(LedgerEntry.objects.values_list("total_points", "visits_count")) == before

    def test_help(self, db):
        outcome = EventRouter.route(make_event("ayuda"))
        assert "Comandos disponibles" in outcome.replies[0]

    def test_opt_out_then_reactivate(self, customer, tenant, fund):
        fund(30)

        outcome = EventRouter.route(make_event("STOP", message_id="MSG-1"))
        customer.refresh_from_db()
        assert outcome.kind is EventKind.OPT_OUT
        assert "dado de baja" in outcome.replies[0]
        assert customer.is_active is False
        assert customer.opted_out_at is not None
        assert LedgerEntry.objects.get().total_points == 30

        EventRouter.route(make_event("hola", message_id="MSG-2"))
        customer.refresh_from_db()
        assert customer.is_active is True
        assert customer.opted_out_at is None

    def test_challenges_without_tenants(self, db):
        outcome = EventRouter.route(make_event("retos"))
        assert "Aún no has hecho check-in" in outcome.replies[0]

    def test_challenges_for_known_tenants(self, customer, tenant, challenge, fund):
        fund(10)
        outcome = EventRouter.route(make_event("retos"))
        assert "Trae un amigo" in outcome.replies[0]

    def test_welcome_for_new_sender(self, db):
        outcome = EventRouter.route(make_event("hola", name=""))

        assert outcome.created_customer is True
        assert "¡Hola Usuario!" in outcome.replies[0]
        assert f"Tu número: {PHONE}" in outcome.replies[0]

    def test_help_for_known_sender(self, customer):
        outcome = EventRouter.route(make_event("hola"))

        assert outcome.created_customer is False
        assert "Comandos disponibles" in outcome.replies[0]

    def test_structured_info_for_known_sender(self, customer):
        outcome = EventRouter.route(make_event("Acme Bakery -"))

        assert outcome.kind is EventKind.STRUCTURED_INFO
        assert "Negocio: Acme Bakery" in outcome.replies[0]

    def test_duplicate_command(self, db):
        event = make_event("ayuda")
        EventRouter.route(event)

        assert EventRouter.route(event).status is RouteStatus.DUPLICATE


class TestIgnored:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"from_self": True},
            {"sender_identity": "120363025@g.us"},
            {"sender_identity": "status@broadcast"},
            {"event_type": "connection.update"},
        ],
    )
    def test_not_processed(self, tenant, kwargs):
        outcome = EventRouter.route(make_event("Acme Bakery - Downtown", **kwargs))

        assert outcome.status is RouteStatus.IGNORED
        assert Customer.objects.count() == 0
        assert ProcessedEvent.objects.count() == 0

    def test_empty_text(self, db):
        assert EventRouter.route(make_event("   ")).status is RouteStatus.IGNORED
