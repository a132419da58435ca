"""Tests for point-of-sale awards and manual adjustments."""

from unittest.mock import patch

import pytest

from pointsman.exceptions import AuthorizationError, NotFoundError, StateError, ValidationError
from pointsman.models import AuditEntry, AuditEntryType, LedgerEntry, Notification, RewardCode
from pointsman.services.points import PointsService

pytestmark = pytest.mark.django_db


class TestAward:
    def test_award_creates_entry(self, customer, tenant, branch, approver_pin):
        result = PointsService.award(
            customer.pk, tenant.pk, 40, "cashier-1", approver_pin, note="compra", branch_id=branch.pk
        )

        assert result.created is True
        assert result.entry.total_points == 40
        assert result.entry.lifetime_points == 40
        assert result.entry.visits_count == 0
        assert result.issued_codes == []

        audit = AuditEntry.objects.get()
        assert audit.entry_type == AuditEntryType.POS_AWARD
        assert audit.operator_id == "cashier-1"
        assert audit.approver_id == "maria"
        assert audit.branch == branch
        assert audit.balance_after == 40

    def test_award_runs_reward_engine(self, customer, tenant, reward_settings, approver_pin, fund):
        fund(70)

        result = PointsService.award(customer.pk, tenant.pk, 50, "cashier-1", approver_pin)

        assert len(result.issued_codes) == 1
        assert RewardCode.objects.get().code == result.issued_codes[0]
        assert result.entry.total_points == 20

    def test_engine_storage_failure_keeps_award(self, customer, tenant, approver_pin):
        """A failing reward read after the award committed is logged, not raised."""
        from django.db import OperationalError

        from pointsman.services.rewards import RewardEngine

        with patch.object(
            RewardEngine, "_active_count", side_effect=OperationalError("database is locked")
        ):
            result = PointsService.award(customer.pk, tenant.pk, 30, "cashier-1", approver_pin)

        assert result.entry.total_points == 30
        assert result.rewards == []
        assert LedgerEntry.objects.get().total_points == 30
        assert AuditEntry.objects.filter(entry_type=AuditEntryType.POS_AWARD).count() == 1

    @pytest.mark.parametrize("points", [0, -5, 2.5, "10", True])
    def test_invalid_points(self, customer, tenant, approver_pin, points):
        with pytest.raises(ValidationError) as exc_info:
            PointsService.award(customer.pk, tenant.pk, points, "cashier-1", approver_pin)

        assert exc_info.value.code == "INVALID_POINTS"
        assert LedgerEntry.objects.count() == 0

    def test_wrong_pin(self, customer, tenant, approver):
        with pytest.raises(AuthorizationError):
            PointsService.award(customer.pk, tenant.pk, 10, "cashier-1", "9999")

        assert LedgerEntry.objects.count() == 0
        assert AuditEntry.objects.count() == 0

    def test_pin_of_other_tenant(self, customer, other_tenant, approver_pin):
        with pytest.raises(AuthorizationError):
            PointsService.award(customer.pk, other_tenant.pk, 10, "cashier-1", approver_pin)

    def test_unknown_customer(self, tenant, approver_pin):
        with pytest.raises(NotFoundError) as exc_info:
            PointsService.award(999999, tenant.pk, 10, "cashier-1", approver_pin)
        assert exc_info.value.code == "CUSTOMER_NOT_FOUND"

    def test_branch_of_other_tenant(self, customer, tenant, other_tenant, approver_pin):
        from pointsman.models import Branch

        foreign = Branch.objects.create(tenant=other_tenant, name="Norte")

        with pytest.raises(NotFoundError) as exc_info:
            PointsService.award(customer.pk, tenant.pk, 10, "cashier-1", approver_pin, branch_id=foreign.pk)
        assert exc_info.value.code == "BRANCH_NOT_FOUND"

    def test_notification_on_commit(
        self, customer, tenant, approver_pin, sent_messages, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            PointsService.award(customer.pk, tenant.pk, 15, "cashier-1", approver_pin)

        feed = Notification.objects.get()
        assert feed.type == "points_assigned"
        assert feed.metadata["points"] == 15
        assert len(sent_messages) == 1
        assert "Recibiste 15 puntos" in sent_messages[0][1]

    def test_no_message_after_opt_out(
        self, customer, tenant, approver_pin, sent_messages, django_capture_on_commit_callbacks
    ):
        customer.opt_in_marketing = False
        customer.save()

        with django_capture_on_commit_callbacks(execute=True):
            PointsService.award(customer.pk, tenant.pk, 15, "cashier-1", approver_pin)

        assert sent_messages == []


class TestAdjust:
    def test_negative_adjustment(self, customer, tenant, approver_pin, fund):
        fund(50)

        entry = PointsService.adjust(customer.pk, tenant.pk, -20, "admin", approver_pin, note="error de caja")

        assert entry.total_points == 30
        audit = AuditEntry.objects.get(entry_type=AuditEntryType.ADJUSTMENT, points_delta=-20)
        assert audit.approver_id == "maria"
        assert audit.note == "error de caja"

    def test_adjustment_cannot_overdraw(self, customer, tenant, approver_pin, fund):
        fund(10)

        with pytest.raises(StateError) as exc_info:
            PointsService.adjust(customer.pk, tenant.pk, -20, "admin", approver_pin)

        assert exc_info.value.code == "INSUFFICIENT_POINTS"
        assert LedgerEntry.objects.get().total_points == 10

    def test_positive_adjustment_runs_engine(self, customer, tenant, reward_settings, approver_pin, fund):
        fund(60)

        entry = PointsService.adjust(customer.pk, tenant.pk, 40, "admin", approver_pin)

        assert entry.total_points == 0
        assert RewardCode.objects.count() == 1

    def test_zero_delta(self, customer, tenant, approver_pin, entry):
        with pytest.raises(ValidationError):
            PointsService.adjust(customer.pk, tenant.pk, 0, "admin", approver_pin)

    def test_without_entry(self, customer, tenant, approver_pin):
        with pytest.raises(NotFoundError):
            PointsService.adjust(customer.pk, tenant.pk, 5, "admin", approver_pin)
