"""Smoke tests for the Pointsman admin."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from pointsman.admin import ApproverForm
from pointsman.models import Approver, RewardCode

pytestmark = pytest.mark.django_db


@pytest.fixture
def populated(customer, tenant, branch, challenge, approver, reward_settings, fund):
    fund(30)
    RewardCode.objects.create(
        code="GC-ADMN-ADMN-ADMN",
        customer=customer,
        tenant=tenant,
        value=Decimal("5.00"),
        points_consumed=100,
        expires_at=timezone.now() + timedelta(days=30),
    )


class TestChangelists:
    @pytest.mark.parametrize(
        "model",
        [
            "customer",
            "tenant",
            "challenge",
            "approver",
            "ledgerentry",
            "auditentry",
            "rewardcode",
            "redemption",
            "notification",
            "outboundmessage",
        ],
    )
    def test_changelist_loads(self, admin_client, populated, model):
        response = admin_client.get(reverse(f"admin:pointsman_{model}_changelist"))
        assert response.status_code == 200

    def test_customer_page_shows_audit_trail(self, admin_client, populated, customer):
        response = admin_client.get(reverse("admin:pointsman_customer_change", args=[customer.pk]))

        assert response.status_code == 200
        assert "Ajuste" in response.content.decode()


class TestReadOnly:
    @pytest.mark.parametrize("model", ["ledgerentry", "auditentry", "rewardcode", "redemption"])
    def test_no_add(self, admin_client, model):
        response = admin_client.get(reverse(f"admin:pointsman_{model}_add"))
        assert response.status_code == 403


class TestApproverForm:
    def test_pin_required_on_create(self, tenant):
        form = ApproverForm(data={"tenant": tenant.pk, "operator_id": "jose", "is_active": True})
        assert not form.is_valid()
        assert "pin" in form.errors

    def test_pin_hashed_on_save(self, tenant):
        form = ApproverForm(
            data={"tenant": tenant.pk, "operator_id": "jose", "pin": "2468", "is_active": True}
        )
        assert form.is_valid(), form.errors

        approver = form.save()

        assert Approver.objects.get(pk=approver.pk).check_pin("2468")

    def test_blank_pin_keeps_current(self, approver, approver_pin):
        form = ApproverForm(
            instance=approver,
            data={"tenant": approver.tenant_id, "operator_id": "maria", "name": "María R.", "is_active": True},
        )
        assert form.is_valid(), form.errors
        form.save()

        approver.refresh_from_db()
        assert approver.name == "María R."
        assert approver.check_pin(approver_pin)
