"""Pointsman admin.

Ledger balances, audit entries, reward codes and redemptions only change
through the services, so their admins are read-only. Tenants, branches,
challenges, approvers and reward settings are edited here.
"""

from django import forms
from django.contrib import admin
from django.utils.html import format_html

from pointsman.models import (
    Approver,
    AuditEntry,
    Branch,
    Challenge,
    Customer,
    LedgerEntry,
    Notification,
    OutboundMessage,
    Redemption,
    RewardCode,
    RewardSettings,
    Tenant,
)


class ReadOnlyAdminMixin:
    """No add, change or delete from the admin."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


def _points(value):
    if value > 0:
        return format_html('<span style="color:green">+{}</span>', value)
    if value < 0:
        return format_html('<span style="color:red">{}</span>', value)
    return "0"


# ===========================================
# Identity
# ===========================================


class AuditEntryInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = AuditEntry
    fk_name = "customer"
    extra = 0
    fields = ["created_at", "entry_type", "tenant", "points_delta", "balance_after", "note"]
    readonly_fields = fields
    ordering = ["-created_at"]
    max_num = 0


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ["phone", "name", "is_active", "opt_in_marketing", "created_at"]
    list_filter = ["is_active", "opt_in_marketing"]
    search_fields = ["phone", "name"]
    readonly_fields = ["opted_out_at", "created_at", "updated_at"]
    inlines = [AuditEntryInline]


class BranchInline(admin.TabularInline):
    model = Branch
    extra = 0
    fields = ["name", "address", "is_active"]


class RewardSettingsInline(admin.StackedInline):
    model = RewardSettings
    extra = 0
    max_num = 1


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ["name", "address", "is_active", "branch_count", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["name"]
    inlines = [BranchInline, RewardSettingsInline]

    def branch_count(self, obj):
        return obj.branches.count()

    branch_count.short_description = "Sucursales"


@admin.register(Challenge)
class ChallengeAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "branch", "points", "is_active", "starts_at", "ends_at"]
    list_filter = ["is_active", "tenant"]
    search_fields = ["name", "tenant__name"]


class ApproverForm(forms.ModelForm):
    pin = forms.CharField(
        label="PIN",
        required=False,
        widget=forms.PasswordInput,
        help_text="Vacío conserva el PIN actual",
    )

    class Meta:
        model = Approver
        fields = ["tenant", "operator_id", "name", "is_active"]

    def clean(self):
        cleaned = super().clean()
        if not self.instance.pk and not cleaned.get("pin"):
            self.add_error("pin", "El PIN es obligatorio")
        return cleaned

    def save(self, commit=True):
        approver = super().save(commit=False)
        if self.cleaned_data.get("pin"):
            approver.set_pin(self.cleaned_data["pin"])
        if commit:
            approver.save()
        return approver


@admin.register(Approver)
class ApproverAdmin(admin.ModelAdmin):
    form = ApproverForm
    list_display = ["operator_id", "name", "tenant", "is_active"]
    list_filter = ["is_active", "tenant"]
    search_fields = ["operator_id", "name"]


# ===========================================
# Ledger
# ===========================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "customer",
        "tenant",
        "total_points",
        "lifetime_points",
        "visits_count",
        "last_visit_at",
        "is_active",
    ]
    list_filter = ["is_active", "tenant"]
    search_fields = ["customer__phone", "customer__name", "tenant__name"]
    list_select_related = ["customer", "tenant"]


@admin.register(AuditEntry)
class AuditEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "created_at",
        "entry_type",
        "customer",
        "tenant",
        "points_display",
        "balance_after",
        "operator_id",
        "approver_id",
    ]
    list_filter = ["entry_type", "tenant"]
    search_fields = ["customer__phone", "operator_id", "note", "related_reward_code__code"]
    list_select_related = ["customer", "tenant"]
    date_hierarchy = "created_at"

    def points_display(self, obj):
        return _points(obj.points_delta)

    points_display.short_description = "Puntos"


# ===========================================
# Rewards
# ===========================================


@admin.register(RewardCode)
class RewardCodeAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "code",
        "customer",
        "tenant",
        "value",
        "status_badge",
        "expires_at",
        "created_at",
    ]
    list_filter = ["status", "tenant"]
    search_fields = ["code", "customer__phone"]
    list_select_related = ["customer", "tenant"]
    date_hierarchy = "created_at"

    def status_badge(self, obj):
        colors = {
            "active": "#28a745",
            "redeemed": "#007bff",
            "expired": "#6c757d",
            "cancelled": "#dc3545",
        }
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            colors.get(obj.status, "#6c757d"),
            obj.get_status_display(),
        )

    status_badge.short_description = "Estado"


@admin.register(Redemption)
class RedemptionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["created_at", "reward_code", "customer", "tenant", "value", "operator_id", "approver_id"]
    list_filter = ["tenant"]
    search_fields = ["reward_code__code", "customer__phone", "operator_id"]
    list_select_related = ["reward_code", "customer", "tenant"]


# ===========================================
# Side channel
# ===========================================


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["created_at", "tenant", "type", "title", "priority", "is_read"]
    list_filter = ["type", "priority", "is_read"]
    search_fields = ["title", "message"]
    readonly_fields = ["tenant", "customer", "type", "title", "message", "metadata", "priority", "created_at"]

    def has_add_permission(self, request):
        return False


@admin.register(OutboundMessage)
class OutboundMessageAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["created_at", "phone", "status", "attempts", "next_attempt_at", "sent_at"]
    list_filter = ["status"]
    search_fields = ["phone", "reference"]
