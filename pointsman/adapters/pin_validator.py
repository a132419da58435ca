"""Default ApproverValidator backed by the Approver model."""

from __future__ import annotations

from pointsman.models import Approver
from pointsman.protocols.approval import ApproverInfo


class ApproverPinValidator:
    """Adapter: Pointsman Approver rows implement ApproverValidator."""

    def validate(self, tenant_id: int, pin: str) -> ApproverInfo | None:
        if not pin:
            return None
        for approver in Approver.objects.filter(tenant_id=tenant_id, is_active=True):
            if approver.check_pin(pin):
                return self._to_info(approver)
        return None

    @staticmethod
    def _to_info(a: Approver) -> ApproverInfo:
        return ApproverInfo(approver_id=a.operator_id, name=a.name)
