"""
Inbound messaging webhook.

Flow:
    1. Validates the ``apikey`` header (G1) before reading the body
    2. Parses the JSON body into an InboundEvent
    3. EventRouter.route() (replay protection G2 and sender check G3 inside)
    4. Sends the replies through the outbox
"""

import json
import logging

from django.http import JsonResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from pointsman.conf import pointsman_settings
from pointsman.exceptions import TransientError, ValidationError
from pointsman.gates import GateError, Gates
from pointsman.inbound import InboundEvent
from pointsman.services.notifications import NotificationDispatcher
from pointsman.services.router import EventRouter, RouteStatus
from pointsman.utils import normalize_phone

logger = logging.getLogger("pointsman.webhook")


@method_decorator(csrf_exempt, name="dispatch")
class InboundMessageWebhookView(View):
    """
    POST endpoint for Evolution API (WhatsApp) webhooks.

    Expects:
        - ``apikey`` header matching POINTSMAN["WEBHOOK_API_KEY"]
        - JSON body with the ``messages.upsert`` payload

    Responses:
        401 bad credential, 400 malformed body, 503 storage unavailable,
        500 anything unexpected, 200 otherwise (processed, ignored,
        duplicate, not_found).
    """

    http_method_names = ["get", "post"]

    def get(self, request):
        return JsonResponse(
            {
                "status": "ok",
                "message": "WhatsApp webhook endpoint is running",
                "timestamp": timezone.now().isoformat(),
            }
        )

    def post(self, request):
        # G1: Credential (body untouched until this passes)
        try:
            Gates.webhook_credential(
                request.headers.get("apikey", ""),
                pointsman_settings.WEBHOOK_API_KEY,
            )
        except GateError as exc:
            logger.warning("Webhook: G1 failed - %s", exc.message)
            return JsonResponse({"error": "Unauthorized"}, status=401)

        try:
            payload = json.loads(request.body)
        except (json.JSONDecodeError, ValueError):
            return JsonResponse({"error": "Invalid JSON"}, status=400)

        try:
            event = InboundEvent.from_payload(payload)
        except ValidationError as exc:
            logger.info("Webhook: rejected envelope - %s", exc.data)
            return JsonResponse({"error": exc.message, "code": exc.code, **exc.data}, status=400)

        try:
            outcome = EventRouter.route(event)
        except TransientError as exc:
            logger.warning("Webhook: storage unavailable for %s - %s", event.message_id, exc)
            return JsonResponse({"error": "Service unavailable"}, status=503)
        except Exception:
            logger.exception("Webhook: failed to process %s", event.message_id)
            return JsonResponse({"error": "Internal server error"}, status=500)

        if outcome.status in (RouteStatus.IGNORED, RouteStatus.DUPLICATE):
            return JsonResponse({"status": outcome.status.value})

        phone = normalize_phone(event.sender_identity)
        for reply in outcome.replies:
            NotificationDispatcher.send_message(phone, reply, reference=f"reply:{event.message_id}")

        return JsonResponse(
            {
                "status": outcome.status.value,
                "kind": outcome.kind.value if outcome.kind else None,
                "rewards": [o.code for o in outcome.rewards if o.issued],
            }
        )
