"""
Inbound messaging envelope.

The webhook body is validated into an ``InboundEvent`` before any
business logic runs. Only the Evolution API (WhatsApp) payload shape is
understood:

    {
      "event": "messages.upsert",
      "data": {
        "key": {"remoteJid": "5491112345678@s.whatsapp.net",
                "fromMe": false, "id": "3EB0..."},
        "pushName": "Ana",
        "message": {"conversation": "Acme Bakery - Downtown"}
      }
    }
"""

from dataclasses import dataclass

from pointsman.exceptions import ValidationError
from pointsman.gates import Gates

MESSAGE_EVENT = "message"

_EVENT_TYPES = {
    "messages.upsert": MESSAGE_EVENT,
}


@dataclass(frozen=True)
class InboundEvent:
    """Validated inbound event."""

    event_type: str
    sender_identity: str
    raw_text: str
    from_self: bool
    message_id: str
    sender_name: str = ""
    provider: str = "whatsapp"

    @classmethod
    def from_payload(cls, payload) -> "InboundEvent":
        """
        Build an event from a decoded webhook body.

        Raises:
            ValidationError: INVALID_ENVELOPE when a required field is
                missing or has the wrong type
        """
        if not isinstance(payload, dict):
            raise ValidationError("INVALID_ENVELOPE", field="body")

        event = payload.get("event")
        if not isinstance(event, str) or not event:
            raise ValidationError("INVALID_ENVELOPE", field="event")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ValidationError("INVALID_ENVELOPE", field="data")
        key = data.get("key")
        if not isinstance(key, dict):
            raise ValidationError("INVALID_ENVELOPE", field="data.key")

        sender = key.get("remoteJid")
        if not isinstance(sender, str) or not sender:
            raise ValidationError("INVALID_ENVELOPE", field="data.key.remoteJid")
        message_id = key.get("id")
        if not isinstance(message_id, str) or not message_id:
            raise ValidationError("INVALID_ENVELOPE", field="data.key.id")
        from_self = key.get("fromMe", False)
        if not isinstance(from_self, bool):
            raise ValidationError("INVALID_ENVELOPE", field="data.key.fromMe")

        name = data.get("pushName") or ""
        if not isinstance(name, str):
            name = ""

        return cls(
            event_type=_EVENT_TYPES.get(event, event),
            sender_identity=sender,
            raw_text=_extract_text(data.get("message")),
            from_self=from_self,
            message_id=message_id,
            sender_name=name.strip(),
        )

    @property
    def is_individual(self) -> bool:
        return Gates.check_individual_sender(self.sender_identity)

    def should_process(self) -> bool:
        """Only text messages from other people in one-to-one chats drive the ledger."""
        return self.event_type == MESSAGE_EVENT and not self.from_self and self.is_individual

    @property
    def nonce(self) -> str:
        return f"{self.provider}:{self.message_id}"


def _extract_text(message) -> str:
    if not isinstance(message, dict):
        return ""
    text = message.get("conversation")
    if isinstance(text, str) and text:
        return text
    for container, attr in (("extendedTextMessage", "text"), ("imageMessage", "caption")):
        inner = message.get(container)
        if isinstance(inner, dict) and isinstance(inner.get(attr), str):
            return inner[attr]
    return ""
