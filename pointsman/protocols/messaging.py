"""Outbound messaging protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageSender(Protocol):
    """
    Protocol for the outbound messaging client (WhatsApp gateway, SMS...).

    Used by the notification dispatcher to deliver OutboundMessage rows.
    Implementations raise on delivery failure; the dispatcher records the
    error and schedules a retry.

    Configuration in settings.py:
        POINTSMAN = {
            "MESSAGE_SENDER": "myproject.whatsapp.EvolutionMessageSender",
        }
    """

    def send_text(self, phone: str, message: str) -> None:
        """
        Deliver a text message.

        Args:
            phone: Destination phone, digits only
            message: Message body

        Raises:
            Exception: Any failure; the message is retried later
        """
        ...
