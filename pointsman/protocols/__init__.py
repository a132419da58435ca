"""Pointsman protocols (external collaborators)."""

from pointsman.protocols.approval import ApproverInfo, ApproverValidator
from pointsman.protocols.messaging import MessageSender

__all__ = [
    # Approval
    "ApproverValidator",
    "ApproverInfo",
    # Messaging
    "MessageSender",
]
