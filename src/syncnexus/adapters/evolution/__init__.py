"""Public interface for the Evolution API adapter."""

from __future__ import annotations

from .client import EvolutionGatewayClient
from .schema import (
    GroupPayload,
    MessagePayload,
    ParticipantPayload,
    WebhookEnvelope,
)
from .translator import (
    PayloadShapeError,
    decode_webhook,
    translate_groups,
    translate_message,
    translate_messages,
    translate_participants,
)

__all__ = [
    "EvolutionGatewayClient",
    "GroupPayload",
    "MessagePayload",
    "ParticipantPayload",
    "PayloadShapeError",
    "WebhookEnvelope",
    "decode_webhook",
    "translate_groups",
    "translate_message",
    "translate_messages",
    "translate_participants",
]
