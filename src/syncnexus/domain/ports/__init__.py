"""Domain port definitions for adapters."""

from __future__ import annotations

from .gateway import (
    GatewayClient,
    GatewayError,
    GatewayGroup,
    GatewayMessage,
    LiveEvent,
    MessageKey,
    MessagePage,
    ParticipantList,
    ParticipantRecord,
)
from .persistence import CanonicalStore, MemberUpsert, MessageInsert

__all__ = [
    "CanonicalStore",
    "GatewayClient",
    "GatewayError",
    "GatewayGroup",
    "GatewayMessage",
    "LiveEvent",
    "MemberUpsert",
    "MessageInsert",
    "MessageKey",
    "MessagePage",
    "ParticipantList",
    "ParticipantRecord",
]
