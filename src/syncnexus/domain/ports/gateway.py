"""Ports for reading groups, participants and messages from the messaging gateway.

Adapters decode every wire shape the gateway produces into these types; the
reconciliation passes never look at raw responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class GatewayGroup:
    external_id: str
    name: str | None = None
    description: str | None = None
    size: int | None = None


@dataclass(frozen=True, slots=True)
class ParticipantRecord:
    """One participant as listed by the gateway.

    ``identity`` keeps the raw identifier fields (phone number, native id) so the
    normaliser can apply its priority rules; ``names`` holds the name-bearing
    fields in preference order.
    """

    identity: Mapping[str, object]
    names: tuple[str, ...] = ()
    admin_fields: Mapping[str, object] = field(default_factory=dict[str, object])


@dataclass(frozen=True, slots=True)
class ParticipantList:
    participants: tuple[ParticipantRecord, ...]
    malformed: int = 0

    def __len__(self) -> int:
        return len(self.participants) + self.malformed


@dataclass(frozen=True, slots=True)
class MessageKey:
    id: str | None
    from_me: bool = False
    participant: str | None = None
    remote_jid: str | None = None


@dataclass(frozen=True, slots=True)
class GatewayMessage:
    key: MessageKey
    content: Mapping[str, object] | None = None
    timestamp: int | None = None
    push_name: str | None = None


@dataclass(frozen=True, slots=True)
class MessagePage:
    messages: tuple[GatewayMessage, ...]
    malformed: int = 0

    @property
    def total(self) -> int:
        return len(self.messages) + self.malformed


@dataclass(frozen=True, slots=True)
class LiveEvent:
    """One event pushed by the gateway to the webhook endpoint."""

    event_type: str | None
    instance_name: str | None = None
    message: GatewayMessage | None = None


class GatewayError(RuntimeError):
    """Raised when the gateway cannot be reached or returns an unusable payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class GatewayClient(Protocol):
    """Narrow contract the reconciliation passes need from the gateway."""

    async def list_groups(
        self, instance_name: str, *, include_participants: bool = False
    ) -> list[GatewayGroup]: ...

    async def list_group_participants(
        self, instance_name: str, group_id: str
    ) -> ParticipantList: ...

    async def list_group_messages(
        self, instance_name: str, group_id: str, *, limit: int, offset: int = 0
    ) -> MessagePage: ...

    async def aclose(self) -> None: ...

__all__ = [
    "GatewayClient",
    "GatewayError",
    "GatewayGroup",
    "GatewayMessage",
    "LiveEvent",
    "MessageKey",
    "MessagePage",
    "ParticipantList",
    "ParticipantRecord",
]
