"""Translate Evolution API payloads into gateway port records."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from syncnexus.domain.ports.gateway import (
    GatewayGroup,
    GatewayMessage,
    LiveEvent,
    MessageKey,
    MessagePage,
    ParticipantList,
    ParticipantRecord,
)

from .schema import (
    GroupPayload,
    GroupsResponse,
    MessagePayload,
    MessagesResponse,
    ParticipantPayload,
    ParticipantsResponse,
    WebhookEnvelope,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)


class PayloadShapeError(ValueError):
    """Raised when a response envelope matches none of the accepted shapes."""


def translate_groups(payload: object) -> list[GatewayGroup]:
    try:
        response = GroupsResponse.model_validate(payload)
    except ValidationError as exc:
        raise PayloadShapeError("Unrecognised group listing payload") from exc

    groups: list[GatewayGroup] = []
    for item in response.items():
        try:
            group = GroupPayload.model_validate(item)
        except ValidationError:
            log.warning("Skipping malformed group record")
            continue
        groups.append(
            GatewayGroup(
                external_id=group.id,
                name=group.subject,
                description=group.desc,
                size=group.size,
            )
        )
    return groups


def translate_participants(payload: object) -> ParticipantList:
    try:
        response = ParticipantsResponse.model_validate(payload)
    except ValidationError as exc:
        raise PayloadShapeError("Unrecognised participant listing payload") from exc

    participants: list[ParticipantRecord] = []
    malformed = 0
    for item in response.items():
        try:
            participant = ParticipantPayload.model_validate(item)
        except ValidationError:
            malformed += 1
            continue
        participants.append(
            ParticipantRecord(
                identity=participant.identity(),
                names=participant.names(),
                admin_fields=participant.admin_fields(),
            )
        )
    if malformed:
        log.warning(f"Skipped {malformed} malformed participant record(s)")
    return ParticipantList(participants=tuple(participants), malformed=malformed)


def translate_message(payload: object) -> GatewayMessage:
    """Validate a single message record; raises ``ValidationError`` on bad input."""

    message = MessagePayload.model_validate(payload)
    return GatewayMessage(
        key=MessageKey(
            id=message.key.id,
            from_me=message.key.from_me,
            participant=message.key.participant,
            remote_jid=message.key.remote_jid,
        ),
        content=message.message or {},
        timestamp=message.message_timestamp,
        push_name=message.push_name,
    )


def translate_messages(payload: object) -> MessagePage:
    try:
        response = MessagesResponse.model_validate(payload)
    except ValidationError as exc:
        raise PayloadShapeError("Unrecognised message listing payload") from exc

    messages: list[GatewayMessage] = []
    malformed = 0
    for item in response.items():
        try:
            messages.append(translate_message(item))
        except ValidationError:
            malformed += 1
    if malformed:
        log.warning(f"Skipped {malformed} malformed message record(s)")
    return MessagePage(messages=tuple(messages), malformed=malformed)


def decode_webhook(payload: Mapping[str, object]) -> LiveEvent:
    """Decode a webhook body.

    Unknown or incomplete envelopes never raise: the event is returned with
    ``message`` set to ``None`` and the caller decides to ignore it.
    """

    try:
        envelope = WebhookEnvelope.model_validate(payload)
    except ValidationError:
        log.warning("Ignoring webhook with unrecognised envelope")
        return LiveEvent(event_type=None, instance_name=None, message=None)

    message: GatewayMessage | None = None
    raw_message = envelope.message_data()
    if raw_message is not None:
        try:
            message = translate_message(raw_message)
        except ValidationError:
            log.warning(f"Ignoring malformed message in {envelope.event_type} webhook")
    return LiveEvent(
        event_type=envelope.event_type,
        instance_name=envelope.instance,
        message=message,
    )
