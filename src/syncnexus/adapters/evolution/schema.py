"""Pydantic models describing the Evolution API payloads.

The gateway is inconsistent about envelopes: the same listing may arrive as a
bare array or wrapped under ``participants``, ``data``, ``records`` or
``messages.records``. Each response model below is a union over the accepted
shapes and exposes the unwrapped item list; individual items are validated one
by one so that a single malformed record never poisons the rest.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _text_or_none(value: object) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _decode_json_text(value: object) -> object:
    # The persisted message log stores key/message as JSON text in some versions.
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


class EvolutionBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# Groups ----------------------------------------------------------------------


class GroupPayload(EvolutionBaseModel):
    id: str
    subject: str | None = None
    desc: str | None = None
    size: int | None = None

    _normalize_text = field_validator("subject", "desc", mode="before")(_text_or_none)


class GroupsEnvelope(EvolutionBaseModel):
    groups: list[object]


class GroupsDataEnvelope(EvolutionBaseModel):
    data: list[object]


class GroupsResponse(RootModel[list[object] | GroupsEnvelope | GroupsDataEnvelope]):
    def items(self) -> list[object]:
        root = self.root
        if isinstance(root, GroupsEnvelope):
            return root.groups
        if isinstance(root, GroupsDataEnvelope):
            return root.data
        return root


# Participants ----------------------------------------------------------------

IDENTITY_FIELDS = ("phoneNumber", "phone_number", "phone", "id", "jid")
NAME_FIELDS = ("pushName", "notify", "name", "verifiedName")
ADMIN_FIELDS = ("admin", "isAdmin", "is_admin", "isSuperAdmin", "role")


class ParticipantsEnvelope(EvolutionBaseModel):
    participants: list[object]


class ParticipantsDataEnvelope(EvolutionBaseModel):
    data: list[object] | ParticipantsEnvelope


class ParticipantsResponse(
    RootModel[list[object] | ParticipantsEnvelope | ParticipantsDataEnvelope]
):
    def items(self) -> list[object]:
        root = self.root
        if isinstance(root, ParticipantsEnvelope):
            return root.participants
        if isinstance(root, ParticipantsDataEnvelope):
            data = root.data
            return data.participants if isinstance(data, ParticipantsEnvelope) else data
        return root


class ParticipantPayload(RootModel[dict[str, object]]):
    """A single participant; kept loose so the normaliser sees every raw field."""

    def identity(self) -> dict[str, object]:
        return {key: self.root[key] for key in IDENTITY_FIELDS if self.root.get(key) is not None}

    def names(self) -> tuple[str, ...]:
        names: list[str] = []
        for key in NAME_FIELDS:
            value = _text_or_none(self.root.get(key))
            if value is not None:
                names.append(value)
        return tuple(names)

    def admin_fields(self) -> dict[str, object]:
        return {key: self.root[key] for key in ADMIN_FIELDS if key in self.root}


# Messages --------------------------------------------------------------------


class MessageKeyPayload(EvolutionBaseModel):
    id: str | None = None
    from_me: bool = Field(default=False, alias="fromMe")
    participant: str | None = None
    remote_jid: str | None = Field(default=None, alias="remoteJid")

    _normalize_ids = field_validator("id", "participant", "remote_jid", mode="before")(
        _blank_to_none
    )

    @field_validator("from_me", mode="before")
    @classmethod
    def _none_is_false(cls, value: object) -> object:
        return False if value is None else value


class MessagePayload(EvolutionBaseModel):
    key: MessageKeyPayload
    message: dict[str, object] | None = None
    message_timestamp: int | None = Field(default=None, alias="messageTimestamp")
    push_name: str | None = Field(default=None, alias="pushName")

    _decode_key = field_validator("key", "message", mode="before")(_decode_json_text)
    _normalize_push_name = field_validator("push_name", mode="before")(_text_or_none)

    @field_validator("message_timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: object) -> object:
        # Protobuf longs are serialised as {"low": ..., "high": ..., "unsigned": ...}.
        if isinstance(value, Mapping):
            long_value = cast(Mapping[str, object], value)
            low = long_value.get("low")
            high = long_value.get("high") or 0
            if isinstance(low, int) and isinstance(high, int):
                return (high << 32) + (low & 0xFFFFFFFF)
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return int(stripped) if stripped.isdigit() else None
        return value


class MessageRecordsEnvelope(EvolutionBaseModel):
    records: list[object]


class MessagesEnvelope(EvolutionBaseModel):
    messages: MessageRecordsEnvelope | list[object]


class MessagesDataEnvelope(EvolutionBaseModel):
    data: list[object]


class MessagesResponse(
    RootModel[list[object] | MessagesEnvelope | MessageRecordsEnvelope | MessagesDataEnvelope]
):
    def items(self) -> list[object]:
        root = self.root
        if isinstance(root, MessagesEnvelope):
            messages = root.messages
            return messages.records if isinstance(messages, MessageRecordsEnvelope) else messages
        if isinstance(root, MessageRecordsEnvelope):
            return root.records
        if isinstance(root, MessagesDataEnvelope):
            return root.data
        return root


# Webhooks --------------------------------------------------------------------


class WebhookEnvelope(EvolutionBaseModel):
    event: str | None = None
    type: str | None = None
    instance: str | None = None
    data: dict[str, object] | None = None

    @property
    def event_type(self) -> str | None:
        return self.type or self.event

    def message_data(self) -> object | None:
        if self.data is None:
            return None
        nested = self.data.get("data")
        if isinstance(nested, Mapping):
            return nested
        return self.data
