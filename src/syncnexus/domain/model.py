"""Canonical entities of the instance → group → member → message graph."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

PROVISIONAL_MARKER = "~"


class NameTier(IntEnum):
    """Trust level of a stored display name, lowest to highest."""

    ABSENT = 1
    SELF_REFERENTIAL = 2
    NUMERIC_LIKE = 3
    PROVISIONAL = 4
    CONFIRMED = 5


class MediaType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    STICKER = "sticker"
    OTHER = "other"

    @property
    def has_media(self) -> bool:
        return self in {MediaType.IMAGE, MediaType.VIDEO, MediaType.AUDIO, MediaType.DOCUMENT}


class SyncStatus(StrEnum):
    MATCHED = "MATCHED"
    INCOMPLETE = "INCOMPLETE"


@dataclass(eq=False, kw_only=True)
class Instance:
    """One messaging-gateway connection."""

    name: str
    is_active: bool = True
    id: int | None = None
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Group:
    external_id: str
    name: str
    instance_id: int | None = None
    description: str | None = None
    participant_count: int | None = None
    is_active: bool = True
    monitoring_enabled: bool = False
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Member:
    """A person, keyed by the canonical member identifier."""

    external_id: str
    display_name: str | None = None
    name_tier: NameTier = NameTier.ABSENT
    phone_number: str | None = None

    # Written by the enrichment collaborator only.
    job_title: str | None = None
    company_name: str | None = None
    profile_summary: str | None = None

    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def marked_name(self) -> str | None:
        """Display form of the name; provisional names carry the ``~`` marker."""
        if self.display_name is None:
            return None
        if self.name_tier is NameTier.PROVISIONAL:
            return f"{PROVISIONAL_MARKER}{self.display_name}"
        return self.display_name


@dataclass(eq=False, kw_only=True)
class GroupMembership:
    group_id: int
    member_id: int
    is_admin: bool = False
    joined_at: datetime | None = None
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class Message:
    """One observed chat message; immutable once stored."""

    external_id: str
    group_id: int
    sender_id: int
    body: str
    media_type: MediaType = MediaType.TEXT
    from_me: bool = False
    sent_at: datetime | None = None
    id: int | None = None
    created_at: datetime | None = None


