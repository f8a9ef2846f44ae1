"""Ports for the canonical store.

Every write is idempotent and keyed by the external identifier, so repeated or
overlapping passes converge on the same rows without locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from syncnexus.domain.model import Group, GroupMembership, MediaType, Member
    from syncnexus.domain.names import NameCandidate


@dataclass(frozen=True, slots=True)
class MemberUpsert:
    member_id: int
    created: bool = False
    renamed: bool = False


@dataclass(frozen=True, slots=True)
class MessageInsert:
    inserted: bool
    message_id: int | None = None


@runtime_checkable
class CanonicalStore(Protocol):
    def get_or_create_instance(self, name: str) -> int: ...

    def upsert_group(
        self,
        external_id: str,
        *,
        name: str,
        description: str | None = None,
        participant_count: int | None = None,
        instance_id: int | None = None,
    ) -> int: ...

    def ensure_group(
        self, external_id: str, *, placeholder_name: str, instance_id: int | None = None
    ) -> int: ...

    def upsert_member(
        self, member_id: str, candidate: NameCandidate | None = None
    ) -> MemberUpsert: ...

    def link_membership(self, group_id: int, member_id: int, *, is_admin: bool = False) -> bool: ...

    def insert_message(
        self,
        external_id: str,
        *,
        group_id: int,
        sender_id: int,
        body: str,
        media_type: MediaType,
        from_me: bool,
        sent_at: datetime,
    ) -> MessageInsert: ...

    def find_group_id(self, external_id: str) -> int | None: ...

    def get_group(self, external_id: str) -> Group | None: ...

    def get_member(self, member_id: str) -> Member | None: ...

    def count_memberships(self, group_id: int) -> int: ...

    def list_memberships(self, group_id: int) -> list[GroupMembership]: ...

    def count_messages(self, group_id: int | None = None) -> int: ...
