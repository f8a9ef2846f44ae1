"""Operator-driven maintenance: batch member injection and sync verification."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from syncnexus.domain.errors import GroupNotFoundError, StoreError
from syncnexus.domain.identifiers import USER_JID_SUFFIX, canonicalize
from syncnexus.domain.model import SyncStatus
from syncnexus.domain.names import NameCandidate
from syncnexus.domain.ports import GatewayError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from syncnexus.domain.ports import CanonicalStore, GatewayClient


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MemberInjection:
    identifier: str
    display_name: str | None = None


@dataclass(slots=True)
class InjectionResult:
    processed: int = 0
    updated_names: int = 0
    skipped: int = 0


@dataclass(frozen=True, slots=True)
class VerificationResult:
    gateway_count: int
    stored_count: int

    @property
    def status(self) -> SyncStatus:
        if self.stored_count >= self.gateway_count:
            return SyncStatus.MATCHED
        return SyncStatus.INCOMPLETE


def inject_members(
    store: CanonicalStore,
    group_id: str,
    members: Sequence[MemberInjection],
) -> InjectionResult:
    """Write an operator-supplied roster into ``group_id``.

    Names arrive from a trusted source and are stored at the confirmed tier.
    Identifiers that do not resolve to a member on the phone-number network are
    skipped.
    """

    internal_group_id = store.find_group_id(group_id)
    if internal_group_id is None:
        raise GroupNotFoundError(group_id)

    log.info(f"Injecting batch of {len(members)} member(s) into {group_id}")
    result = InjectionResult()
    for entry in members:
        member_key = canonicalize(entry.identifier)
        if member_key is None or not member_key.endswith(USER_JID_SUFFIX):
            result.skipped += 1
            continue
        try:
            member = store.upsert_member(member_key, NameCandidate.confirmed(entry.display_name))
            store.link_membership(internal_group_id, member.member_id, is_admin=False)
        except StoreError:
            log.warning(f"Failed to inject member {member_key}", exc_info=True)
            result.skipped += 1
            continue
        result.processed += 1
        if member.renamed:
            result.updated_names += 1

    log.info(
        f"Injection into {group_id}: {result.processed} processed, "
        f"{result.updated_names} renamed, {result.skipped} skipped"
    )
    return result


async def verify_group_sync(
    *,
    gateway: GatewayClient,
    store: CanonicalStore,
    instance_name: str,
    group_id: str,
) -> VerificationResult:
    """Compare the gateway's participant count with the stored membership count."""

    try:
        participants = await gateway.list_group_participants(instance_name, group_id)
        gateway_count = len(participants)
    except GatewayError as exc:
        log.warning(f"Participant fetch for {group_id} failed, counting as zero: {exc}")
        gateway_count = 0

    stored_count = await asyncio.to_thread(_stored_member_count, store, group_id)
    return VerificationResult(gateway_count=gateway_count, stored_count=stored_count)


def _stored_member_count(store: CanonicalStore, group_id: str) -> int:
    internal_group_id = store.find_group_id(group_id)
    return 0 if internal_group_id is None else store.count_memberships(internal_group_id)
