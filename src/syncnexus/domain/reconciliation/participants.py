"""Deep participant sync ("rescue") for a single group."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from syncnexus.domain.errors import NoParticipantsError, StoreError
from syncnexus.domain.identifiers import resolve_member_id
from syncnexus.domain.names import NameCandidate
from syncnexus.domain.ports import GatewayError, ParticipantList

if TYPE_CHECKING:
    from syncnexus.domain.ports import CanonicalStore, GatewayClient, ParticipantRecord

log = getLogger(__name__)

PLACEHOLDER_GROUP_NAME: Final[str] = "Synced Group"
ADMIN_ROLES: Final[frozenset[str]] = frozenset({"admin", "superadmin"})


@dataclass(slots=True)
class RescueResult:
    fixed: int = 0
    total_scanned: int = 0
    renamed: int = 0
    skipped: int = 0


def is_admin(fields: Mapping[str, object]) -> bool:
    """Interpret whichever admin marker spelling the gateway used."""

    for key in ("admin", "role"):
        value = fields.get(key)
        if isinstance(value, str) and value.strip().lower() in ADMIN_ROLES:
            return True
    return any(fields.get(key) is True for key in ("isAdmin", "is_admin", "isSuperAdmin"))


async def rescue_group_participants(
    *,
    gateway: GatewayClient,
    store: CanonicalStore,
    instance_name: str,
    group_id: str,
    participants: ParticipantList | None = None,
) -> RescueResult:
    """Link every participant of ``group_id`` and recover provisional names.

    ``participants`` may be passed in when the caller already fetched the list.
    Raises :class:`NoParticipantsError` when the gateway reports nobody at all;
    an unreachable gateway counts as an empty list.
    """

    log.info(f"Starting deep participant sync for {group_id}")
    internal_group_id = await asyncio.to_thread(
        _ensure_group_row, store, instance_name, group_id
    )

    if participants is None:
        participants = await _fetch_participants(gateway, instance_name, group_id)
    if len(participants) == 0:
        raise NoParticipantsError(group_id)

    result = RescueResult(total_scanned=len(participants), skipped=participants.malformed)
    for participant in participants.participants:
        try:
            await asyncio.to_thread(
                _reconcile_participant, store, internal_group_id, participant, result
            )
        except StoreError:
            log.warning(f"Skipping participant {dict(participant.identity)} of {group_id}")
            result.skipped += 1

    log.info(
        f"Deep participant sync for {group_id}: {result.fixed} linked, "
        f"{result.renamed} renamed, {result.skipped} skipped of {result.total_scanned}"
    )
    return result


def _ensure_group_row(store: CanonicalStore, instance_name: str, group_id: str) -> int:
    instance_id = store.get_or_create_instance(instance_name)
    internal_group_id = store.find_group_id(group_id)
    if internal_group_id is None:
        internal_group_id = store.ensure_group(
            group_id, placeholder_name=PLACEHOLDER_GROUP_NAME, instance_id=instance_id
        )
    return internal_group_id


async def _fetch_participants(
    gateway: GatewayClient, instance_name: str, group_id: str
) -> ParticipantList:
    try:
        return await gateway.list_group_participants(instance_name, group_id)
    except GatewayError as exc:
        log.warning(f"Participant fetch for {group_id} failed, treating as empty: {exc}")
        return ParticipantList(participants=())


def _reconcile_participant(
    store: CanonicalStore,
    group_id: int,
    participant: ParticipantRecord,
    result: RescueResult,
) -> None:
    member_key = resolve_member_id(participant.identity)
    if member_key is None:
        result.skipped += 1
        return

    candidate = NameCandidate.provisional(participant.names[0] if participant.names else None)
    member = store.upsert_member(member_key, candidate)
    if member.renamed:
        result.renamed += 1
    if store.link_membership(
        group_id, member.member_id, is_admin=is_admin(participant.admin_fields)
    ):
        result.fixed += 1
