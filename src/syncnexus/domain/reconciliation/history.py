"""Message history harvest and the shared per-message ingestion step."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from syncnexus.domain.errors import GroupNotFoundError, StoreError
from syncnexus.domain.identifiers import SELF_SENDER_ID, resolve_message_sender
from syncnexus.domain.messages import extract_body
from syncnexus.domain.names import NameCandidate
from syncnexus.domain.ports import GatewayError, MessagePage

if TYPE_CHECKING:
    from collections.abc import Callable

    from syncnexus.domain.ports import CanonicalStore, GatewayClient, GatewayMessage

log = getLogger(__name__)

DEFAULT_MESSAGE_LIMIT = 100


class IngestOutcome(StrEnum):
    SAVED = "saved"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


@dataclass(slots=True)
class HarvestResult:
    total_found: int = 0
    saved: int = 0
    skipped: int = 0


def _utcnow() -> datetime:
    return datetime.now(UTC)


def observed_at(timestamp: int | None, *, now: Callable[[], datetime] = _utcnow) -> datetime:
    """Convert an epoch-seconds timestamp; missing values fall back to ``now()``."""

    if timestamp is None or timestamp <= 0:
        return now()
    try:
        return datetime.fromtimestamp(timestamp, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return now()


def ingest_message(
    store: CanonicalStore,
    group_id: int,
    message: GatewayMessage,
    *,
    link_sender: bool = False,
    now: Callable[[], datetime] = _utcnow,
) -> IngestOutcome:
    """Store one gateway message for the group with internal id ``group_id``.

    The sender is created when unknown; its push name is offered as a
    provisional candidate. Raises :class:`StoreError` when a write fails.
    """

    if not message.key.id:
        return IngestOutcome.REJECTED

    body = extract_body(message.content)
    if not body.is_storable:
        return IngestOutcome.REJECTED

    sender_key = resolve_message_sender(message.key)
    if sender_key is None:
        return IngestOutcome.REJECTED

    candidate = None
    if sender_key != SELF_SENDER_ID:
        candidate = NameCandidate.provisional(message.push_name)
    sender = store.upsert_member(sender_key, candidate)
    if link_sender and sender_key != SELF_SENDER_ID:
        store.link_membership(group_id, sender.member_id, is_admin=False)

    inserted = store.insert_message(
        message.key.id,
        group_id=group_id,
        sender_id=sender.member_id,
        body=body.text,
        media_type=body.media_type,
        from_me=message.key.from_me,
        sent_at=observed_at(message.timestamp, now=now),
    )
    return IngestOutcome.SAVED if inserted.inserted else IngestOutcome.DUPLICATE


async def harvest_group_messages(
    *,
    gateway: GatewayClient,
    store: CanonicalStore,
    instance_name: str,
    group_id: str,
    limit: int = DEFAULT_MESSAGE_LIMIT,
    offset: int = 0,
) -> HarvestResult:
    """Pull one page of the gateway's message log for ``group_id`` into the store.

    Every record that is not newly saved (too short, unresolvable sender,
    duplicate id, failed write) is counted as skipped.
    """

    internal_group_id = await asyncio.to_thread(store.find_group_id, group_id)
    if internal_group_id is None:
        raise GroupNotFoundError(group_id)

    log.info(f"Harvesting messages for {group_id} (offset {offset}, limit {limit})")
    try:
        page = await gateway.list_group_messages(
            instance_name, group_id, limit=limit, offset=offset
        )
    except GatewayError as exc:
        log.warning(f"Message fetch for {group_id} failed, treating as empty: {exc}")
        page = MessagePage(messages=())

    result = HarvestResult(total_found=page.total, skipped=page.malformed)
    for message in page.messages:
        try:
            outcome = await asyncio.to_thread(ingest_message, store, internal_group_id, message)
        except StoreError:
            log.warning(f"Failed to process message {message.key.id}", exc_info=True)
            result.skipped += 1
            continue
        if outcome is IngestOutcome.SAVED:
            result.saved += 1
        else:
            result.skipped += 1

    log.info(f"Harvest for {group_id}: {result.saved} saved, {result.skipped} skipped")
    return result
