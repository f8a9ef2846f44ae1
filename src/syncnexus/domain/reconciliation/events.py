"""Live event ingestion: one pushed message treated as a single-record harvest."""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from syncnexus.domain.identifiers import canonicalize, is_group_id

from .history import IngestOutcome, ingest_message

if TYPE_CHECKING:
    from syncnexus.domain.ports import CanonicalStore, LiveEvent

log = getLogger(__name__)

MESSAGE_UPSERT_EVENT: Final[str] = "messages.upsert"


class EventOutcome(StrEnum):
    SAVED = "saved"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    SKIPPED = "skipped"
    FAILED = "failed"


_EVENT_OUTCOMES: Final[dict[IngestOutcome, EventOutcome]] = {
    IngestOutcome.SAVED: EventOutcome.SAVED,
    IngestOutcome.DUPLICATE: EventOutcome.DUPLICATE,
    IngestOutcome.REJECTED: EventOutcome.SKIPPED,
}


def handle_live_event(store: CanonicalStore, event: LiveEvent) -> EventOutcome:
    """Apply one webhook event to the store.

    Never raises: the emitter retries anything that is not acknowledged, so
    processing failures are logged and reported as ``FAILED`` instead.
    """

    log.info(f"Webhook received: {event.event_type}")
    if event.event_type != MESSAGE_UPSERT_EVENT:
        return EventOutcome.IGNORED

    message = event.message
    if message is None:
        log.warning("Webhook message event carried no usable message")
        return EventOutcome.IGNORED

    group_key = canonicalize(message.key.remote_jid) if message.key.remote_jid else None
    if group_key is None or not is_group_id(group_key):
        log.info(f"Ignored message outside a group chat: {message.key.remote_jid}")
        return EventOutcome.IGNORED

    try:
        group_id = store.find_group_id(group_key)
        if group_id is None:
            log.warning(f"Skipped message: group {message.key.remote_jid} not found in store")
            return EventOutcome.SKIPPED

        outcome = ingest_message(store, group_id, message, link_sender=True)
    except Exception:  # noqa: BLE001
        log.exception(f"Webhook processing failed for message {message.key.id}")
        return EventOutcome.FAILED

    if outcome is IngestOutcome.SAVED:
        log.info(f"Saved message from {message.push_name} in {group_key}")
    return _EVENT_OUTCOMES[outcome]
