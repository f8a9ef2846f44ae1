"""Reconciliation passes between the messaging gateway and the canonical store.

Each pass is stateless and safe to run concurrently with any other: all
coordination happens through the idempotent writes of the store.
"""

from __future__ import annotations

from .admin import (
    InjectionResult,
    MemberInjection,
    VerificationResult,
    inject_members,
    verify_group_sync,
)
from .batch import BatchResult, ProgressCallback, run_full_sync
from .events import EventOutcome, handle_live_event
from .history import HarvestResult, IngestOutcome, harvest_group_messages, ingest_message
from .metadata import (
    MetadataSyncResult,
    fetch_group_metadata,
    store_group_metadata,
    sync_group_metadata,
)
from .participants import RescueResult, is_admin, rescue_group_participants

__all__ = [
    "BatchResult",
    "EventOutcome",
    "HarvestResult",
    "IngestOutcome",
    "InjectionResult",
    "MemberInjection",
    "MetadataSyncResult",
    "ProgressCallback",
    "RescueResult",
    "VerificationResult",
    "fetch_group_metadata",
    "handle_live_event",
    "harvest_group_messages",
    "inject_members",
    "ingest_message",
    "is_admin",
    "rescue_group_participants",
    "run_full_sync",
    "store_group_metadata",
    "sync_group_metadata",
    "verify_group_sync",
]
