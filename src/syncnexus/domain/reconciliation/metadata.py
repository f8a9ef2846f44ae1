"""Metadata sync: refresh group names, descriptions and size estimates."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from syncnexus.domain.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from syncnexus.domain.ports import CanonicalStore, GatewayClient, GatewayGroup

log = getLogger(__name__)

UNNAMED_GROUP = "Unknown Group"


@dataclass(slots=True)
class MetadataSyncResult:
    fetched: int
    synced: int
    groups: list[GatewayGroup] = field(default_factory=list)


async def fetch_group_metadata(gateway: GatewayClient, instance_name: str) -> list[GatewayGroup]:
    """List every group of ``instance_name`` without participants.

    Participants are never requested here; large instances time out otherwise.
    """

    return await gateway.list_groups(instance_name, include_participants=False)


def store_group_metadata(
    store: CanonicalStore,
    groups: Sequence[GatewayGroup],
    *,
    instance_name: str,
) -> MetadataSyncResult:
    instance_id = store.get_or_create_instance(instance_name)
    synced: list[GatewayGroup] = []
    for group in groups:
        try:
            store.upsert_group(
                group.external_id,
                name=group.name or UNNAMED_GROUP,
                description=group.description,
                participant_count=group.size,
                instance_id=instance_id,
            )
        except StoreError:
            log.exception(f"Failed to save group {group.name or group.external_id}")
            continue
        synced.append(group)
    return MetadataSyncResult(fetched=len(groups), synced=len(synced), groups=synced)


async def sync_group_metadata(
    *,
    gateway: GatewayClient,
    store: CanonicalStore,
    instance_name: str,
) -> MetadataSyncResult:
    """Fetch all groups of an instance and upsert each one.

    Gateway failures propagate: without the group list there is nothing to
    reconcile. A group that fails to store is logged and left out of ``synced``.
    """

    log.info(f"Starting group metadata sync for {instance_name}")
    groups = await fetch_group_metadata(gateway, instance_name)
    result = await asyncio.to_thread(
        store_group_metadata, store, groups, instance_name=instance_name
    )
    log.info(f"Group metadata sync for {instance_name}: {result.synced}/{result.fetched} synced")
    return result
