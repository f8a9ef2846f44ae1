"""Background batch: metadata sync once, then a deep participant sync per group."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .metadata import store_group_metadata
from .participants import rescue_group_participants

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from syncnexus.domain.ports import CanonicalStore, GatewayClient, GatewayGroup

log = getLogger(__name__)

DEFAULT_PACING_SECONDS = 1.0

type ProgressCallback = Callable[[int, int, GatewayGroup], None]
type SleepFunction = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class BatchResult:
    total: int
    synced: int = 0
    failed: list[str] = field(default_factory=list)


async def run_full_sync(
    *,
    gateway: GatewayClient,
    store: CanonicalStore,
    instance_name: str,
    groups: Sequence[GatewayGroup],
    pacing_seconds: float = DEFAULT_PACING_SECONDS,
    on_progress: ProgressCallback | None = None,
    sleep: SleepFunction = asyncio.sleep,
) -> BatchResult:
    """Reconcile every group in ``groups`` one after another.

    A failing group is logged once and skipped; nothing is retried and nothing
    escalates. ``pacing_seconds`` separates consecutive participant fetches.
    """

    total = len(groups)
    log.info(f"Starting full sync of {total} group(s) for {instance_name}")
    await asyncio.to_thread(store_group_metadata, store, groups, instance_name=instance_name)

    result = BatchResult(total=total)
    for index, group in enumerate(groups, start=1):
        if index > 1 and pacing_seconds > 0:
            await sleep(pacing_seconds)
        if on_progress is not None:
            on_progress(index, total, group)
        log.info(f"[{index}/{total}] Syncing {group.name or group.external_id}")
        try:
            await rescue_group_participants(
                gateway=gateway,
                store=store,
                instance_name=instance_name,
                group_id=group.external_id,
            )
        except Exception:  # noqa: BLE001
            log.exception(f"Failed to sync {group.name or group.external_id}")
            result.failed.append(group.external_id)
            continue
        result.synced += 1

    log.info(
        f"Full sync for {instance_name} complete: {result.synced}/{total} synced, "
        f"{len(result.failed)} failed"
    )
    return result
