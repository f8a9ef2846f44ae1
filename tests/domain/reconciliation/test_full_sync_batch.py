from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, cast

from syncnexus.domain.ports import GatewayGroup
from syncnexus.domain.reconciliation import run_full_sync
from tests.helpers.gateway import make_participant

if TYPE_CHECKING:
    import pytest

    from syncnexus.adapters.sqlalchemy import SqlAlchemyCanonicalStore
    from syncnexus.domain.ports import CanonicalStore
    from tests.helpers.gateway import FakeGateway


def _ten_groups(gateway: FakeGateway) -> list[GatewayGroup]:
    groups = [GatewayGroup(f"12036300000000{i:04d}@g.us", name=f"Group {i}") for i in range(1, 11)]
    for number, group in enumerate(groups, start=1):
        gateway.participants[group.external_id] = [
            make_participant(phone=f"2782{number:07d}", names=(f"Member {number}",)),
        ]
    return groups


def test_one_failing_group_does_not_halt_the_batch(
    gateway: FakeGateway,
    store: SqlAlchemyCanonicalStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    groups = _ten_groups(gateway)
    gateway.failing_groups.add(groups[4].external_id)
    gateway.participants[groups[4].external_id] = []
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    result = asyncio.run(
        run_full_sync(
            gateway=gateway,
            store=store,
            instance_name="sa-personal",
            groups=groups,
            pacing_seconds=1.0,
            sleep=fake_sleep,
        )
    )

    assert result.total == 10
    assert result.synced == 9
    assert result.failed == [groups[4].external_id]
    failures = [
        record
        for record in caplog.records
        if record.levelno == logging.ERROR and record.name.endswith("batch")
    ]
    assert len(failures) == 1
    assert "Group 5" in failures[0].getMessage()
    fetched = [group_id for kind, group_id in gateway.calls if kind == "participants"]
    assert fetched == [group.external_id for group in groups]
    for group in groups[:4] + groups[5:]:
        group_id = store.find_group_id(group.external_id)
        assert group_id is not None
        assert store.count_memberships(group_id) == 1
    assert sleeps == [1.0] * 9


def test_batch_reports_progress_and_stores_metadata(
    gateway: FakeGateway, store: SqlAlchemyCanonicalStore
) -> None:
    groups = _ten_groups(gateway)[:3]
    progress: list[tuple[int, int, str]] = []

    async def no_sleep(_seconds: float) -> None:
        return None

    asyncio.run(
        run_full_sync(
            gateway=gateway,
            store=store,
            instance_name="sa-personal",
            groups=groups,
            on_progress=lambda i, n, group: progress.append((i, n, group.external_id)),
            sleep=no_sleep,
        )
    )

    assert progress == [(i, 3, group.external_id) for i, group in enumerate(groups, start=1)]
    stored = store.get_group(groups[0].external_id)
    assert stored is not None
    assert stored.name == "Group 1"


def test_zero_pacing_never_sleeps(gateway: FakeGateway, store: SqlAlchemyCanonicalStore) -> None:
    groups = _ten_groups(gateway)[:2]
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    result = asyncio.run(
        run_full_sync(
            gateway=gateway,
            store=store,
            instance_name="sa-personal",
            groups=groups,
            pacing_seconds=0,
            sleep=fake_sleep,
        )
    )

    assert result.synced == 2
    assert sleeps == []


class _SlowGroupWrites:
    """Wraps a store so every group write holds its thread for ``delay`` seconds."""

    def __init__(self, inner: SqlAlchemyCanonicalStore, delay: float, ticks: list[int]) -> None:
        self.inner = inner
        self.delay = delay
        self.ticks = ticks
        self.ticks_during_write: list[int] = []

    def upsert_group(self, *args: object, **kwargs: object) -> int:
        before = len(self.ticks)
        time.sleep(self.delay)
        self.ticks_during_write.append(len(self.ticks) - before)
        return self.inner.upsert_group(*args, **kwargs)  # type: ignore[arg-type]

    def __getattr__(self, name: str) -> object:
        return getattr(self.inner, name)


def test_store_writes_leave_the_event_loop_free(
    gateway: FakeGateway, store: SqlAlchemyCanonicalStore
) -> None:
    groups = _ten_groups(gateway)[:2]
    ticks: list[int] = []
    slow_store = _SlowGroupWrites(store, delay=0.1, ticks=ticks)

    async def exercise() -> int:
        finished = asyncio.Event()

        async def ticker() -> None:
            while not finished.is_set():
                ticks.append(1)
                await asyncio.sleep(0.005)

        ticker_task = asyncio.create_task(ticker())
        try:
            result = await run_full_sync(
                gateway=gateway,
                store=cast("CanonicalStore", slow_store),
                instance_name="sa-personal",
                groups=groups,
                pacing_seconds=0,
            )
        finally:
            finished.set()
            await ticker_task
        return result.synced

    synced = asyncio.run(exercise())

    assert synced == 2
    assert len(slow_store.ticks_during_write) == 2
    assert all(count > 0 for count in slow_store.ticks_during_write)
