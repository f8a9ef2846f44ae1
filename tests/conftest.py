from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002

from syncnexus.adapters.sqlalchemy import (
    SqlAlchemyCanonicalStore,
    create_store_engine,
    start_mappers,
)
from syncnexus.adapters.sqlalchemy.migrations import upgrade_head
from syncnexus.config import DatabaseConfig
from tests.helpers.gateway import FakeGateway

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_store_engine(DatabaseConfig(uri="sqlite+pysqlite:///:memory:"))
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(sqlite_engine: Engine) -> SqlAlchemyCanonicalStore:
    return SqlAlchemyCanonicalStore(sqlite_engine)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(autouse=True)
def _gateway_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EVOLUTION_API_URL", "https://evolution.test")
    monkeypatch.setenv("EVOLUTION_API_KEY", "test-key")
    monkeypatch.delenv("EVOLUTION_INSTANCE_NAME", raising=False)
    monkeypatch.delenv("EVOLUTION_CACHE_TTL_SECONDS", raising=False)
    monkeypatch.delenv("INJECTION_GROUP_ID", raising=False)
    monkeypatch.delenv("SYNC_GROUP_PACING_SECONDS", raising=False)
    monkeypatch.delenv("SYNC_MESSAGE_LIMIT", raising=False)
