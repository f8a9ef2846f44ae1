"""Engine lifecycle for the SQLAlchemy store.

The engine is created once at process start and handed to the store by
injection; nothing in the adapter keeps it in module state.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, make_url
from sqlalchemy.pool import StaticPool

from syncnexus.config import DatabaseConfig, get_database_config

from .mappings import start_mappers
from .migrations import upgrade_head

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)


def create_store_engine(config: DatabaseConfig | None = None) -> Engine:
    resolved = config or get_database_config()
    url = make_url(resolved.uri)
    if url.get_backend_name() == "sqlite" and url.database in {None, "", ":memory:"}:
        # Store calls run on worker threads; they must all share the one connection.
        return create_engine(
            url,
            echo=resolved.echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=resolved.echo, future=True)


def startup(*, engine: Engine | None = None, database_uri: str | None = None) -> Engine:
    """Create (if needed) and migrate the engine, returning it to the caller."""

    if engine is None:
        engine = create_store_engine(DatabaseConfig(uri=database_uri) if database_uri else None)
    start_mappers()
    upgrade_head(engine=engine)
    log.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")
    return engine


def shutdown(engine: Engine) -> None:
    engine.dispose()
