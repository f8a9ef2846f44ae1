from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, inspect, select
from sqlalchemy.orm import Session

from syncnexus.adapters.sqlalchemy import create_all_tables, create_store_engine, start_mappers
from syncnexus.adapters.sqlalchemy.mappings import member_table, message_table
from syncnexus.config import DatabaseConfig
from syncnexus.domain.model import Group, MediaType, Member, Message, NameTier

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

CANONICAL_TABLES = {"wa_instance", "wa_group", "wa_member", "wa_group_member", "wa_message"}


def test_start_mappers_is_idempotent() -> None:
    # First invocation happens in the sqlite_engine fixture; calling again should be harmless.
    start_mappers()
    start_mappers()


def test_migrations_create_canonical_tables(sqlite_engine: Engine) -> None:
    table_names = set(inspect(sqlite_engine).get_table_names())

    assert CANONICAL_TABLES <= table_names


def test_create_all_tables_matches_migrated_columns(sqlite_engine: Engine) -> None:
    fresh = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        create_all_tables(fresh)
        fresh_inspector = inspect(fresh)
        migrated_inspector = inspect(sqlite_engine)
        for table in CANONICAL_TABLES:
            fresh_columns = {column["name"] for column in fresh_inspector.get_columns(table)}
            migrated = {column["name"] for column in migrated_inspector.get_columns(table)}
            assert fresh_columns == migrated, table
    finally:
        fresh.dispose()


def test_mapped_entities_round_trip(sqlite_engine: Engine) -> None:
    sent_at = datetime(2024, 5, 1, 12, 30)  # naive values are stored as UTC

    with Session(sqlite_engine, expire_on_commit=False) as session:
        group = Group(external_id="120363000000000001@g.us", name="Board")
        member = Member(
            external_id="27821234567@s.whatsapp.net",
            display_name="Thandi",
            name_tier=NameTier.CONFIRMED,
            phone_number="27821234567",
        )
        session.add_all([group, member])
        session.flush()
        assert group.id is not None
        assert member.id is not None
        session.add(
            Message(
                external_id="MSG-1",
                group_id=group.id,
                sender_id=member.id,
                body="[Image]",
                media_type=MediaType.IMAGE,
                sent_at=sent_at,
            )
        )
        session.commit()

    with Session(sqlite_engine) as session:
        stored_member = session.scalars(
            select(Member).where(member_table.c.external_id == "27821234567@s.whatsapp.net")
        ).one()
        stored_message = session.scalars(
            select(Message).where(message_table.c.external_id == "MSG-1")
        ).one()

        assert stored_member.name_tier is NameTier.CONFIRMED
        assert stored_member.created_at is not None
        assert stored_message.media_type is MediaType.IMAGE
        assert stored_message.sent_at == sent_at.replace(tzinfo=UTC)


def test_in_memory_engine_shares_one_database_across_threads() -> None:
    engine = create_store_engine(DatabaseConfig(uri="sqlite+pysqlite:///:memory:"))
    create_all_tables(engine)

    def table_names() -> set[str]:
        return set(inspect(engine).get_table_names())

    with ThreadPoolExecutor(max_workers=1) as pool:
        assert CANONICAL_TABLES <= pool.submit(table_names).result()
    engine.dispose()
