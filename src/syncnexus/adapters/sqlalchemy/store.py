"""Canonical store backed by SQLAlchemy.

Each public method is one transaction. Writes rely on ``INSERT ... ON CONFLICT``
against the unique external-identifier columns, and display-name updates are a
compare-and-set on the previously read name and tier, so two passes touching the
same rows concurrently both succeed without explicit locks.
"""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from syncnexus.domain.errors import StoreError
from syncnexus.domain.identifiers import phone_number_of
from syncnexus.domain.model import Group, GroupMembership, Member, NameTier
from syncnexus.domain.names import decide
from syncnexus.domain.ports.persistence import MemberUpsert, MessageInsert

from .mappings import (
    group_member_table,
    group_table,
    instance_table,
    member_table,
    message_table,
    start_mappers,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

    from syncnexus.domain.model import MediaType
    from syncnexus.domain.names import NameCandidate

log = getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlAlchemyCanonicalStore:
    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in _INSERT_BY_DIALECT:
            raise StoreError(f"Unsupported database dialect for upserts: {dialect}")
        start_mappers()
        self.engine = engine
        self._insert_factory = _INSERT_BY_DIALECT[dialect]
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    # Writes ------------------------------------------------------------------

    def get_or_create_instance(self, name: str) -> int:
        with self._transaction() as conn:
            stmt = self._insert(instance_table).values(name=name, is_active=True)
            result = conn.execute(
                stmt.on_conflict_do_nothing(index_elements=[instance_table.c.name])
            )
            if result.rowcount:
                log.info(f"Registered new instance: {name}")
            return conn.execute(
                select(instance_table.c.id).where(instance_table.c.name == name)
            ).scalar_one()

    def upsert_group(
        self,
        external_id: str,
        *,
        name: str,
        description: str | None = None,
        participant_count: int | None = None,
        instance_id: int | None = None,
    ) -> int:
        with self._transaction() as conn:
            stmt = self._insert(group_table).values(
                external_id=external_id,
                name=name,
                description=description,
                participant_count=participant_count,
                instance_id=instance_id,
                is_active=True,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[group_table.c.external_id],
                set_={
                    "name": stmt.excluded.name,
                    "updated_at": func.now(),
                    "description": func.coalesce(
                        stmt.excluded.description, group_table.c.description
                    ),
                    "participant_count": func.coalesce(
                        stmt.excluded.participant_count, group_table.c.participant_count
                    ),
                    "instance_id": func.coalesce(
                        group_table.c.instance_id, stmt.excluded.instance_id
                    ),
                },
            )
            conn.execute(stmt)
            return self._group_id(conn, external_id)

    def ensure_group(
        self, external_id: str, *, placeholder_name: str, instance_id: int | None = None
    ) -> int:
        with self._transaction() as conn:
            stmt = self._insert(group_table).values(
                external_id=external_id,
                name=placeholder_name,
                instance_id=instance_id,
                is_active=True,
            )
            conn.execute(stmt.on_conflict_do_nothing(index_elements=[group_table.c.external_id]))
            return self._group_id(conn, external_id)

    def upsert_member(
        self, member_id: str, candidate: NameCandidate | None = None
    ) -> MemberUpsert:
        with self._transaction() as conn:
            stmt = self._insert(member_table).values(
                external_id=member_id,
                display_name=None,
                name_tier=NameTier.ABSENT,
                phone_number=phone_number_of(member_id),
            )
            result = conn.execute(
                stmt.on_conflict_do_nothing(index_elements=[member_table.c.external_id])
            )
            created = result.rowcount == 1
            row = conn.execute(
                select(
                    member_table.c.id,
                    member_table.c.display_name,
                    member_table.c.name_tier,
                ).where(member_table.c.external_id == member_id)
            ).one()

            if candidate is None:
                return MemberUpsert(member_id=row.id, created=created)

            decision = decide(
                member_id=member_id,
                stored_name=row.display_name,
                stored_tier=row.name_tier,
                candidate=candidate,
            )
            if not decision.overwrite:
                return MemberUpsert(member_id=row.id, created=created)

            renamed = self._rename_if_unchanged(
                conn,
                row.id,
                expected_name=row.display_name,
                expected_tier=row.name_tier,
                name=decision.name,
                tier=decision.tier,
            )
            return MemberUpsert(member_id=row.id, created=created, renamed=renamed)

    def _rename_if_unchanged(
        self,
        conn: Connection,
        member_pk: int,
        *,
        expected_name: str | None,
        expected_tier: NameTier,
        name: str | None,
        tier: NameTier,
    ) -> bool:
        """Write the new name only if the row still holds the name it was decided against."""

        result = conn.execute(
            update(member_table)
            .where(member_table.c.id == member_pk)
            .where(member_table.c.display_name.is_not_distinct_from(expected_name))
            .where(member_table.c.name_tier == expected_tier)
            .values(display_name=name, name_tier=tier, updated_at=func.now())
        )
        return result.rowcount == 1

    def link_membership(self, group_id: int, member_id: int, *, is_admin: bool = False) -> bool:
        """Create the (group, member) link; an existing link is left untouched."""

        with self._transaction() as conn:
            stmt = self._insert(group_member_table).values(
                group_id=group_id, member_id=member_id, is_admin=is_admin
            )
            result = conn.execute(
                stmt.on_conflict_do_nothing(
                    index_elements=[group_member_table.c.group_id, group_member_table.c.member_id]
                )
            )
            return result.rowcount == 1

    def insert_message(
        self,
        external_id: str,
        *,
        group_id: int,
        sender_id: int,
        body: str,
        media_type: MediaType,
        from_me: bool,
        sent_at: datetime,
    ) -> MessageInsert:
        with self._transaction() as conn:
            stmt = self._insert(message_table).values(
                external_id=external_id,
                group_id=group_id,
                sender_id=sender_id,
                body=body,
                media_type=media_type,
                from_me=from_me,
                sent_at=sent_at,
            )
            result = conn.execute(
                stmt.on_conflict_do_nothing(index_elements=[message_table.c.external_id])
            )
            if result.rowcount != 1:
                return MessageInsert(inserted=False)
            message_id = conn.execute(
                select(message_table.c.id).where(message_table.c.external_id == external_id)
            ).scalar_one()
            return MessageInsert(inserted=True, message_id=message_id)

    # Reads -------------------------------------------------------------------

    def find_group_id(self, external_id: str) -> int | None:
        with self._session() as session:
            return session.execute(
                select(group_table.c.id).where(group_table.c.external_id == external_id)
            ).scalar_one_or_none()

    def get_group(self, external_id: str) -> Group | None:
        with self._session() as session:
            return session.scalars(
                select(Group).where(group_table.c.external_id == external_id)
            ).one_or_none()

    def get_member(self, member_id: str) -> Member | None:
        with self._session() as session:
            return session.scalars(
                select(Member).where(member_table.c.external_id == member_id)
            ).one_or_none()

    def count_memberships(self, group_id: int) -> int:
        with self._session() as session:
            return session.execute(
                select(func.count())
                .select_from(group_member_table)
                .where(group_member_table.c.group_id == group_id)
            ).scalar_one()

    def list_memberships(self, group_id: int) -> list[GroupMembership]:
        with self._session() as session:
            return list(
                session.scalars(
                    select(GroupMembership)
                    .where(group_member_table.c.group_id == group_id)
                    .order_by(group_member_table.c.id)
                )
            )

    def count_messages(self, group_id: int | None = None) -> int:
        stmt = select(func.count()).select_from(message_table)
        if group_id is not None:
            stmt = stmt.where(message_table.c.group_id == group_id)
        with self._session() as session:
            return session.execute(stmt).scalar_one()

    # Helpers -----------------------------------------------------------------

    def _insert(self, table: Table) -> Any:
        return self._insert_factory(table)

    @staticmethod
    def _group_id(conn: Connection, external_id: str) -> int:
        return conn.execute(
            select(group_table.c.id).where(group_table.c.external_id == external_id)
        ).scalar_one()

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc


if TYPE_CHECKING:
    from syncnexus.domain.ports.persistence import CanonicalStore

    _store_check: CanonicalStore = SqlAlchemyCanonicalStore(cast("Engine", object()))
