"""SQLAlchemy mapping metadata for the canonical group graph."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    func,
    orm,
)
from sqlalchemy.orm import configure_mappers

from syncnexus.domain.model import (
    Group,
    GroupMembership,
    Instance,
    MediaType,
    Member,
    Message,
    NameTier,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

instance_table = Table(
    "wa_instance",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
)

group_table = Table(
    "wa_group",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=True),
    Column("participant_count", Integer, nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("monitoring_enabled", Boolean, nullable=False, default=False),
    Column("instance_id", Integer, ForeignKey("wa_instance.id"), nullable=True),
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
    Column("updated_at", UTCDateTime, nullable=False, server_default=func.now()),
)

member_table = Table(
    "wa_member",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String(255), nullable=False, unique=True),
    Column("display_name", String(255), nullable=True),
    Column(
        "name_tier",
        Enum(NameTier, native_enum=False, length=32),
        nullable=False,
        default=NameTier.ABSENT,
    ),
    Column("phone_number", String(64), nullable=True),
    Column("job_title", String(255), nullable=True),
    Column("company_name", String(255), nullable=True),
    Column("profile_summary", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
    Column("updated_at", UTCDateTime, nullable=False, server_default=func.now()),
)

group_member_table = Table(
    "wa_group_member",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("group_id", Integer, ForeignKey("wa_group.id"), nullable=False),
    Column("member_id", Integer, ForeignKey("wa_member.id"), nullable=False),
    Column("is_admin", Boolean, nullable=False, default=False),
    Column("joined_at", UTCDateTime, nullable=True),
    UniqueConstraint("group_id", "member_id"),
)

message_table = Table(
    "wa_message",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String(255), nullable=False, unique=True),
    Column("group_id", Integer, ForeignKey("wa_group.id"), nullable=False, index=True),
    Column("sender_id", Integer, ForeignKey("wa_member.id"), nullable=False, index=True),
    Column("body", Text, nullable=False),
    Column(
        "media_type",
        Enum(
            MediaType,
            native_enum=False,
            length=32,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=MediaType.TEXT,
    ),
    Column("from_me", Boolean, nullable=False, default=False),
    Column("sent_at", UTCDateTime, nullable=True),
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model (once per process)."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Instance, instance_table)
    mapper_registry.map_imperatively(Group, group_table)
    mapper_registry.map_imperatively(Member, member_table)
    mapper_registry.map_imperatively(GroupMembership, group_member_table)
    mapper_registry.map_imperatively(Message, message_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
