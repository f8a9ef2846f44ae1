"""Initial schema: instances, groups, members, memberships, messages.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_NAME_TIERS = ("ABSENT", "SELF_REFERENTIAL", "NUMERIC_LIKE", "PROVISIONAL", "CONFIRMED")
_MEDIA_TYPES = ("text", "image", "video", "audio", "document", "sticker", "other")


def upgrade() -> None:
    op.create_table(
        "wa_instance",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("name", name="uq_wa_instance_name"),
    )
    op.create_table(
        "wa_group",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("participant_count", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("monitoring_enabled", sa.Boolean(), nullable=False),
        sa.Column("instance_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("external_id", name="uq_wa_group_external_id"),
        sa.ForeignKeyConstraint(
            ["instance_id"], ["wa_instance.id"], name="fk_wa_group_instance_id_wa_instance"
        ),
    )
    op.create_table(
        "wa_member",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column(
            "name_tier",
            sa.Enum(*_NAME_TIERS, name="nametier", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column("phone_number", sa.String(64), nullable=True),
        sa.Column("job_title", sa.String(255), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("profile_summary", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("external_id", name="uq_wa_member_external_id"),
    )
    op.create_table(
        "wa_group_member",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "group_id", "member_id", name="uq_wa_group_member_group_id_member_id"
        ),
        sa.ForeignKeyConstraint(
            ["group_id"], ["wa_group.id"], name="fk_wa_group_member_group_id_wa_group"
        ),
        sa.ForeignKeyConstraint(
            ["member_id"], ["wa_member.id"], name="fk_wa_group_member_member_id_wa_member"
        ),
    )
    op.create_table(
        "wa_message",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column(
            "media_type",
            sa.Enum(*_MEDIA_TYPES, name="mediatype", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column("from_me", sa.Boolean(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("external_id", name="uq_wa_message_external_id"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["wa_group.id"], name="fk_wa_message_group_id_wa_group"
        ),
        sa.ForeignKeyConstraint(
            ["sender_id"], ["wa_member.id"], name="fk_wa_message_sender_id_wa_member"
        ),
    )
    op.create_index("ix_wa_message_group_id", "wa_message", ["group_id"])
    op.create_index("ix_wa_message_sender_id", "wa_message", ["sender_id"])


def downgrade() -> None:
    op.drop_index("ix_wa_message_sender_id", table_name="wa_message")
    op.drop_index("ix_wa_message_group_id", table_name="wa_message")
    op.drop_table("wa_message")
    op.drop_table("wa_group_member")
    op.drop_table("wa_member")
    op.drop_table("wa_group")
    op.drop_table("wa_instance")
