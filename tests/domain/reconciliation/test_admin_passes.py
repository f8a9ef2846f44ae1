from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from syncnexus.domain.errors import GroupNotFoundError
from syncnexus.domain.model import NameTier, SyncStatus
from syncnexus.domain.names import NameCandidate
from syncnexus.domain.reconciliation import (
    MemberInjection,
    VerificationResult,
    inject_members,
    verify_group_sync,
)
from tests.helpers.gateway import GROUP_ID, make_participant

if TYPE_CHECKING:
    from syncnexus.adapters.sqlalchemy import SqlAlchemyCanonicalStore
    from tests.helpers.gateway import FakeGateway


def test_injection_writes_confirmed_names_and_links(store: SqlAlchemyCanonicalStore) -> None:
    group_id = store.upsert_group(GROUP_ID, name="Board")
    store.upsert_member("27821234567@s.whatsapp.net", NameCandidate.provisional("jane"))

    result = inject_members(
        store,
        GROUP_ID,
        [
            MemberInjection("27821234567@s.whatsapp.net", "Jane Doe"),
            MemberInjection("27821234568", "Sipho Dlamini"),
            MemberInjection("27821234569:3@s.whatsapp.net"),
        ],
    )

    assert (result.processed, result.updated_names, result.skipped) == (3, 2, 0)
    assert store.count_memberships(group_id) == 3
    jane = store.get_member("27821234567@s.whatsapp.net")
    assert jane is not None
    assert (jane.display_name, jane.name_tier) == ("Jane Doe", NameTier.CONFIRMED)


def test_injection_skips_non_phone_identifiers(store: SqlAlchemyCanonicalStore) -> None:
    store.upsert_group(GROUP_ID, name="Board")

    result = inject_members(
        store,
        GROUP_ID,
        [MemberInjection("1234567890@lid", "Ghost"), MemberInjection("", "Nobody")],
    )

    assert (result.processed, result.skipped) == (0, 2)


def test_injection_requires_known_group(store: SqlAlchemyCanonicalStore) -> None:
    with pytest.raises(GroupNotFoundError):
        inject_members(store, GROUP_ID, [MemberInjection("27821234567", "Jane")])


def test_verification_matches_after_rescue(
    gateway: FakeGateway, store: SqlAlchemyCanonicalStore
) -> None:
    group_id = store.upsert_group(GROUP_ID, name="Board")
    for phone in ("27821234567", "27821234568"):
        member = store.upsert_member(f"{phone}@s.whatsapp.net")
        store.link_membership(group_id, member.member_id)
    gateway.participants[GROUP_ID] = [
        make_participant(phone="27821234567"),
        make_participant(phone="27821234568"),
    ]

    result = asyncio.run(
        verify_group_sync(gateway=gateway, store=store, instance_name="sa", group_id=GROUP_ID)
    )

    assert (result.gateway_count, result.stored_count) == (2, 2)
    assert result.status is SyncStatus.MATCHED


def test_verification_reports_incomplete_for_unknown_group(
    gateway: FakeGateway, store: SqlAlchemyCanonicalStore
) -> None:
    gateway.participants[GROUP_ID] = [make_participant(phone="27821234567")]

    result = asyncio.run(
        verify_group_sync(gateway=gateway, store=store, instance_name="sa", group_id=GROUP_ID)
    )

    assert result.stored_count == 0
    assert result.status is SyncStatus.INCOMPLETE


def test_verification_treats_gateway_failure_as_zero(
    gateway: FakeGateway, store: SqlAlchemyCanonicalStore
) -> None:
    gateway.failing_groups.add(GROUP_ID)

    result = asyncio.run(
        verify_group_sync(gateway=gateway, store=store, instance_name="sa", group_id=GROUP_ID)
    )

    assert result == VerificationResult(gateway_count=0, stored_count=0)
    assert result.status is SyncStatus.MATCHED
