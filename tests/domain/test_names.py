from __future__ import annotations

import pytest

from syncnexus.domain.model import Member, NameTier
from syncnexus.domain.names import NameCandidate, classify_name, decide

MEMBER = "27821234567@s.whatsapp.net"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        (None, NameTier.ABSENT),
        ("  ", NameTier.ABSENT),
        (MEMBER, NameTier.SELF_REFERENTIAL),
        ("Unknown", NameTier.NUMERIC_LIKE),
        ("+27 (82) 123-4567", NameTier.NUMERIC_LIKE),
        ("~Jane", NameTier.PROVISIONAL),
        ("Jane", NameTier.PROVISIONAL),
    ],
)
def test_classify_name(name: str | None, expected: NameTier) -> None:
    assert classify_name(name, MEMBER) is expected


def test_stored_tier_is_trusted_for_real_names() -> None:
    assert classify_name("Jane", MEMBER, stored_tier=NameTier.CONFIRMED) is NameTier.CONFIRMED


def test_placeholder_shape_overrides_stored_tier() -> None:
    assert classify_name("12345", MEMBER, stored_tier=NameTier.CONFIRMED) is NameTier.NUMERIC_LIKE


def test_candidates_strip_the_legacy_marker() -> None:
    candidate = NameCandidate.provisional("~Jane ")

    assert candidate == NameCandidate("Jane", NameTier.PROVISIONAL)


@pytest.mark.parametrize("value", [None, "", "J", "~ "])
def test_unusable_candidates_are_dropped(value: str | None) -> None:
    assert NameCandidate.provisional(value) is None
    assert NameCandidate.confirmed(value) is None


@pytest.mark.parametrize("stored", [None, MEMBER, "Unknown", "27821234567"])
def test_low_trust_names_yield_to_any_real_name(stored: str | None) -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name=stored,
        stored_tier=None,
        candidate=NameCandidate.provisional("Jane"),
    )

    assert decision.overwrite
    assert decision.name == "Jane"
    assert decision.tier is NameTier.PROVISIONAL


def test_numeric_candidate_fills_an_absent_name_at_numeric_tier() -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name=None,
        stored_tier=NameTier.ABSENT,
        candidate=NameCandidate.provisional("27821234567"),
    )

    assert decision.overwrite
    assert decision.tier is NameTier.NUMERIC_LIKE


def test_numeric_candidate_never_replaces_numeric_name() -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name="Unknown",
        stored_tier=NameTier.NUMERIC_LIKE,
        candidate=NameCandidate.provisional("27821234567"),
    )

    assert not decision.overwrite


def test_provisional_yields_to_a_different_provisional() -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name="Jane",
        stored_tier=NameTier.PROVISIONAL,
        candidate=NameCandidate.provisional("Jane Doe"),
    )

    assert decision.overwrite
    assert decision.name == "Jane Doe"


def test_same_provisional_name_is_not_rewritten() -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name="~Jane",
        stored_tier=None,
        candidate=NameCandidate.provisional("Jane"),
    )

    assert not decision.overwrite


def test_provisional_yields_to_confirmed() -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name="Jane",
        stored_tier=NameTier.PROVISIONAL,
        candidate=NameCandidate.confirmed("Jane"),
    )

    assert decision.overwrite
    assert decision.tier is NameTier.CONFIRMED


@pytest.mark.parametrize(
    "candidate",
    [
        NameCandidate.provisional("Someone Else"),
        NameCandidate("Unknown", NameTier.PROVISIONAL),
        NameCandidate("0821234567", NameTier.CONFIRMED),
        NameCandidate(MEMBER, NameTier.CONFIRMED),
        None,
    ],
)
def test_confirmed_name_is_never_downgraded(candidate: NameCandidate | None) -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name="Jane Doe",
        stored_tier=NameTier.CONFIRMED,
        candidate=candidate,
    )

    assert not decision.overwrite
    assert decision.name == "Jane Doe"
    assert decision.tier is NameTier.CONFIRMED


def test_confirmed_name_accepts_admin_correction() -> None:
    decision = decide(
        member_id=MEMBER,
        stored_name="Jane Doe",
        stored_tier=NameTier.CONFIRMED,
        candidate=NameCandidate.confirmed("Jane Smith"),
    )

    assert decision.overwrite
    assert decision.name == "Jane Smith"


def test_member_renders_provisional_marker() -> None:
    provisional = Member(external_id=MEMBER, display_name="Jane", name_tier=NameTier.PROVISIONAL)
    confirmed = Member(external_id=MEMBER, display_name="Jane", name_tier=NameTier.CONFIRMED)

    assert provisional.marked_name == "~Jane"
    assert confirmed.marked_name == "Jane"
