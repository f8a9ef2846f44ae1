"""Trust-ranked display-name resolution.

A stored name may only be replaced by a candidate of higher trust. Names mined
from message metadata or participant listings are *provisional*; names from an
explicit injection batch or an admin correction are *confirmed* and are never
replaced by anything weaker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from .model import PROVISIONAL_MARKER, NameTier

MIN_NAME_LENGTH: Final[int] = 2
UNKNOWN_PLACEHOLDER: Final[str] = "Unknown"

_NUMERIC_LIKE = re.compile(r"^[0-9\s+()\-]*$")


@dataclass(frozen=True, slots=True)
class NameCandidate:
    """A newly observed display name and the tier it would be stored at."""

    value: str
    tier: NameTier = NameTier.PROVISIONAL

    @classmethod
    def provisional(cls, value: str | None) -> NameCandidate | None:
        return cls._build(value, NameTier.PROVISIONAL)

    @classmethod
    def confirmed(cls, value: str | None) -> NameCandidate | None:
        return cls._build(value, NameTier.CONFIRMED)

    @classmethod
    def _build(cls, value: str | None, tier: NameTier) -> NameCandidate | None:
        if value is None:
            return None
        cleaned = strip_marker(value.strip())
        if not is_usable_name(cleaned):
            return None
        return cls(value=cleaned, tier=tier)


@dataclass(frozen=True, slots=True)
class NameDecision:
    overwrite: bool
    name: str | None
    tier: NameTier


def is_usable_name(value: str | None) -> bool:
    return value is not None and len(value.strip()) >= MIN_NAME_LENGTH


def strip_marker(value: str) -> str:
    return value.removeprefix(PROVISIONAL_MARKER).strip()


def classify_name(
    name: str | None, member_id: str, *, stored_tier: NameTier | None = None
) -> NameTier:
    """Return the effective tier of ``name`` for the member ``member_id``.

    Placeholder-shaped names are demoted regardless of ``stored_tier``; rows
    written before tiers were stored explicitly are recognised by the marker.
    """

    if name is None or not name.strip():
        return NameTier.ABSENT
    if name == member_id:
        return NameTier.SELF_REFERENTIAL
    if name == UNKNOWN_PLACEHOLDER or _NUMERIC_LIKE.match(name):
        return NameTier.NUMERIC_LIKE
    if stored_tier is not None and stored_tier >= NameTier.PROVISIONAL:
        return stored_tier
    if name.startswith(PROVISIONAL_MARKER):
        return NameTier.PROVISIONAL
    # A real-looking name without provenance was mined by an older pass.
    return NameTier.PROVISIONAL


def decide(
    *,
    member_id: str,
    stored_name: str | None,
    stored_tier: NameTier | None,
    candidate: NameCandidate | None,
) -> NameDecision:
    """Decide whether ``candidate`` replaces the stored name.

    - unusable candidates (empty, shorter than two characters) never write
    - ABSENT, SELF_REFERENTIAL and NUMERIC_LIKE names yield to any better candidate
    - PROVISIONAL names yield to a different provisional name or a confirmed one
    - CONFIRMED names only yield to a different confirmed name (admin correction)
    """

    current = classify_name(stored_name, member_id, stored_tier=stored_tier)
    keep = NameDecision(overwrite=False, name=stored_name, tier=current)
    if candidate is None or not is_usable_name(candidate.value):
        return keep

    shape = classify_name(candidate.value, member_id)
    incoming = candidate.tier if shape is NameTier.PROVISIONAL else shape
    stored_plain = strip_marker(stored_name) if stored_name else None

    if current <= NameTier.NUMERIC_LIKE:
        overwrite = incoming > current
    elif current is NameTier.PROVISIONAL:
        overwrite = incoming is NameTier.CONFIRMED or (
            incoming is NameTier.PROVISIONAL and candidate.value != stored_plain
        )
    else:
        overwrite = incoming is NameTier.CONFIRMED and candidate.value != stored_name

    if not overwrite:
        return keep
    return NameDecision(overwrite=True, name=candidate.value, tier=incoming)
