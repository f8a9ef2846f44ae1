"""Normalisation of raw participant and message-key identifiers.

The gateway reports the same person in several encodings: a bare phone number,
a ``<number>@s.whatsapp.net`` network identifier, either of those with a
``:<device>`` suffix, or an anonymised ``<opaque>@lid`` linking identifier.
Everything written to the store is keyed by the canonical form produced here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Final, cast

if TYPE_CHECKING:
    from .ports.gateway import MessageKey

USER_JID_SUFFIX: Final[str] = "@s.whatsapp.net"
GROUP_JID_SUFFIX: Final[str] = "@g.us"

# Reserved sender key for messages authored by the connected account itself.
SELF_SENDER_ID: Final[str] = "ME"

PHONE_FIELDS: Final[tuple[str, ...]] = ("phoneNumber", "phone_number", "phone")
NATIVE_ID_FIELDS: Final[tuple[str, ...]] = ("id", "jid")
_NESTED_PHONE_FIELDS: Final[tuple[str, ...]] = ("jid", "id", "user", "number")


def canonicalize(value: str) -> str | None:
    """Return the canonical member identifier for a single raw value.

    The device suffix (everything after the first ``:``) is dropped and the
    network suffix is appended when the value carries no domain at all. Values
    that already name another domain (``@lid``) keep it.
    """

    candidate = value.strip().split(":", 1)[0].strip()
    if not candidate or candidate.startswith("@"):
        return None
    if "@" not in candidate:
        candidate += USER_JID_SUFFIX
    return candidate


def resolve_member_id(record: Mapping[str, object]) -> str | None:
    """Resolve a raw participant record to its canonical identifier.

    Priority: an explicit scalar phone number, then a native id carrying the
    network suffix, then a phone number in any other form. ``None`` means the
    record is unresolvable and must be skipped by the caller.
    """

    phone = _first_present(record, PHONE_FIELDS)

    if _is_scalar(phone):
        resolved = canonicalize(str(phone))
        if resolved is not None:
            return resolved

    native_id = _first_present(record, NATIVE_ID_FIELDS)
    if isinstance(native_id, str) and USER_JID_SUFFIX in native_id:
        resolved = canonicalize(native_id)
        if resolved is not None:
            return resolved

    if phone is not None:
        fallback = _phone_from_structure(phone)
        if fallback is not None:
            return canonicalize(fallback)

    return None


def resolve_message_sender(key: MessageKey) -> str | None:
    """Return the sender key for a message, or ``None`` when it has none."""

    if key.from_me:
        return SELF_SENDER_ID
    raw = key.participant or key.remote_jid
    if not raw:
        return None
    return canonicalize(raw)


def phone_number_of(member_id: str) -> str | None:
    """Derive the phone number from a canonical identifier on the network domain."""

    if not member_id.endswith(USER_JID_SUFFIX):
        return None
    number = member_id.removesuffix(USER_JID_SUFFIX)
    return number if number.isdigit() else None


def is_group_id(value: str) -> bool:
    return value.endswith(GROUP_JID_SUFFIX)


def _first_present(record: Mapping[str, object], fields: tuple[str, ...]) -> object | None:
    for field in fields:
        value = record.get(field)
        if value is not None:
            return value
    return None


def _is_scalar(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, int)


def _phone_from_structure(value: object) -> str | None:
    if isinstance(value, Mapping):
        nested = cast(Mapping[str, object], value)
        for field in _NESTED_PHONE_FIELDS:
            inner = nested.get(field)
            if _is_scalar(inner):
                return str(inner)
        return None
    if isinstance(value, (list, tuple)):
        items = cast(list[object], value)
        for item in items:
            if _is_scalar(item):
                return str(item)
    return None
