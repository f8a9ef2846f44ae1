from __future__ import annotations

import json

import pytest

from syncnexus.adapters.evolution import (
    PayloadShapeError,
    decode_webhook,
    translate_groups,
    translate_messages,
    translate_participants,
)

PARTICIPANTS = [
    {"id": "27821234567@s.whatsapp.net", "admin": "superadmin", "pushName": "Jane"},
    {"id": "1234567890@lid", "phoneNumber": "27821234568@s.whatsapp.net", "admin": None},
]


@pytest.mark.parametrize(
    "payload",
    [
        PARTICIPANTS,
        {"participants": PARTICIPANTS},
        {"data": PARTICIPANTS},
        {"data": {"participants": PARTICIPANTS}},
    ],
)
def test_every_participant_envelope_decodes_to_the_same_list(payload: object) -> None:
    result = translate_participants(payload)

    assert len(result) == 2
    first, second = result.participants
    assert first.identity == {"id": "27821234567@s.whatsapp.net"}
    assert first.names == ("Jane",)
    assert first.admin_fields == {"admin": "superadmin"}
    assert second.identity["phoneNumber"] == "27821234568@s.whatsapp.net"
    assert second.names == ()


def test_participant_names_keep_preference_order() -> None:
    result = translate_participants(
        [{"id": "x", "name": "Saved", "notify": "Notify", "pushName": " "}]
    )

    assert result.participants[0].names == ("Notify", "Saved")


def test_malformed_participants_are_counted() -> None:
    result = translate_participants([{"id": "27821234567@s.whatsapp.net"}, "garbage", 42])

    assert len(result.participants) == 1
    assert result.malformed == 2
    assert len(result) == 3


def test_unrecognised_participant_envelope_is_rejected() -> None:
    with pytest.raises(PayloadShapeError):
        translate_participants({"error": "instance not connected"})


def test_groups_decode() -> None:
    groups = translate_groups(
        [
            {"id": "120363000000000001@g.us", "subject": "Board", "desc": "", "size": 9},
            {"subject": "no id"},
        ]
    )

    assert len(groups) == 1
    assert groups[0].external_id == "120363000000000001@g.us"
    assert groups[0].name == "Board"
    assert groups[0].description is None
    assert groups[0].size == 9


def _record(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "key": {
            "id": "3EB0ABC",
            "fromMe": False,
            "participant": "27821234567@s.whatsapp.net",
            "remoteJid": "120363000000000001@g.us",
        },
        "message": {"conversation": "hello"},
        "messageTimestamp": 1_700_000_000,
        "pushName": "Jane",
    }
    record.update(overrides)
    return record


@pytest.mark.parametrize(
    "wrap",
    [
        lambda records: records,
        lambda records: {"messages": {"records": records, "total": len(records)}},
        lambda records: {"records": records},
        lambda records: {"data": records},
    ],
)
def test_every_message_envelope_decodes(wrap: object) -> None:
    page = translate_messages(wrap([_record()]))  # type: ignore[operator]

    assert page.total == 1
    message = page.messages[0]
    assert message.key.id == "3EB0ABC"
    assert message.key.participant == "27821234567@s.whatsapp.net"
    assert message.content == {"conversation": "hello"}
    assert message.timestamp == 1_700_000_000
    assert message.push_name == "Jane"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1700000000", 1_700_000_000),
        ({"low": 1_700_000_000, "high": 0, "unsigned": True}, 1_700_000_000),
        ("soon", None),
        (None, None),
    ],
)
def test_timestamp_shapes(raw: object, expected: int | None) -> None:
    page = translate_messages([_record(messageTimestamp=raw)])

    assert page.messages[0].timestamp == expected


def test_json_text_columns_are_decoded() -> None:
    record = _record(
        key=json.dumps({"id": "3EB0XYZ", "fromMe": True, "remoteJid": "120363000000000001@g.us"}),
        message=json.dumps({"extendedTextMessage": {"text": "link"}}),
    )

    message = translate_messages([record]).messages[0]

    assert message.key.id == "3EB0XYZ"
    assert message.key.from_me is True
    assert message.content == {"extendedTextMessage": {"text": "link"}}


def test_malformed_messages_are_counted_not_fatal() -> None:
    page = translate_messages([_record(), {"message": {}}, _record(key="{not json")])

    assert len(page.messages) == 1
    assert page.malformed == 2
    assert page.total == 3


def test_webhook_with_nested_data() -> None:
    event = decode_webhook(
        {"event": "messages.upsert", "instance": "sa-personal", "data": {"data": _record()}}
    )

    assert event.event_type == "messages.upsert"
    assert event.instance_name == "sa-personal"
    assert event.message is not None
    assert event.message.key.id == "3EB0ABC"


def test_webhook_with_flat_data_and_type_field() -> None:
    event = decode_webhook({"type": "messages.upsert", "data": _record()})

    assert event.event_type == "messages.upsert"
    assert event.message is not None


def test_webhook_without_message() -> None:
    event = decode_webhook({"event": "connection.update", "data": {"state": "open"}})

    assert event.event_type == "connection.update"
    assert event.message is None


def test_webhook_with_unusable_envelope() -> None:
    event = decode_webhook({"event": 5, "data": "nope"})

    assert event.event_type is None
    assert event.message is None
