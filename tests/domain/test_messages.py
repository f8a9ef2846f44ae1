from __future__ import annotations

import pytest

from syncnexus.domain.messages import FALLBACK_BODY, extract_body
from syncnexus.domain.model import MediaType


def test_plain_text_wins_over_everything() -> None:
    body = extract_body(
        {"conversation": "hi all", "imageMessage": {"caption": "ignored"}},
    )

    assert body.text == "hi all"
    assert body.media_type is MediaType.TEXT


def test_extended_text() -> None:
    body = extract_body({"extendedTextMessage": {"text": "see https://example.org"}})

    assert body.text == "see https://example.org"
    assert body.media_type is MediaType.TEXT


@pytest.mark.parametrize(
    ("envelope", "label", "media_type"),
    [
        ("imageMessage", "[Image]", MediaType.IMAGE),
        ("videoMessage", "[Video]", MediaType.VIDEO),
        ("documentMessage", "[Document]", MediaType.DOCUMENT),
    ],
)
def test_captioned_media(envelope: str, label: str, media_type: MediaType) -> None:
    body = extract_body({envelope: {"caption": "quarterly numbers"}})

    assert body.text == f"{label} quarterly numbers"
    assert body.media_type is media_type
    assert body.media_type.has_media


@pytest.mark.parametrize(
    ("envelope", "label", "media_type"),
    [
        ("imageMessage", "[Image]", MediaType.IMAGE),
        ("audioMessage", "[Audio]", MediaType.AUDIO),
        ("stickerMessage", "[Sticker]", MediaType.STICKER),
    ],
)
def test_media_without_caption_gets_placeholder(
    envelope: str, label: str, media_type: MediaType
) -> None:
    body = extract_body({envelope: {"mimetype": "application/octet-stream"}})

    assert body.text == label
    assert body.media_type is media_type


def test_image_outranks_audio() -> None:
    body = extract_body({"audioMessage": {}, "imageMessage": {}})

    assert body.media_type is MediaType.IMAGE


@pytest.mark.parametrize(
    "content",
    [None, {}, {"protocolMessage": {"type": 0}}, {"conversation": ""}],
)
def test_unknown_content_falls_back(content: dict[str, object] | None) -> None:
    body = extract_body(content)

    assert body.text == FALLBACK_BODY
    assert body.media_type is MediaType.OTHER
    assert body.is_storable


def test_one_character_text_is_not_storable() -> None:
    body = extract_body({"conversation": "k"})

    assert body.media_type is MediaType.TEXT
    assert not body.is_storable
