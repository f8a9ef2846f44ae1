"""Extraction of a storable body from a gateway message-content envelope."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final, cast

from .model import MediaType

MIN_BODY_LENGTH: Final[int] = 2
FALLBACK_BODY: Final[str] = "[Media/System]"

# Media envelopes in priority order with the label used for their placeholder.
_MEDIA_ENVELOPES: Final[tuple[tuple[str, MediaType, str], ...]] = (
    ("imageMessage", MediaType.IMAGE, "[Image]"),
    ("videoMessage", MediaType.VIDEO, "[Video]"),
    ("documentMessage", MediaType.DOCUMENT, "[Document]"),
    ("audioMessage", MediaType.AUDIO, "[Audio]"),
    ("stickerMessage", MediaType.STICKER, "[Sticker]"),
)
_CAPTIONED: Final[frozenset[MediaType]] = frozenset(
    {MediaType.IMAGE, MediaType.VIDEO, MediaType.DOCUMENT}
)


@dataclass(frozen=True, slots=True)
class ExtractedBody:
    text: str
    media_type: MediaType

    @property
    def is_storable(self) -> bool:
        return len(self.text.strip()) >= MIN_BODY_LENGTH


def extract_body(content: Mapping[str, object] | None) -> ExtractedBody:
    """Classify ``content`` and render its body.

    Plain text wins, then extended text, then a placeholder for the first media
    envelope present (with its caption, where the type has one), then a generic
    placeholder.
    """

    if not content:
        return ExtractedBody(FALLBACK_BODY, MediaType.OTHER)

    conversation = content.get("conversation")
    if isinstance(conversation, str) and conversation:
        return ExtractedBody(conversation, MediaType.TEXT)

    extended = _envelope(content, "extendedTextMessage")
    if extended is not None:
        text = extended.get("text")
        if isinstance(text, str) and text:
            return ExtractedBody(text, MediaType.TEXT)

    for field, media_type, label in _MEDIA_ENVELOPES:
        envelope = _envelope(content, field)
        if envelope is None:
            continue
        caption = envelope.get("caption") if media_type in _CAPTIONED else None
        if isinstance(caption, str) and caption.strip():
            return ExtractedBody(f"{label} {caption.strip()}", media_type)
        return ExtractedBody(label, media_type)

    return ExtractedBody(FALLBACK_BODY, MediaType.OTHER)


def _envelope(content: Mapping[str, object], field: str) -> Mapping[str, object] | None:
    value = content.get(field)
    if isinstance(value, Mapping):
        return cast(Mapping[str, object], value)
    return None
