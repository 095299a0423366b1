"""
Embedding ChordPro chords into slide text.

Chord brackets are kept in the text so any tool reading the payload sees
them, but are drawn with transparent fill and outline at a reduced size so
they do not show on the audience output.
"""

from __future__ import annotations

from typing import List, Optional, Tuple
import logging

from pro7chords.codec.attributes import BASELINE_ATTRIBUTES, Color, TextAttributes
from pro7chords.codec.rtf import decode, encode
from pro7chords.core.chords import CHORD_BRACKET_PATTERN

logger = logging.getLogger(__name__)

DEFAULT_CHORD_SCALE = 0.7


def base_attributes_of(
    payload: bytes,
    default: TextAttributes = BASELINE_ATTRIBUTES,
) -> TextAttributes:
    """
    Get the lyric formatting of a payload.

    Uses the first character outside any chord bracket, so hidden chord
    spans written earlier are not taken for the lyric style. Falls back
    to ``default`` when the payload is empty, not RTF, or has no
    characters.
    """
    if not payload:
        return default

    decoded = decode(payload)
    if decoded is None or decoded.is_fallback:
        logger.warning("Could not extract original formatting, using defaults")
        return default

    index = first_lyric_index(decoded.text)
    return decoded.attributes_at(index) or decoded.base_attributes or default


def first_lyric_index(text: str) -> int:
    """Index of the first character outside a chord bracket, or 0 if none."""
    position = 0
    for match in CHORD_BRACKET_PATTERN.finditer(text):
        if match.start() > position:
            break
        position = match.end()
    return position if position < len(text) else 0


def chord_attributes(base: TextAttributes, chord_scale: float = DEFAULT_CHORD_SCALE) -> TextAttributes:
    """Attributes for a chord bracket span derived from the base attributes."""
    return base.with_overrides(
        foreground=Color.CLEAR,
        outline_color=Color.CLEAR,
        font_size=base.font_size * chord_scale,
    )


def chord_spans(text: str, attributes: TextAttributes) -> List[Tuple[int, int, TextAttributes]]:
    """Override spans covering every bracketed chord, brackets included."""
    return [
        (match.start(), match.end(), attributes)
        for match in CHORD_BRACKET_PATTERN.finditer(text)
    ]


def embed_chords(
    original_payload: bytes,
    chord_pro_text: str,
    chord_scale: float = DEFAULT_CHORD_SCALE,
    default_attributes: Optional[TextAttributes] = None,
) -> bytes:
    """
    Replace a slide's text with ChordPro text, keeping its formatting.

    Args:
        original_payload: Current RTF payload of the text element
        chord_pro_text: Lyrics with inline [Chord] markers
        chord_scale: Size of chord spans relative to the base font size
        default_attributes: Formatting used when the original payload has
            none to offer

    Returns:
        New RTF payload, or ``original_payload`` itself when
        ``chord_pro_text`` is empty
    """
    if not chord_pro_text:
        return original_payload

    base = base_attributes_of(original_payload, default_attributes or BASELINE_ATTRIBUTES)
    spans = chord_spans(chord_pro_text, chord_attributes(base, chord_scale))
    logger.debug(f"Embedding {len(spans)} chord spans")
    return encode(chord_pro_text, base, spans)
