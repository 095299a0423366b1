"""
Rich text codec for slide text payloads.
"""

from pro7chords.codec.attributes import (
    BASELINE_ATTRIBUTES,
    Color,
    PlainText,
    TextAttributes,
    TextRun,
)
from pro7chords.codec.rtf import RTFError, RTFReader, RTFWriter, decode, encode
from pro7chords.codec.chord_embedding import embed_chords

__all__ = [
    "BASELINE_ATTRIBUTES",
    "Color",
    "PlainText",
    "TextAttributes",
    "TextRun",
    "RTFError",
    "RTFReader",
    "RTFWriter",
    "decode",
    "encode",
    "embed_chords",
]
