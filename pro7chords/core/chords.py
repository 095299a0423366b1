"""
Chord grammar for ChordPro text.

ChordPro places chords in square brackets immediately before the syllable
they apply to::

    [C]Amazing [F]grace, how [G/B]sweet the [Am7]sound

A single bracket may hold several chords separated by spaces
(``[C F G]``). There is no escaping mechanism for literal brackets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


# Bracketed span, non-greedy, no nesting. Group 1 is the inner text.
CHORD_BRACKET_PATTERN = re.compile(r"\[([^\]]+)\]")

# Leading root note: letter plus optional accidental.
ROOT_PATTERN = re.compile(r"^[A-G][#b]?")

_NOTE = r"[A-G][#b]?"
_SUFFIX = r"(?:maj|m|dim|aug|sus[24]?|add\d+|\d+)*"

CHORD_PATTERN = re.compile(rf"^({_NOTE})({_SUFFIX})(?:/({_NOTE}))?$")

_SUFFIX_TOKEN = re.compile(r"add\d+|sus[24]?|maj|dim|aug|m|\d+")


class ChordQuality(Enum):
    """Leading quality of a chord suffix."""
    MAJOR = ""
    MINOR = "m"
    DIMINISHED = "dim"
    AUGMENTED = "aug"
    DOMINANT7 = "7"
    MAJOR7 = "maj7"
    MINOR7 = "m7"
    SUS2 = "sus2"
    SUS4 = "sus4"

    @property
    def display_name(self) -> str:
        """Human readable quality name."""
        names = {
            ChordQuality.MAJOR: "Major",
            ChordQuality.MINOR: "Minor",
            ChordQuality.DIMINISHED: "Diminished",
            ChordQuality.AUGMENTED: "Augmented",
            ChordQuality.DOMINANT7: "Dominant 7th",
            ChordQuality.MAJOR7: "Major 7th",
            ChordQuality.MINOR7: "Minor 7th",
            ChordQuality.SUS2: "Suspended 2nd",
            ChordQuality.SUS4: "Suspended 4th",
        }
        return names[self]


# Checked in order; longer prefixes first so "maj7" wins over "m".
_QUALITY_PREFIXES: Tuple[Tuple[str, ChordQuality], ...] = (
    ("maj7", ChordQuality.MAJOR7),
    ("m7", ChordQuality.MINOR7),
    ("dim", ChordQuality.DIMINISHED),
    ("aug", ChordQuality.AUGMENTED),
    ("sus2", ChordQuality.SUS2),
    ("sus4", ChordQuality.SUS4),
    ("7", ChordQuality.DOMINANT7),
)

_ADVANCED_QUALITIES = (
    ChordQuality.DIMINISHED,
    ChordQuality.AUGMENTED,
    ChordQuality.MAJOR7,
    ChordQuality.MINOR7,
)


class ChordComplexity(Enum):
    """How demanding a single chord is to play."""
    BASIC = "Basic"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


@dataclass(frozen=True)
class ChordToken:
    """Parsed view of a chord string such as ``Am7/G``."""

    root: str
    quality: ChordQuality = ChordQuality.MAJOR
    extensions: Tuple[str, ...] = ()
    bass: Optional[str] = None

    @property
    def suffix(self) -> str:
        """Quality and extension text following the root."""
        return self.quality.value + "".join(self.extensions)

    @property
    def is_slash_chord(self) -> bool:
        return self.bass is not None

    @property
    def complexity(self) -> ChordComplexity:
        advanced_quality = self.quality in _ADVANCED_QUALITIES
        if self.extensions or (self.is_slash_chord and advanced_quality):
            return ChordComplexity.ADVANCED
        if self.is_slash_chord or advanced_quality:
            return ChordComplexity.INTERMEDIATE
        return ChordComplexity.BASIC

    def __str__(self) -> str:
        text = self.root + self.suffix
        if self.bass:
            return f"{text}/{self.bass}"
        return text


def _split_quality(suffix: str) -> Tuple[ChordQuality, Tuple[str, ...]]:
    """Split a chord suffix into its leading quality and extension tokens."""
    for prefix, quality in _QUALITY_PREFIXES:
        if suffix.startswith(prefix):
            rest = suffix[len(prefix):]
            return quality, tuple(_SUFFIX_TOKEN.findall(rest))
    if suffix.startswith("m") and not suffix.startswith("maj"):
        return ChordQuality.MINOR, tuple(_SUFFIX_TOKEN.findall(suffix[1:]))
    return ChordQuality.MAJOR, tuple(_SUFFIX_TOKEN.findall(suffix))


def parse_chord(token: str) -> Optional[ChordToken]:
    """
    Parse a chord string.

    Args:
        token: Chord text without brackets, e.g. "F#m7" or "C/E"

    Returns:
        ChordToken, or None if the text does not follow the chord grammar
    """
    match = CHORD_PATTERN.match(token.strip())
    if match is None:
        return None

    root, suffix, bass = match.groups()
    quality, extensions = _split_quality(suffix)
    return ChordToken(root=root, quality=quality, extensions=extensions, bass=bass)


def is_valid_chord(token: str) -> bool:
    """Check whether a string is a chord according to the grammar."""
    return parse_chord(token) is not None


def extract_chords(text: str) -> List[str]:
    """
    Return the inner text of every bracketed span, left to right.

    Contents are returned verbatim and are not validated, so a malformed
    bracket such as ``[xyz]`` still yields a token.
    """
    chords = [match.group(1) for match in CHORD_BRACKET_PATTERN.finditer(text)]
    logger.debug(f"Extracted {len(chords)} chords from text")
    return chords


def split_chord_group(content: str) -> List[str]:
    """Split the content of one bracket into its space separated chords."""
    return content.split()


def iter_chord_names(text: str) -> List[str]:
    """Return every individual chord in ``text``, splitting grouped brackets."""
    names: List[str] = []
    for content in extract_chords(text):
        names.extend(split_chord_group(content))
    return names


def has_chords(text: str) -> bool:
    """Check whether text contains at least one bracketed span."""
    return CHORD_BRACKET_PATTERN.search(text) is not None
