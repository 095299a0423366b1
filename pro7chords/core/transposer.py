"""
Chord transposition and analysis.

Provides chromatic transposition of ChordPro chords with enharmonic
spelling, key detection by root frequency, and simple progression
statistics.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
import logging

from music21 import interval, note

from pro7chords.core.chords import (
    CHORD_BRACKET_PATTERN,
    ROOT_PATTERN,
    iter_chord_names,
    parse_chord,
)

logger = logging.getLogger(__name__)


SHARP_SCALE = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_SCALE = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

FLAT_KEYS = ("F", "Bb", "Eb", "Ab", "Db", "Gb")

_FLAT_TO_SHARP = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Cb": "B",
    "Fb": "E",
    "E#": "F",
    "B#": "C",
}

_SPELLINGS = set(SHARP_SCALE) | set(FLAT_SCALE)

_WHITESPACE = re.compile(r"(\s+)")


def pitch_class(root: str) -> int:
    """
    Get the pitch class (0-11) of a root note name.

    Args:
        root: Note name like "C", "F#", "Bb"

    Raises:
        ValueError: If the name is not a recognised root
    """
    normalized = _FLAT_TO_SHARP.get(root, root)
    try:
        return SHARP_SCALE.index(normalized)
    except ValueError:
        raise ValueError(f"Unknown root note: {root}") from None


class ProgressionComplexity(Enum):
    """Complexity of a chord progression by unique chord count."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"

    @classmethod
    def from_unique_count(cls, unique_chords: int) -> "ProgressionComplexity":
        if unique_chords <= 4:
            return cls.SIMPLE
        if unique_chords <= 7:
            return cls.MODERATE
        return cls.COMPLEX

    @property
    def description(self) -> str:
        descriptions = {
            ProgressionComplexity.SIMPLE: "Simple (up to 4 unique chords)",
            ProgressionComplexity.MODERATE: "Moderate (5-7 unique chords)",
            ProgressionComplexity.COMPLEX: "Complex (8+ unique chords)",
        }
        return descriptions[self]


@dataclass
class ProgressionAnalysis:
    """Summary statistics for the chords in a piece of ChordPro text."""
    total_chord_count: int = 0
    unique_chord_count: int = 0
    most_common_chord: Optional[str] = None
    suggested_key: Optional[str] = None
    complexity: ProgressionComplexity = ProgressionComplexity.SIMPLE

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_chord_count": self.total_chord_count,
            "unique_chord_count": self.unique_chord_count,
            "most_common_chord": self.most_common_chord,
            "suggested_key": self.suggested_key,
            "complexity": self.complexity.value,
        }


def _most_frequent(counts: Dict[str, int]) -> Optional[str]:
    """Most frequent key; ties go to the key inserted first."""
    if not counts:
        return None
    return max(counts, key=counts.get)


class ChordTransposer:
    """
    Transposes chords and ChordPro text.

    The configured ``current_key`` influences spelling: in the
    conventionally flat keys (F, Bb, Eb, Ab, Db, Gb) results are spelled
    with flats.
    """

    def __init__(self, current_key: str = "C"):
        """
        Initialize transposer.

        Args:
            current_key: Key the chart is in, used for spelling choices
        """
        self.current_key = current_key

    @property
    def prefers_flats(self) -> bool:
        """Whether the configured key is one of the flat keys."""
        return self.current_key in FLAT_KEYS

    def transpose_root(self, chord: str, steps: int) -> str:
        """
        Transpose the root note of a chord, keeping its suffix.

        Args:
            chord: Root plus modifier, e.g. "Bbmaj7"
            steps: Semitones (positive = up, negative = down)

        Returns:
            Transposed chord text, or the input unchanged if it has no
            recognisable root
        """
        match = ROOT_PATTERN.match(chord)
        if match is None:
            return chord

        root = match.group(0)
        modifier = chord[match.end():]

        index = pitch_class(root)
        # Offset by a multiple of 12 large enough to keep the sum non-negative.
        offset = 12 * (abs(steps) // 12 + 1)
        new_index = (index + steps + offset) % 12

        if "b" in root or self.prefers_flats:
            new_root = FLAT_SCALE[new_index]
        else:
            new_root = SHARP_SCALE[new_index]

        return new_root + modifier

    def _spell_bass(self, root: str, bass: str, new_root: str) -> Optional[str]:
        """
        Spell a transposed bass note at the same interval above the new root.

        Returns None when the interval spelling would need an unusual name
        (E#, Cb, double accidentals).
        """
        start = note.Note(root.replace("b", "-"))
        end = note.Note(bass.replace("b", "-"))
        chord_interval = interval.Interval(noteStart=start, noteEnd=end)

        moved = note.Note(new_root.replace("b", "-")).pitch.transpose(chord_interval)
        spelled = moved.name.replace("-", "b")
        if spelled not in _SPELLINGS:
            return None

        expected = (pitch_class(new_root) + pitch_class(bass) - pitch_class(root)) % 12
        if pitch_class(spelled) != expected:
            return None
        return spelled

    def _transpose_single(self, chord: str, steps: int) -> str:
        """Transpose one chord, handling slash chords."""
        if "/" not in chord:
            return self.transpose_root(chord, steps)

        main, bass = chord.split("/", 1)
        new_main = self.transpose_root(main, steps)

        root_match = ROOT_PATTERN.match(main)
        bass_match = ROOT_PATTERN.match(bass)
        new_root_match = ROOT_PATTERN.match(new_main)
        if root_match and bass_match and new_root_match:
            spelled = self._spell_bass(
                root_match.group(0), bass_match.group(0), new_root_match.group(0)
            )
            if spelled is not None:
                return f"{new_main}/{spelled}{bass[bass_match.end():]}"

        return f"{new_main}/{self.transpose_root(bass, steps)}"

    def transpose(self, chord: str, steps: int) -> str:
        """
        Transpose a chord string.

        Several chords separated by whitespace are transposed
        independently and the original whitespace is kept. Transposing by
        a whole number of octaves returns the input unchanged.

        Args:
            chord: Chord text such as "C/E" or "C F G"
            steps: Semitones (positive = up, negative = down)

        Returns:
            Transposed chord text
        """
        if steps % 12 == 0:
            return chord

        parts = _WHITESPACE.split(chord)
        return "".join(
            part if not part or part.isspace() else self._transpose_single(part, steps)
            for part in parts
        )

    def transpose_text(self, text: str, steps: int) -> str:
        """
        Transpose every bracketed chord in ChordPro text.

        Text outside the brackets is left untouched.
        """
        def replace(match: re.Match) -> str:
            return f"[{self.transpose(match.group(1), steps)}]"

        return CHORD_BRACKET_PATTERN.sub(replace, text)

    def detect_key(self, text: str) -> Optional[str]:
        """
        Guess the key from the most frequent chord root.

        Roots are grouped by pitch class. Ties are broken by the order in
        which roots first appear; this is a convention and not a music
        theory result.

        Returns:
            Root name as first written (e.g. "C", "Bb"), or None when the
            text has no chords
        """
        counts: Dict[int, int] = {}
        spellings: Dict[int, str] = {}

        for name in iter_chord_names(text):
            chord = parse_chord(name)
            if chord is None:
                continue
            pc = pitch_class(chord.root)
            counts[pc] = counts.get(pc, 0) + 1
            spellings.setdefault(pc, chord.root)

        if not counts:
            return None

        best = max(counts, key=counts.get)
        return spellings[best]

    def analyze_progression(self, text: str) -> ProgressionAnalysis:
        """
        Analyze the chords used in ChordPro text.

        Args:
            text: ChordPro text

        Returns:
            ProgressionAnalysis with counts, most common chord, key and
            complexity
        """
        chords = iter_chord_names(text)

        counts: Dict[str, int] = {}
        for chord in chords:
            counts[chord] = counts.get(chord, 0) + 1

        analysis = ProgressionAnalysis(
            total_chord_count=len(chords),
            unique_chord_count=len(counts),
            most_common_chord=_most_frequent(counts),
            suggested_key=self.detect_key(text),
            complexity=ProgressionComplexity.from_unique_count(len(counts)),
        )
        logger.debug(f"Progression analysis: {analysis}")
        return analysis

    def suggested_chords(self, key: str) -> List[str]:
        """
        Get the I, IV, V and vi chords of a major key.

        Args:
            key: Key root like "G" or "Eb"

        Returns:
            List of chord names; a C major set for unknown keys
        """
        try:
            index = pitch_class(key)
        except ValueError:
            return ["C", "F", "G", "Am"]

        scale = FLAT_SCALE if ("b" in key or key in FLAT_KEYS) else SHARP_SCALE
        return [
            scale[index],
            scale[(index + 5) % 12],
            scale[(index + 7) % 12],
            scale[(index + 9) % 12] + "m",
        ]


def steps_between(from_key: str, to_key: str) -> int:
    """
    Smallest semitone distance from one key root to another (-5..6).

    Minor suffixes ("Am") are ignored; only the root is compared.
    """
    from_match = ROOT_PATTERN.match(from_key)
    to_match = ROOT_PATTERN.match(to_key)
    if from_match is None or to_match is None:
        raise ValueError(f"Cannot compute interval from {from_key!r} to {to_key!r}")

    diff = (pitch_class(to_match.group(0)) - pitch_class(from_match.group(0))) % 12
    if diff > 6:
        diff -= 12
    return diff
