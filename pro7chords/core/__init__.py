"""
Core module for Pro7Chords.

Contains the presentation model, chord grammar and transposer.
"""

from pro7chords.core.exceptions import (
    Pro7ChordsError,
    FormatError,
    MissingArrangementError,
    MissingTextElementError,
    PartialAnnotationFailure,
)
from pro7chords.core.chords import (
    ChordToken,
    ChordQuality,
    parse_chord,
    is_valid_chord,
    extract_chords,
    has_chords,
)
from pro7chords.core.transposer import ChordTransposer, ProgressionAnalysis, steps_between
from pro7chords.core.presentation import ElementCapability, PresentationDocument

__all__ = [
    "Pro7ChordsError",
    "FormatError",
    "MissingArrangementError",
    "MissingTextElementError",
    "PartialAnnotationFailure",
    "ChordToken",
    "ChordQuality",
    "parse_chord",
    "is_valid_chord",
    "extract_chords",
    "has_chords",
    "ChordTransposer",
    "ProgressionAnalysis",
    "steps_between",
    "ElementCapability",
    "PresentationDocument",
]
