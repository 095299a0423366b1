"""
Pro7Chords - chord editing for ProPresenter 7 presentations

Reads lyrics out of ``.pro`` files, writes ChordPro chords back into the
slides without showing them to the audience, and transposes them.
"""

__version__ = "1.0.0"

from pro7chords.core.presentation import PresentationDocument
from pro7chords.core.transposer import ChordTransposer
from pro7chords.core.annotator import AnnotationResult, ChordAnnotator
from pro7chords.core.traversal import SlideRecord, collect_slides
from pro7chords.config import Config

__all__ = [
    "PresentationDocument",
    "ChordTransposer",
    "ChordAnnotator",
    "AnnotationResult",
    "SlideRecord",
    "collect_slides",
    "Config",
    "__version__",
]
