"""
Chord annotation of presentation slides.

Matches caller-supplied ChordPro text to slides by ordinal and rewrites
each slide's text payload in place. Per-slide failures are collected as
warnings; the run always completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional
import logging

from pro7chords.codec import TextAttributes, embed_chords
from pro7chords.codec.chord_embedding import DEFAULT_CHORD_SCALE
from pro7chords.core.chords import has_chords
from pro7chords.core.exceptions import (
    FormatError,
    MissingTextElementError,
    PartialAnnotationFailure,
)
from pro7chords.core.presentation import PresentationDocument, first_text_element, slide_of
from pro7chords.core.transposer import ChordTransposer
from pro7chords.core.traversal import (
    SlidePosition,
    SlideRecord,
    SlideWalker,
    TraversalWarning,
    WarningKind,
    collect_slides,
    read_slide_text,
)

logger = logging.getLogger(__name__)


@dataclass
class AnnotationResult:
    """Outcome of an annotation run."""
    document: PresentationDocument
    annotated_count: int = 0
    slides: List[SlideRecord] = field(default_factory=list)
    warnings: List[TraversalWarning] = field(default_factory=list)

    @property
    def text_slide_count(self) -> int:
        return sum(1 for slide in self.slides if slide.ordinal is not None)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def annotate_slide(
    action,
    chord_pro_text: str,
    chord_scale: float = DEFAULT_CHORD_SCALE,
    default_attributes: Optional[TextAttributes] = None,
) -> bool:
    """
    Rewrite the text payload of a slide action with ChordPro text.

    Args:
        action: Action carrying a presentation slide
        chord_pro_text: Lyrics with inline [Chord] markers
        chord_scale: Size of chord spans relative to the base font size
        default_attributes: Formatting used when the payload has none

    Returns:
        True if the payload changed

    Raises:
        MissingTextElementError: If the slide has no text-bearing element
        FormatError: If the codec fails to produce a payload
    """
    slide = slide_of(action)
    element = first_text_element(slide) if slide is not None else None
    if element is None:
        raise MissingTextElementError()

    original = element.element.text.rtf_data
    updated = embed_chords(
        original,
        chord_pro_text,
        chord_scale=chord_scale,
        default_attributes=default_attributes,
    )
    if updated == original:
        return False

    element.element.text.rtf_data = updated
    return True


class ChordAnnotator:
    """
    Applies chord edits to every text slide of a presentation.

    Slides are numbered in arrangement order, counting only slides whose
    trimmed text is non-empty.
    """

    def __init__(
        self,
        transposer: Optional[ChordTransposer] = None,
        chord_scale: float = DEFAULT_CHORD_SCALE,
        default_attributes: Optional[TextAttributes] = None,
    ):
        """
        Initialize annotator.

        Args:
            transposer: Transposer used by transpose_chords
            chord_scale: Size of chord spans relative to the base font size
            default_attributes: Formatting for slides whose payload has none
        """
        self.transposer = transposer or ChordTransposer()
        self.chord_scale = chord_scale
        self.default_attributes = default_attributes

    def add_chords(self, document: PresentationDocument, chords: Mapping[str, str]) -> AnnotationResult:
        """
        Write ChordPro text into the slides addressed by ``chords``.

        Args:
            document: Loaded presentation, modified in place
            chords: Map from str(ordinal) to ChordPro text; absent or empty
                entries leave the slide unchanged

        Returns:
            AnnotationResult

        Raises:
            MissingArrangementError: If the document has no arrangement
        """
        logger.info(f"Adding chords for {len(chords)} slide entries")
        return self._rewrite(document, lambda ordinal, text: chords.get(str(ordinal), ""))

    def transpose_chords(self, document: PresentationDocument, steps: int) -> AnnotationResult:
        """
        Transpose the bracketed chords of every text slide.

        Args:
            document: Loaded presentation, modified in place
            steps: Semitones to move, positive or negative

        Returns:
            AnnotationResult

        Raises:
            MissingArrangementError: If the document has no arrangement
        """
        logger.info(f"Transposing chords by {steps} semitones")

        def transposed(ordinal: int, text: str) -> str:
            if not has_chords(text):
                return ""
            return self.transposer.transpose_text(text, steps)

        return self._rewrite(document, transposed)

    def extract_chord_map(self, document: PresentationDocument) -> Dict[str, str]:
        """
        Get the text of every text slide keyed by ordinal.

        Falls back to cue order when the document has no arrangement.
        """
        slides = collect_slides(document)
        return {str(slide.ordinal): slide.text for slide in slides if slide.ordinal is not None}

    def _rewrite(
        self,
        document: PresentationDocument,
        text_for: Callable[[int, str], str],
    ) -> AnnotationResult:
        result = AnnotationResult(document=document)
        walker = SlideWalker(document, require_arrangement=True, warnings=result.warnings)
        ordinal = 0

        for position in walker.positions():
            if position.is_placeholder:
                result.slides.append(SlideRecord(
                    cue_id=position.cue_id,
                    group_name=position.group_name,
                    is_placeholder=True,
                ))
                continue

            text = read_slide_text(position.slide, result.warnings, position.cue_id)
            record = SlideRecord(
                cue_id=position.cue_id,
                text=text,
                group_name=position.group_name,
                cue_name=position.cue_name,
            )
            result.slides.append(record)
            if not text:
                continue

            record.ordinal = ordinal
            new_text = text_for(ordinal, text)
            if new_text and self._annotate(position, ordinal, new_text, result):
                record.text = new_text
                result.annotated_count += 1
                document.mark_modified(position.cue)
            ordinal += 1

        logger.info(
            f"Annotated {result.annotated_count} of {ordinal} text slides "
            f"with {len(result.warnings)} warnings"
        )
        return result

    def _annotate(
        self,
        position: SlidePosition,
        ordinal: int,
        text: str,
        result: AnnotationResult,
    ) -> bool:
        try:
            return annotate_slide(
                position.action, text, self.chord_scale, self.default_attributes,
            )
        except MissingTextElementError as e:
            result.warnings.append(TraversalWarning(
                WarningKind.MISSING_TEXT_ELEMENT, position.cue_id, str(e),
            ))
        except (FormatError, UnicodeError, ValueError) as e:
            failure = PartialAnnotationFailure(ordinal, e, position.cue_name)
            logger.exception(str(failure))
            result.warnings.append(TraversalWarning(
                WarningKind.ANNOTATION_FAILED, position.cue_id, str(failure),
            ))
        return False
