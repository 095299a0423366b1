"""
Slide traversal in presentation order.

Walks arrangement → cue group → cue → slide action, resolving identifiers
through the document's lookup maps. Unresolved references never abort a
walk; they are recorded as warnings next to the results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional
import logging

from pro7chords.codec import decode
from pro7chords.core.chords import has_chords
from pro7chords.core.exceptions import MissingArrangementError
from pro7chords.core.presentation import (
    PresentationDocument,
    first_text_element,
    iter_slide_actions,
    slide_of,
)

logger = logging.getLogger(__name__)


class WarningKind(Enum):
    """Kinds of non-fatal problems found during a traversal."""
    UNRESOLVED_GROUP = "unresolved_group"
    UNRESOLVED_CUE = "unresolved_cue"
    CODEC_FALLBACK = "codec_fallback"
    ANNOTATION_FAILED = "annotation_failed"
    MISSING_TEXT_ELEMENT = "missing_text_element"


@dataclass
class TraversalWarning:
    """A skipped reference or slide, reported alongside the result."""
    kind: WarningKind
    identifier: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class TraversalState(Enum):
    """Progress of a single walk."""
    START = "start"
    RESOLVING = "resolving"
    PER_SLIDE = "per_slide"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class SlidePosition:
    """One slot in presentation order."""
    cue_id: str
    group: Optional[object] = None
    cue: Optional[object] = None
    action: Optional[object] = None

    @property
    def is_placeholder(self) -> bool:
        """True when the cue reference could not be resolved."""
        return self.cue is None

    @property
    def slide(self) -> Optional[object]:
        if self.action is None:
            return None
        return slide_of(self.action)

    @property
    def group_name(self) -> Optional[str]:
        if self.group is None:
            return None
        return self.group.group.name

    @property
    def cue_name(self) -> Optional[str]:
        if self.cue is None:
            return None
        return self.cue.name


@dataclass
class SlideRecord:
    """Text found at one slide position."""
    cue_id: str
    text: str = ""
    ordinal: Optional[int] = None  # only text slides get one
    group_name: Optional[str] = None
    cue_name: Optional[str] = None
    is_placeholder: bool = False

    @property
    def has_text(self) -> bool:
        return bool(self.text)

    @property
    def has_chords(self) -> bool:
        return has_chords(self.text)

    @property
    def preview_text(self) -> str:
        """First line of the text, at most 50 characters."""
        first_line = self.text.split("\n", 1)[0] if self.text else ""
        return first_line[:50]


def read_slide_text(slide, warnings: Optional[List[TraversalWarning]] = None, identifier: str = "") -> str:
    """
    Extract the trimmed plain text of a slide's first text element.

    Args:
        slide: Slide message
        warnings: Optional list receiving a CODEC_FALLBACK warning when
            the payload was not RTF
        identifier: Cue identifier used in the warning

    Returns:
        Trimmed text, or "" for slides without text content
    """
    element = first_text_element(slide)
    if element is None:
        return ""

    decoded = decode(element.element.text.rtf_data)
    if decoded is None:
        return ""

    if decoded.is_fallback and warnings is not None:
        warnings.append(TraversalWarning(
            WarningKind.CODEC_FALLBACK,
            identifier,
            f"Slide text in cue {identifier[:8]}... was read as plain UTF-8",
        ))
    return decoded.stripped


class SlideWalker:
    """
    Walks a presentation's slides in display order.

    Uses the first arrangement when there is one. Without an arrangement
    it either raises (``require_arrangement=True``) or falls back to the
    order in which cues are declared.
    """

    def __init__(
        self,
        document: PresentationDocument,
        require_arrangement: bool = False,
        warnings: Optional[List[TraversalWarning]] = None,
    ):
        """
        Initialize walker.

        Args:
            document: Loaded presentation
            require_arrangement: Raise MissingArrangementError instead of
                falling back to cue order
            warnings: List to append warnings to; a new one is made if omitted
        """
        self.document = document
        self.require_arrangement = require_arrangement
        self.warnings: List[TraversalWarning] = warnings if warnings is not None else []
        self.state = TraversalState.START

    def _warn(self, kind: WarningKind, identifier: str, message: str) -> None:
        logger.warning(message)
        self.warnings.append(TraversalWarning(kind, identifier, message))

    def positions(self) -> Iterator[SlidePosition]:
        """
        Yield slide positions in presentation order.

        Raises:
            MissingArrangementError: If an arrangement is required and
                the document has none
        """
        self.state = TraversalState.RESOLVING
        arrangement = self.document.primary_arrangement

        if arrangement is None:
            if self.require_arrangement:
                raise MissingArrangementError()
            logger.warning("No arrangement found, falling back to cue order")
            yield from self._cue_order_positions()
        else:
            logger.debug(
                f"Using arrangement '{arrangement.name}' with "
                f"{len(arrangement.group_identifiers)} groups"
            )
            yield from self._arrangement_positions(arrangement)

        self.state = TraversalState.FINALIZING

    def _arrangement_positions(self, arrangement) -> Iterator[SlidePosition]:
        for group_index, group_uuid in enumerate(arrangement.group_identifiers):
            group_id = group_uuid.string
            cue_group = self.document.resolve_cue_group(group_id)
            if cue_group is None:
                self._warn(
                    WarningKind.UNRESOLVED_GROUP,
                    group_id,
                    f"No cue group found for arrangement group {group_index + 1} "
                    f"({group_id[:8]}...)",
                )
                continue

            for cue_uuid in cue_group.cue_identifiers:
                cue_id = cue_uuid.string
                cue = self.document.resolve_cue(cue_id)
                if cue is None:
                    self._warn(
                        WarningKind.UNRESOLVED_CUE,
                        cue_id,
                        f"No cue found for cue UUID {cue_id[:8]}... "
                        f"in group '{cue_group.group.name}'",
                    )
                    yield SlidePosition(cue_id=cue_id, group=cue_group)
                    continue

                self.state = TraversalState.PER_SLIDE
                for action in iter_slide_actions(cue):
                    yield SlidePosition(cue_id=cue_id, group=cue_group, cue=cue, action=action)

    def _cue_order_positions(self) -> Iterator[SlidePosition]:
        for position in walk_cues(self.document):
            self.state = TraversalState.PER_SLIDE
            yield position

    def collect(self) -> List[SlideRecord]:
        """
        Read the text of every slide position.

        Ordinals are assigned, from 0, to slides whose trimmed text is
        non-empty; other slides keep ``ordinal=None``.
        """
        records: List[SlideRecord] = []
        ordinal = 0

        for position in self.positions():
            if position.is_placeholder:
                records.append(SlideRecord(
                    cue_id=position.cue_id,
                    group_name=position.group_name,
                    is_placeholder=True,
                ))
                continue

            text = read_slide_text(position.slide, self.warnings, position.cue_id)
            record = SlideRecord(
                cue_id=position.cue_id,
                text=text,
                group_name=position.group_name,
                cue_name=position.cue_name,
            )
            if text:
                record.ordinal = ordinal
                ordinal += 1
            records.append(record)

        self.state = TraversalState.DONE
        logger.info(f"Collected {len(records)} slides, {ordinal} with text")
        return records


def walk_arrangement(
    document: PresentationDocument,
    warnings: Optional[List[TraversalWarning]] = None,
) -> Iterator[SlidePosition]:
    """
    Yield slide positions of the first arrangement.

    Raises:
        MissingArrangementError: If the document has no arrangement
    """
    walker = SlideWalker(document, require_arrangement=True, warnings=warnings)
    return walker.positions()


def walk_cues(document: PresentationDocument) -> Iterator[SlidePosition]:
    """Yield slide positions in the order cues are declared."""
    for cue in document.cues:
        for action in iter_slide_actions(cue):
            yield SlidePosition(cue_id=cue.uuid.string, cue=cue, action=action)


def collect_slides(
    document: PresentationDocument,
    warnings: Optional[List[TraversalWarning]] = None,
    require_arrangement: bool = False,
) -> List[SlideRecord]:
    """
    Collect slide records in presentation order.

    Args:
        document: Loaded presentation
        warnings: Optional list receiving traversal warnings
        require_arrangement: Raise instead of falling back to cue order

    Returns:
        Slide records, text slides numbered from 0
    """
    walker = SlideWalker(document, require_arrangement=require_arrangement, warnings=warnings)
    return walker.collect()
