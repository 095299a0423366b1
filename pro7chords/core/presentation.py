"""
Presentation model - a wrapper around the decoded container graph.

A presentation file is a protobuf record graph. Arrangements reference
cue groups by identifier, cue groups reference cues by identifier, and
cues own the actions that carry slides. This module loads and saves that
graph and keeps identifier lookup maps for the traversal.
"""

from __future__ import annotations

from enum import Flag
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union
import logging

from google.protobuf.internal import decoder, encoder, wire_format
from google.protobuf.message import DecodeError

from pro7chords.core import schema
from pro7chords.core.exceptions import FormatError

logger = logging.getLogger(__name__)


class ElementCapability(Flag):
    """Capabilities advertised by a slide element's info flags."""
    NONE = 0
    TEXT = schema.INFO_IS_TEXT_ELEMENT
    TICKER = schema.INFO_IS_TEXT_TICKER

    @classmethod
    def from_info(cls, info: int) -> "ElementCapability":
        """Build from the raw info bits, ignoring bits we don't know."""
        known = 0
        for member in cls:
            if info & member.value:
                known |= member.value
        return cls(known)


def element_capabilities(element) -> ElementCapability:
    """Get the capabilities of a Slide.Element."""
    return ElementCapability.from_info(element.info)


def element_text_payload(element) -> bytes:
    """Get the rich text payload of a Slide.Element, or b"" if it has none."""
    graphics = element.element
    if not graphics.HasField("text"):
        return b""
    return graphics.text.rtf_data


def first_text_element(slide) -> Optional[object]:
    """
    Find the first text-bearing element of a slide.

    An element bears text when its capabilities include TEXT and its
    payload is non-empty.
    """
    for element in slide.elements:
        if ElementCapability.TEXT in element_capabilities(element) and element_text_payload(element):
            return element
    return None


def first_text_flagged_element(slide) -> Optional[object]:
    """First element flagged as text, whether or not it holds a payload."""
    for element in slide.elements:
        if ElementCapability.TEXT in element_capabilities(element):
            return element
    return None


def slide_of(action) -> Optional[object]:
    """
    Get the Slide carried by an action.

    Returns None for non-slide actions and for slide actions whose slide
    is not a presentation slide.
    """
    if action.type != schema.ACTION_TYPE_PRESENTATION_SLIDE:
        return None
    if not action.HasField("slide") or not action.slide.HasField("presentation"):
        return None
    return action.slide.presentation.base_slide


def iter_slide_actions(cue) -> Iterator[object]:
    """Yield the actions of a cue that carry a presentation slide."""
    for action in cue.actions:
        if slide_of(action) is not None:
            yield action


def iter_wire_entries(data: bytes) -> Iterator[Tuple[int, bytes]]:
    """
    Split an encoded message into its top-level field entries.

    Yields:
        (field_number, entry_bytes) pairs, each entry including its tag

    Raises:
        FormatError: If an entry is truncated or uses group encoding
    """
    pos = 0
    end = len(data)
    while pos < end:
        start = pos
        try:
            tag, pos = decoder._DecodeVarint(data, pos)
            field_number, wire_type = wire_format.UnpackTag(tag)
            if wire_type == wire_format.WIRETYPE_VARINT:
                _, pos = decoder._DecodeVarint(data, pos)
            elif wire_type == wire_format.WIRETYPE_FIXED64:
                pos += 8
            elif wire_type == wire_format.WIRETYPE_LENGTH_DELIMITED:
                length, pos = decoder._DecodeVarint(data, pos)
                pos += length
            elif wire_type == wire_format.WIRETYPE_FIXED32:
                pos += 4
            else:
                raise FormatError(f"Unsupported wire type {wire_type} at offset {start}")
        except (IndexError, DecodeError) as e:
            raise FormatError(f"Truncated field at offset {start}") from e

        if pos > end:
            raise FormatError(f"Truncated field at offset {start}")
        yield field_number, data[start:pos]


class PresentationDocument:
    """
    Wrapper around a decoded Presentation message.

    Provides:
    - Loading from and saving to container bytes
    - Identifier lookup maps for cue groups and cues
    - Change tracking so untouched documents save byte-identically
    """

    def __init__(self, message=None, original_bytes: Optional[bytes] = None):
        """
        Initialize document wrapper.

        Args:
            message: Optional Presentation message to wrap
            original_bytes: Encoded form ``message`` was decoded from
        """
        self._message = message if message is not None else schema.Presentation()
        self._original_bytes = original_bytes
        self._is_modified = original_bytes is None
        self._whole_document_modified = original_bytes is None
        self._modified_cues: Set[int] = set()

        self.cue_group_by_id: Dict[str, object] = {}
        self.cue_by_id: Dict[str, object] = {}
        self.reindex()

    @classmethod
    def load(cls, data: Union[bytes, bytearray]) -> "PresentationDocument":
        """
        Decode container bytes.

        Args:
            data: Serialized presentation

        Returns:
            PresentationDocument

        Raises:
            FormatError: If the bytes do not decode or lack the expected
                presentation shape
        """
        data = bytes(data)
        if not data:
            raise FormatError("Presentation data is empty")

        message = schema.Presentation()
        try:
            message.ParseFromString(data)
        except DecodeError as e:
            raise FormatError(f"Failed to parse presentation: {e}") from e

        if not (message.arrangements or message.cue_groups or message.cues):
            raise FormatError(
                "Presentation has no arrangements, cue groups or cues; "
                "the file may use an unsupported schema"
            )

        document = cls(message, original_bytes=data)
        logger.info(f"Loaded presentation: {document.describe()}")
        return document

    def save(self) -> bytes:
        """
        Encode the document.

        Untouched documents return the bytes they were loaded from. When
        only individual cues were marked as modified, the original bytes
        are reused for every other top-level entry and just those cues are
        re-serialized, so unknown and default-valued fields elsewhere keep
        their exact encoding.

        Returns:
            Encoded presentation
        """
        if not self._is_modified and self._original_bytes is not None:
            return self._original_bytes
        if self._whole_document_modified or self._original_bytes is None:
            return self._message.SerializeToString()

        try:
            return self._splice_modified_cues()
        except FormatError as e:
            logger.warning(f"Could not reuse original encoding, re-serializing: {e}")
            return self._message.SerializeToString()

    def _splice_modified_cues(self) -> bytes:
        cues_field = self._message.DESCRIPTOR.fields_by_name["cues"].number
        cue_tag = encoder.TagBytes(cues_field, wire_format.WIRETYPE_LENGTH_DELIMITED)
        cues = self._message.cues

        parts: List[bytes] = []
        index = 0
        for field_number, entry in iter_wire_entries(self._original_bytes):
            if field_number == cues_field:
                if index in self._modified_cues:
                    payload = cues[index].SerializeToString()
                    entry = cue_tag + encoder._VarintBytes(len(payload)) + payload
                index += 1
            parts.append(entry)

        if index != len(cues):
            raise FormatError(f"Cue count changed from {index} to {len(cues)} since load")

        logger.debug(f"Re-encoded {len(self._modified_cues)} of {len(cues)} cues")
        return b"".join(parts)

    def reindex(self) -> None:
        """Rebuild the identifier lookup maps."""
        self.cue_group_by_id = {}
        for cue_group in self._message.cue_groups:
            if not cue_group.HasField("group"):
                continue
            identifier = cue_group.group.uuid.string
            if identifier in self.cue_group_by_id:
                logger.warning(f"Duplicate cue group identifier {identifier[:8]}..., keeping first")
                continue
            self.cue_group_by_id[identifier] = cue_group

        self.cue_by_id = {}
        self._cue_index_by_id: Dict[str, int] = {}
        for index, cue in enumerate(self._message.cues):
            identifier = cue.uuid.string
            if identifier in self.cue_by_id:
                logger.warning(f"Duplicate cue identifier {identifier[:8]}..., keeping first")
                continue
            self.cue_by_id[identifier] = cue
            self._cue_index_by_id[identifier] = index

    def mark_modified(self, cue=None) -> None:
        """
        Mark the document as changed since load.

        Args:
            cue: The cue that was changed; without one the whole document
                is re-serialized on save
        """
        self._is_modified = True
        if cue is None:
            self._whole_document_modified = True
            return

        index = self._cue_index_by_id.get(cue.uuid.string)
        if index is None:
            self._whole_document_modified = True
        else:
            self._modified_cues.add(index)

    @property
    def is_modified(self) -> bool:
        return self._is_modified

    @property
    def message(self):
        """Get the underlying Presentation message."""
        return self._message

    @property
    def name(self) -> str:
        return self._message.name

    @property
    def arrangements(self) -> List[object]:
        return list(self._message.arrangements)

    @property
    def primary_arrangement(self) -> Optional[object]:
        """The first arrangement, the only one consulted."""
        if self._message.arrangements:
            return self._message.arrangements[0]
        return None

    @property
    def cue_groups(self) -> List[object]:
        return list(self._message.cue_groups)

    @property
    def cues(self) -> List[object]:
        return list(self._message.cues)

    def resolve_cue_group(self, identifier: str) -> Optional[object]:
        """Look up a cue group by identifier."""
        return self.cue_group_by_id.get(identifier)

    def resolve_cue(self, identifier: str) -> Optional[object]:
        """Look up a cue by identifier."""
        return self.cue_by_id.get(identifier)

    def describe(self) -> Dict[str, object]:
        """Summary of the document for diagnostics."""
        return {
            "name": self._message.name,
            "arrangements": [a.name for a in self._message.arrangements],
            "cue_groups": len(self._message.cue_groups),
            "cues": len(self._message.cues),
        }

    def __repr__(self) -> str:
        return (
            f"PresentationDocument(name={self.name!r}, "
            f"arrangements={len(self._message.arrangements)}, "
            f"cue_groups={len(self._message.cue_groups)}, "
            f"cues={len(self._message.cues)})"
        )
