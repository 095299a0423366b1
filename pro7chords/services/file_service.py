"""
File Service - load, analyze and save chord files.

Presentation files (``.pro``) go through the presentation loader and the
annotation engine. Any other file is treated as plain ChordPro text.
"""

from __future__ import annotations

import io
import os
import stat
import tempfile
import zipfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union
import logging

from pro7chords.config import Config, get_config
from pro7chords.core.annotator import AnnotationResult, ChordAnnotator
from pro7chords.core.exceptions import FormatError
from pro7chords.core.presentation import PresentationDocument
from pro7chords.core.transposer import ChordTransposer
from pro7chords.core.traversal import SlideRecord, TraversalWarning, collect_slides

logger = logging.getLogger(__name__)

PRESENTATION_EXTENSION = ".pro"
ZIP_SIGNATURE = b"PK\x03\x04"
GZIP_SIGNATURE = b"\x1f\x8b"


class FileKind(Enum):
    """How a file's content is stored."""
    PRESENTATION = "presentation"
    BUNDLE = "bundle"  # zip archive holding a .pro member
    PLAIN_TEXT = "plain_text"


@dataclass
class PresentationBundle:
    """A zip archive with a presentation member and other entries kept as-is."""
    member: str
    infos: List[zipfile.ZipInfo]
    data: Dict[str, bytes]

    @classmethod
    def read(cls, payload: bytes, source: str = "<bytes>") -> "PresentationBundle":
        """
        Read a bundle from zip bytes.

        Raises:
            FormatError: If the archive is unreadable or has no .pro member
        """
        try:
            with zipfile.ZipFile(io.BytesIO(payload), "r") as zf:
                infos = zf.infolist()
                data = {info.filename: zf.read(info.filename) for info in infos}
        except zipfile.BadZipFile as e:
            raise FormatError(f"Could not read zip archive {source}: {e}") from e

        for info in infos:
            if info.filename.lower().endswith(PRESENTATION_EXTENSION):
                return cls(member=info.filename, infos=infos, data=data)

        raise FormatError(f"No presentation payload found inside zip {source}")

    @property
    def payload(self) -> bytes:
        return self.data[self.member]

    def with_payload(self, payload: bytes) -> bytes:
        """Build archive bytes with the presentation member replaced."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as new_zip:
            for info in self.infos:
                data = payload if info.filename == self.member else self.data[info.filename]
                new_info = zipfile.ZipInfo(filename=info.filename, date_time=info.date_time)
                new_info.compress_type = info.compress_type
                new_info.external_attr = info.external_attr
                new_info.internal_attr = info.internal_attr
                new_info.create_system = info.create_system
                new_zip.writestr(new_info, data)
        return buffer.getvalue()


@dataclass
class LoadedFile:
    """A file opened by the service."""
    path: Path
    kind: FileKind
    text: str
    document: Optional[PresentationDocument] = None
    bundle: Optional[PresentationBundle] = None
    warnings: List[TraversalWarning] = field(default_factory=list)

    @property
    def is_presentation(self) -> bool:
        return self.document is not None


@dataclass
class SlideInfo:
    """Summary of one text slide."""
    ordinal: int
    text: str
    group_name: Optional[str] = None

    @property
    def preview_text(self) -> str:
        """First line of the text, at most 50 characters."""
        return self.text.split("\n", 1)[0][:50]


@dataclass
class PresentationFileInfo:
    """Summary of a presentation file."""
    filename: str
    slide_count: int
    has_existing_chords: bool
    text_slides: List[SlideInfo] = field(default_factory=list)
    warnings: List[TraversalWarning] = field(default_factory=list)

    @property
    def text_slide_count(self) -> int:
        return len(self.text_slides)


@dataclass
class SaveResult:
    """Outcome of writing a file."""
    path: Path
    annotated_count: int = 0
    warnings: List[TraversalWarning] = field(default_factory=list)


def is_presentation_path(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() == PRESENTATION_EXTENSION


class ChordFileService:
    """
    Loads and saves chord files.

    Whole outputs are built in memory before anything is written, so a
    failed annotation never leaves a partial file behind.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize file service.

        Args:
            config: Configuration; the global one is used if omitted
        """
        self.config = config or get_config()

    @property
    def separator(self) -> str:
        return self.config.files.slide_separator

    def make_annotator(self, current_key: Optional[str] = None) -> ChordAnnotator:
        """Build an annotator from the chord settings."""
        chords = self.config.chords
        return ChordAnnotator(
            transposer=ChordTransposer(current_key or chords.current_key),
            chord_scale=chords.chord_scale,
            default_attributes=chords.text_attributes(),
        )

    # ---- paths -----------------------------------------------------------

    def default_output_path(self, path: Union[str, Path]) -> Path:
        """Get ``<stem>_chords<ext>`` beside the input file."""
        path = Path(path)
        suffix = path.suffix or PRESENTATION_EXTENSION
        return path.with_name(f"{path.stem}{self.config.files.output_suffix}{suffix}")

    # ---- reading ---------------------------------------------------------

    def read_presentation(
        self, path: Union[str, Path]
    ) -> Tuple[PresentationDocument, Optional[PresentationBundle]]:
        """
        Read a presentation from disk.

        Args:
            path: File path

        Returns:
            Tuple of (document, bundle); bundle is None for bare files

        Raises:
            FileNotFoundError: If the file doesn't exist
            FormatError: If the content is not a readable presentation
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        data = path.read_bytes()
        return self.parse_presentation(data, source=path.name)

    def parse_presentation(
        self, data: bytes, source: str = "<bytes>"
    ) -> Tuple[PresentationDocument, Optional[PresentationBundle]]:
        """Decode presentation bytes, unwrapping zip bundles."""
        if data.startswith(GZIP_SIGNATURE):
            raise FormatError(
                f"{source} is GZIP-compressed; decompress it and open the "
                f"contained .pro file instead"
            )

        bundle = None
        if data.startswith(ZIP_SIGNATURE):
            logger.info(f"{source} is a zip bundle, reading presentation member")
            bundle = PresentationBundle.read(data, source)
            data = bundle.payload

        return PresentationDocument.load(data), bundle

    def load_file(self, path: Union[str, Path]) -> LoadedFile:
        """
        Load a chord file.

        Presentations are reduced to their combined lyrics; other files are
        read as UTF-8 text.

        Raises:
            FileNotFoundError: If the file doesn't exist
            FormatError: If a presentation cannot be decoded or has no text
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not is_presentation_path(path):
            logger.info(f"Loading {path.name} as plain text")
            return LoadedFile(
                path=path,
                kind=FileKind.PLAIN_TEXT,
                text=path.read_text(encoding="utf-8"),
            )

        document, bundle = self.read_presentation(path)
        warnings: List[TraversalWarning] = []
        text = self.extract_lyrics(document, warnings)
        return LoadedFile(
            path=path,
            kind=FileKind.BUNDLE if bundle else FileKind.PRESENTATION,
            text=text,
            document=document,
            bundle=bundle,
            warnings=warnings,
        )

    def extract_lyrics(
        self,
        document: PresentationDocument,
        warnings: Optional[List[TraversalWarning]] = None,
    ) -> str:
        """
        Join slide texts in presentation order.

        Slides without text stay in the output as empty sections so the
        slide positions are preserved.

        Raises:
            FormatError: If no slide carries text
        """
        slides = collect_slides(document, warnings)
        if not any(slide.ordinal is not None for slide in slides):
            raise FormatError("No text content found in any slides")

        lyrics = self.separator.join(slide.text for slide in slides)
        logger.info(f"Extracted {len(lyrics)} characters from {len(slides)} slides")
        return lyrics

    def chord_map_from_text(self, text: str) -> Dict[str, str]:
        """
        Split combined slide text into an ordinal chord map.

        Empty sections don't consume an ordinal, matching how slides
        without text are numbered.
        """
        chords: Dict[str, str] = {}
        ordinal = 0
        for section in text.split(self.separator):
            section = section.strip()
            if not section:
                continue
            chords[str(ordinal)] = section
            ordinal += 1
        return chords

    def analyze_file(self, path: Union[str, Path]) -> PresentationFileInfo:
        """
        Summarize a presentation file.

        Falls back to cue order when the file has no arrangement.
        """
        path = Path(path)
        document, _ = self.read_presentation(path)
        warnings: List[TraversalWarning] = []
        slides: List[SlideRecord] = collect_slides(document, warnings)

        text_slides = [
            SlideInfo(ordinal=slide.ordinal, text=slide.text, group_name=slide.group_name)
            for slide in slides
            if slide.ordinal is not None
        ]
        return PresentationFileInfo(
            filename=path.name,
            slide_count=len(slides),
            has_existing_chords=any(slide.has_chords for slide in slides),
            text_slides=text_slides,
            warnings=warnings,
        )

    # ---- writing ---------------------------------------------------------

    def save_file(
        self,
        source: LoadedFile,
        chords: Union[Mapping[str, str], str],
        output_path: Optional[Union[str, Path]] = None,
    ) -> SaveResult:
        """
        Save chords for a loaded file.

        Args:
            source: File returned by load_file
            chords: Ordinal chord map, or combined text split with
                chord_map_from_text
            output_path: Destination; defaults to default_output_path for
                presentations and the source path for plain text

        Returns:
            SaveResult

        Raises:
            MissingArrangementError: If the presentation has no arrangement
            OSError: If the destination cannot be written
        """
        if not source.is_presentation:
            text = chords if isinstance(chords, str) else self.separator.join(
                chords[key] for key in sorted_ordinal_keys(chords)
            )
            destination = Path(output_path) if output_path else source.path
            destination.write_text(text, encoding="utf-8")
            logger.info(f"Saved plain text to {destination}")
            return SaveResult(path=destination)

        chord_map = self.chord_map_from_text(chords) if isinstance(chords, str) else chords
        result = self.make_annotator().add_chords(source.document, chord_map)
        return self._write_result(source, result, output_path)

    def transpose_file(
        self,
        path: Union[str, Path],
        steps: int,
        output_path: Optional[Union[str, Path]] = None,
        current_key: Optional[str] = None,
    ) -> SaveResult:
        """
        Transpose every bracketed chord in a presentation file.

        Raises:
            MissingArrangementError: If the presentation has no arrangement
        """
        source = self.load_presentation_file(path)
        result = self.make_annotator(current_key).transpose_chords(source.document, steps)
        return self._write_result(source, result, output_path)

    def annotate_file(
        self,
        path: Union[str, Path],
        chords: Union[Mapping[str, str], str],
        output_path: Optional[Union[str, Path]] = None,
    ) -> SaveResult:
        """Load a presentation, add chords and write the result."""
        return self.save_file(self.load_presentation_file(path), chords, output_path)

    def load_presentation_file(self, path: Union[str, Path]) -> LoadedFile:
        """Load a presentation without requiring it to have text."""
        path = Path(path)
        document, bundle = self.read_presentation(path)
        return LoadedFile(
            path=path,
            kind=FileKind.BUNDLE if bundle else FileKind.PRESENTATION,
            text="",
            document=document,
            bundle=bundle,
        )

    def _write_result(
        self,
        source: LoadedFile,
        result: AnnotationResult,
        output_path: Optional[Union[str, Path]],
    ) -> SaveResult:
        payload = result.document.save()
        if source.bundle is not None:
            payload = source.bundle.with_payload(payload)

        destination = Path(output_path) if output_path else self.default_output_path(source.path)
        write_atomic(destination, payload, mode=file_mode(source.path))
        logger.info(f"Saved {result.annotated_count} annotated slides to {destination}")
        return SaveResult(
            path=destination,
            annotated_count=result.annotated_count,
            warnings=list(source.warnings) + result.warnings,
        )


def sorted_ordinal_keys(chords: Mapping[str, str]) -> List[str]:
    """
    Sort chord map keys by slide number.

    Raises:
        FormatError: If a key is not a slide number
    """
    for key in chords:
        try:
            int(key)
        except (TypeError, ValueError):
            raise FormatError(f"Chord map keys must be slide numbers, got {key!r}") from None
    return sorted(chords, key=int)


def file_mode(path: Path) -> Optional[int]:
    """Permission bits of an existing file, or None if it can't be read."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except OSError:
        return None


def default_file_mode() -> int:
    """Permission bits a newly created file gets under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_atomic(path: Path, payload: bytes, mode: Optional[int] = None) -> None:
    """
    Write bytes through a temporary file in the destination directory.

    Args:
        path: Destination
        payload: Complete file content
        mode: Permission bits for the result; defaults to those of an
            existing destination, else the umask default
    """
    if mode is None:
        mode = file_mode(path)
    if mode is None:
        mode = default_file_mode()

    directory = path.parent if str(path.parent) else Path(".")
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
