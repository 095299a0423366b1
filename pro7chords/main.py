"""
Main entry point for the Pro7Chords command line.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from pro7chords import __version__
from pro7chords.config import get_config
from pro7chords.core.exceptions import FormatError, Pro7ChordsError
from pro7chords.core.transposer import ChordTransposer, steps_between
from pro7chords.services.file_service import ChordFileService, SaveResult, is_presentation_path

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pro7chords",
        description="Read, annotate and transpose chords in ProPresenter 7 files",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_extract = sub.add_parser("extract", help="Print the lyrics of a file, one section per slide")
    p_extract.add_argument("file", type=Path)

    p_analyze = sub.add_parser("analyze", help="Summarize the slides and chords of a presentation")
    p_analyze.add_argument("file", type=Path)
    p_analyze.add_argument("--json", action="store_true", help="Print the summary as JSON")

    p_annotate = sub.add_parser("annotate", help="Write ChordPro chords into a presentation")
    p_annotate.add_argument("file", type=Path)
    p_annotate.add_argument(
        "chords",
        type=Path,
        help="JSON object mapping slide number to ChordPro text, or combined ChordPro text",
    )
    p_annotate.add_argument("-o", "--output", type=Path, help="Output path")

    p_transpose = sub.add_parser("transpose", help="Transpose the chords in a file")
    p_transpose.add_argument("file", type=Path)
    amount = p_transpose.add_mutually_exclusive_group(required=True)
    amount.add_argument("--steps", type=int, help="Semitones to move (may be negative)")
    amount.add_argument("--to-key", help="Target key root, e.g. G or Bb")
    p_transpose.add_argument("--from-key", help="Current key; detected from the chords if omitted")
    p_transpose.add_argument("-o", "--output", type=Path, help="Output path")

    p_key = sub.add_parser("key", help="Guess the key of a file from its chords")
    p_key.add_argument("file", type=Path)

    return parser


def read_chord_input(service: ChordFileService, path: Path) -> Dict[str, str]:
    """Read chords from a JSON map or a combined ChordPro text file."""
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid chord map {path}: {e}") from e
        if not isinstance(data, dict):
            raise FormatError(f"Chord map {path} must be a JSON object")
        return {str(key): str(value) for key, value in data.items()}
    return service.chord_map_from_text(content)


def print_save_result(result: SaveResult) -> None:
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(f"Annotated {result.annotated_count} slides -> {result.path}")


def cmd_extract(service: ChordFileService, args: argparse.Namespace) -> int:
    print(service.load_file(args.file).text)
    return 0


def cmd_analyze(service: ChordFileService, args: argparse.Namespace) -> int:
    info = service.analyze_file(args.file)
    lyrics = "\n".join(slide.text for slide in info.text_slides)
    analysis = ChordTransposer().analyze_progression(lyrics)

    if args.json:
        print(json.dumps({
            "filename": info.filename,
            "slide_count": info.slide_count,
            "text_slide_count": info.text_slide_count,
            "has_existing_chords": info.has_existing_chords,
            "slides": [
                {"ordinal": s.ordinal, "group": s.group_name, "preview": s.preview_text}
                for s in info.text_slides
            ],
            "progression": analysis.to_dict(),
        }, indent=2))
        return 0

    print(f"{info.filename}: {info.slide_count} slides, {info.text_slide_count} with text")
    print(f"Existing chords: {'yes' if info.has_existing_chords else 'no'}")
    for slide in info.text_slides:
        group = f"[{slide.group_name}] " if slide.group_name else ""
        print(f"  {slide.ordinal:3d}  {group}{slide.preview_text}")
    if analysis.total_chord_count:
        print(
            f"Chords: {analysis.total_chord_count} total, {analysis.unique_chord_count} unique, "
            f"key {analysis.suggested_key}, {analysis.complexity.description}"
        )
    for warning in info.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    return 0


def cmd_annotate(service: ChordFileService, args: argparse.Namespace) -> int:
    chords = read_chord_input(service, args.chords)
    result = service.annotate_file(args.file, chords, args.output)
    print_save_result(result)
    return 0


def cmd_transpose(service: ChordFileService, args: argparse.Namespace) -> int:
    lyrics = service.load_file(args.file).text
    current_key: Optional[str] = args.from_key or ChordTransposer().detect_key(lyrics)

    if args.to_key:
        if current_key is None:
            raise FormatError("Cannot detect the current key; pass --from-key")
        try:
            steps = steps_between(current_key, args.to_key)
        except ValueError as e:
            raise Pro7ChordsError(str(e)) from e
        target_key = args.to_key
    else:
        steps = args.steps
        target_key = None

    logger.info(f"Transposing {args.file.name} by {steps} semitones (key {current_key})")

    if is_presentation_path(args.file):
        result = service.transpose_file(args.file, steps, args.output, current_key=target_key)
        print_save_result(result)
        return 0

    transposer = ChordTransposer(target_key or get_config().chords.current_key)
    output = args.output or args.file
    output.write_text(transposer.transpose_text(lyrics, steps), encoding="utf-8")
    print(f"Transposed by {steps} semitones -> {output}")
    return 0


def cmd_key(service: ChordFileService, args: argparse.Namespace) -> int:
    lyrics = service.load_file(args.file).text
    transposer = ChordTransposer()
    key = transposer.detect_key(lyrics)
    if key is None:
        print("No chords found")
        return 0
    print(f"Key: {key}")
    print(f"Common chords: {', '.join(transposer.suggested_chords(key))}")
    return 0


COMMANDS = {
    "extract": cmd_extract,
    "analyze": cmd_analyze,
    "annotate": cmd_annotate,
    "transpose": cmd_transpose,
    "key": cmd_key,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    service = ChordFileService(get_config())
    try:
        return COMMANDS[args.command](service, args)
    except (Pro7ChordsError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
