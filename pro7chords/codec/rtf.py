"""
Cocoa RTF reader and writer.

Slide text in a presentation is stored as an RTF document produced by the
macOS text system. This module recovers the plain text plus per-character
formatting (font, size, fill colour, outline) and writes text back as RTF
in the same dialect.

Supported on read:
    groups and ignorable destinations ({\\* ...})
    \\fonttbl, \\colortbl and \\expandedcolortbl (for alpha)
    \\uN with \\ucN fallback skipping, \\'hh escapes
    \\par, \\line, backslash-newline, \\tab
    \\f, \\fs, \\cf, \\outl, \\strokewidth, \\strokec, \\plain

Anything else is ignored.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from pro7chords.codec.attributes import (
    Color,
    PlainText,
    TextAttributes,
    TextRun,
)
from pro7chords.core.exceptions import FormatError

logger = logging.getLogger(__name__)


class RTFError(FormatError):
    """Payload is not a readable RTF document."""
    def __init__(self, message: str, position: int = 0):
        super().__init__(message)
        self.position = position


# Destinations whose content is never visible text.
SKIP_DESTINATIONS = frozenset({
    "author", "buptim", "colorschememapping", "comment", "creatim",
    "datastore", "doccomm", "filetbl", "fldinst", "footer", "footerf",
    "footerl", "footerr", "footnote", "generator", "header", "headerf",
    "headerl", "headerr", "info", "keywords", "latentstyles", "listoverridetable",
    "listtable", "listtext", "object", "operator", "pict", "printim",
    "revtbl", "revtim", "rsidtbl", "stylesheet", "subject", "themedata",
    "title", "xmlnstbl", "NeXTGraphic",
})

TABLE_DESTINATIONS = frozenset({"fonttbl", "colortbl", "expandedcolortbl"})

DEFAULT_FONT_SIZE_HALF_POINTS = 24

_COMPONENT_SCALE = 100000

# Windows code page numbers whose Python codec is not named cpN.
CODEPAGE_ALIASES = {
    10000: "mac_roman",
    10006: "mac_greek",
    10007: "mac_cyrillic",
    10029: "mac_latin2",
    10079: "mac_iceland",
    10081: "mac_turkish",
}

DEFAULT_CODEPAGE = "cp1252"


def resolve_codepage(number: int) -> str:
    """Get the Python codec name for an RTF \\ansicpg number, cp1252 if unknown."""
    name = CODEPAGE_ALIASES.get(number, f"cp{number}")
    try:
        return codecs.lookup(name).name
    except LookupError:
        logger.warning(f"Unknown RTF code page {number}, using {DEFAULT_CODEPAGE}")
        return DEFAULT_CODEPAGE


@dataclass
class _GroupState:
    """Formatting state inherited by nested groups."""
    destination: Optional[str] = None
    skip: bool = False
    font: int = 0
    half_points: int = DEFAULT_FONT_SIZE_HALF_POINTS
    color: int = 0
    stroke_width: int = 0
    stroke_color: int = 0
    uc: int = 1

    def copy(self) -> "_GroupState":
        return replace(self)


class RTFReader:
    """
    Parser for Cocoa flavoured RTF.

    Converts an RTF payload into a PlainText with one TextRun per stretch
    of identically formatted characters.
    """

    TOKEN_PATTERN = re.compile(
        r"\\([a-zA-Z]+)(-?\d+)? ?"     # control word
        r"|\\'([0-9a-fA-F]{2})"         # hex escaped byte
        r"|\\(.)"                       # control symbol
        r"|([{}])"                      # group boundary
        r"|([\r\n]+)"                   # raw line breaks (not text)
        r"|([^\\{}\r\n]+)",             # plain text
        re.DOTALL,
    )

    def __init__(self):
        self._fonts: Dict[int, str] = {}
        self._colors: List[Optional[Tuple[int, int, int]]] = []
        self._alphas: List[Optional[float]] = []
        self._codepage = DEFAULT_CODEPAGE
        self._chars: List[str] = []
        self._char_attrs: List[Tuple] = []

        # In-progress table entries
        self._font_name: List[str] = []
        self._font_index = 0
        self._rgb: Dict[str, int] = {}
        self._expanded: List[float] = []
        self._expanded_space: Optional[str] = None

        self._skip_fallback = 0
        self._pending_surrogate: Optional[int] = None

    def read(self, payload: bytes) -> PlainText:
        """
        Parse an RTF payload.

        Args:
            payload: Raw RTF bytes

        Returns:
            PlainText with attribute runs

        Raises:
            RTFError: If the payload is not RTF, its groups are unbalanced
                or its content cannot be decoded
        """
        source = self._decode_source(payload)
        if not source.lstrip().startswith("{\\rtf"):
            raise RTFError("Payload does not start with an RTF header")

        try:
            self._parse(source)
        except (LookupError, ValueError) as e:
            raise RTFError(f"Malformed RTF content: {e}") from e

        return PlainText(text="".join(self._chars), runs=self._build_runs())

    def _parse(self, source: str) -> None:
        stack: List[_GroupState] = []
        state = _GroupState()

        for match in self.TOKEN_PATTERN.finditer(source):
            word, param, hex_byte, symbol, brace, _newline, text = match.groups()

            if brace == "{":
                stack.append(state)
                state = state.copy()
                continue

            if brace == "}":
                if not stack:
                    raise RTFError("Unbalanced closing brace", match.start())
                self._end_group(state)
                state = stack.pop()
                continue

            if word is not None:
                self._control_word(state, word, int(param) if param is not None else None)
            elif hex_byte is not None:
                char = bytes([int(hex_byte, 16)]).decode(self._codepage, errors="replace")
                self._emit_text(state, char, counts_as_fallback=True)
            elif symbol is not None:
                self._control_symbol(state, symbol)
            elif text is not None:
                self._emit_text(state, text)

        if stack:
            raise RTFError("Unterminated RTF group", len(source))

    def _decode_source(self, payload: bytes) -> str:
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError:
            return payload.decode("latin-1")

    # -- control handling -------------------------------------------------

    def _control_word(self, state: _GroupState, word: str, param: Optional[int]) -> None:
        if word in TABLE_DESTINATIONS or word in SKIP_DESTINATIONS:
            state.destination = word
            state.skip = word in SKIP_DESTINATIONS
            return

        if state.destination == "fonttbl":
            if word == "f" and param is not None:
                self._font_index = param
            return

        if state.destination == "colortbl":
            if word in ("red", "green", "blue") and param is not None:
                self._rgb[word] = param
            return

        if state.destination == "expandedcolortbl":
            if word in ("cssrgb", "csgenericrgb", "csgray", "csgenericgray"):
                self._expanded_space = word
            elif word == "c" and param is not None:
                self._expanded.append(param / _COMPONENT_SCALE)
            return

        if state.skip:
            return

        if word == "ansicpg" and param is not None:
            self._codepage = resolve_codepage(param)
        elif word == "uc" and param is not None:
            state.uc = max(param, 0)
        elif word == "u" and param is not None:
            self._emit_unicode(state, param)
        elif word in ("par", "line"):
            self._emit_text(state, "\n")
        elif word == "tab":
            self._emit_text(state, "\t")
        elif word == "f" and param is not None:
            state.font = param
        elif word == "fs" and param is not None:
            state.half_points = param
        elif word == "cf" and param is not None:
            state.color = param
        elif word == "strokewidth":
            state.stroke_width = param or 0
        elif word == "strokec" and param is not None:
            state.stroke_color = param
        elif word == "plain":
            state.half_points = DEFAULT_FONT_SIZE_HALF_POINTS
            state.color = 0
            state.stroke_width = 0
            state.stroke_color = 0

    def _control_symbol(self, state: _GroupState, symbol: str) -> None:
        if symbol == "*":
            # Ignorable destination: skipped unless a table we understand
            # names it next.
            state.destination = "*"
            state.skip = True
            return
        if symbol in "\\{}":
            self._emit_text(state, symbol)
        elif symbol in "\r\n":
            self._emit_text(state, "\n")
        elif symbol == "~":
            self._emit_text(state, "\u00a0")
        elif symbol == "_":
            self._emit_text(state, "\u2011")
        elif symbol == "\t":
            self._emit_text(state, "\t")

    def _end_group(self, state: _GroupState) -> None:
        if state.destination == "fonttbl" and self._font_name:
            self._finish_font()

    # -- tables ------------------------------------------------------------

    def _table_text(self, state: _GroupState, text: str) -> None:
        if state.destination == "fonttbl":
            for char in text:
                if char == ";":
                    self._finish_font()
                else:
                    self._font_name.append(char)
        elif state.destination == "colortbl":
            for _ in range(text.count(";")):
                if self._rgb:
                    self._colors.append((
                        self._rgb.get("red", 0),
                        self._rgb.get("green", 0),
                        self._rgb.get("blue", 0),
                    ))
                else:
                    self._colors.append(None)
                self._rgb = {}
        elif state.destination == "expandedcolortbl":
            for _ in range(text.count(";")):
                self._alphas.append(self._expanded_alpha())
                self._expanded = []
                self._expanded_space = None

    def _finish_font(self) -> None:
        name = "".join(self._font_name).strip()
        if name:
            self._fonts[self._font_index] = name
        self._font_name = []

    def _expanded_alpha(self) -> Optional[float]:
        if self._expanded_space in ("cssrgb", "csgenericrgb") and len(self._expanded) >= 4:
            return self._expanded[3]
        if self._expanded_space in ("csgray", "csgenericgray") and len(self._expanded) >= 2:
            return self._expanded[1]
        if self._expanded_space is not None:
            return 1.0
        return None

    # -- text --------------------------------------------------------------

    def _emit_unicode(self, state: _GroupState, value: int) -> None:
        if value < 0:
            value += 65536
        self._skip_fallback = state.uc

        if 0xD800 <= value <= 0xDBFF:
            self._pending_surrogate = value
            return
        if 0xDC00 <= value <= 0xDFFF and self._pending_surrogate is not None:
            high = self._pending_surrogate
            self._pending_surrogate = None
            value = 0x10000 + ((high - 0xD800) << 10) + (value - 0xDC00)
        self._append(state, chr(value))

    def _emit_text(self, state: _GroupState, text: str, counts_as_fallback: bool = False) -> None:
        if state.destination in TABLE_DESTINATIONS:
            self._table_text(state, text)
            return
        if state.skip:
            return

        if self._skip_fallback:
            if counts_as_fallback:
                self._skip_fallback -= 1
                return
            consumed = min(self._skip_fallback, len(text))
            text = text[consumed:]
            self._skip_fallback -= consumed
            if not text:
                return

        for char in text:
            self._append(state, char)

    def _append(self, state: _GroupState, char: str) -> None:
        self._chars.append(char)
        self._char_attrs.append((
            state.font,
            state.half_points,
            state.color,
            state.stroke_width,
            state.stroke_color,
        ))

    # -- attributes --------------------------------------------------------

    def _color(self, index: int, default: Color) -> Color:
        if index <= 0 or index >= len(self._colors) or self._colors[index] is None:
            return default
        red, green, blue = self._colors[index]
        alpha = 1.0
        if index < len(self._alphas) and self._alphas[index] is not None:
            alpha = self._alphas[index]
        return Color(red / 255, green / 255, blue / 255, alpha)

    def _attributes(self, key: Tuple) -> TextAttributes:
        font, half_points, color, stroke_width, stroke_color = key
        return TextAttributes(
            font_name=self._fonts.get(font, "Helvetica"),
            font_size=half_points / 2,
            foreground=self._color(color, Color.BLACK),
            outline_color=self._color(stroke_color, Color.BLACK),
            outline_width=abs(stroke_width) / 20,
        )

    def _build_runs(self) -> List[TextRun]:
        runs: List[TextRun] = []
        cache: Dict[Tuple, TextAttributes] = {}
        start = 0
        for index in range(1, len(self._char_attrs) + 1):
            if index < len(self._char_attrs) and self._char_attrs[index] == self._char_attrs[start]:
                continue
            key = self._char_attrs[start]
            if key not in cache:
                cache[key] = self._attributes(key)
            runs.append(TextRun(start=start, end=index, attributes=cache[key]))
            start = index
        return runs


class RTFWriter:
    """
    Writes text with attribute spans as Cocoa RTF.

    Colour alpha is stored in the expanded colour table so transparent
    text survives a round trip.
    """

    HEADER = (
        "{\\rtf1\\ansi\\ansicpg1252\\cocoartf2761\n"
        "\\cocoatextscaling0\\cocoaplatform0"
    )
    PARAGRAPH = "\\pard\\pardirnatural\\qc\\partightenfactor0\n"

    def __init__(self):
        self._fonts: List[str] = []
        self._colors: List[Color] = []

    def write(self, text: str, runs: Sequence[TextRun]) -> bytes:
        """
        Serialize text to RTF.

        Args:
            text: Plain text
            runs: Attribute runs covering the text, in order

        Returns:
            RTF document as bytes
        """
        body: List[str] = []
        for run in runs:
            body.append(self._run_prefix(run.attributes))
            body.append(self._escape(text[run.start:run.end]))

        parts = [
            self.HEADER,
            self._font_table(),
            "\n",
            self._color_table(),
            "\n",
            self._expanded_color_table(),
            "\n",
            self.PARAGRAPH,
            "\\uc0\n",
            "".join(body),
            "}",
        ]
        return "".join(parts).encode("ascii")

    def _font_index(self, name: str) -> int:
        if name not in self._fonts:
            self._fonts.append(name)
        return self._fonts.index(name)

    def _color_index(self, color: Color) -> int:
        # Index 0 is the automatic colour, real entries start at 1.
        if color not in self._colors:
            self._colors.append(color)
        return self._colors.index(color) + 1

    def _run_prefix(self, attrs: TextAttributes) -> str:
        font = self._font_index(attrs.font_name)
        half_points = int(round(attrs.font_size * 2))
        fill = self._color_index(attrs.foreground)
        stroke = self._color_index(attrs.outline_color)
        stroke_width = -int(round(attrs.outline_width * 20))
        return (
            f"\\f{font}\\fs{half_points} \\cf{fill} "
            f"\\outl0\\strokewidth{stroke_width} \\strokec{stroke} "
        )

    def _font_table(self) -> str:
        entries = "".join(
            f"\\f{index}\\fnil\\fcharset0 {self._escape(name)};"
            for index, name in enumerate(self._fonts)
        )
        return "{\\fonttbl" + entries + "}"

    def _color_table(self) -> str:
        entries = "".join(
            "\\red{}\\green{}\\blue{};".format(*color.to_rgb255())
            for color in self._colors
        )
        return "{\\colortbl;" + entries + "}"

    def _expanded_color_table(self) -> str:
        def component(value: float) -> int:
            return int(round(value * _COMPONENT_SCALE))

        entries = "".join(
            f"\\csgenericrgb\\c{component(c.red)}\\c{component(c.green)}"
            f"\\c{component(c.blue)}\\c{component(c.alpha)};"
            for c in self._colors
        )
        return "{\\*\\expandedcolortbl;" + entries + "}"

    @staticmethod
    def _escape(text: str) -> str:
        out: List[str] = []
        for char in text:
            if char in "\\{}":
                out.append("\\" + char)
            elif char == "\n":
                out.append("\\\n")
            elif char == "\t":
                out.append("\\tab ")
            elif 32 <= ord(char) < 128:
                out.append(char)
            else:
                encoded = char.encode("utf-16-le")
                for i in range(0, len(encoded), 2):
                    unit = int.from_bytes(encoded[i:i + 2], "little")
                    if unit > 32767:
                        unit -= 65536
                    out.append(f"\\u{unit} ")
        return "".join(out)


def decode(payload: bytes) -> Optional[PlainText]:
    """
    Decode a slide text payload.

    Tries RTF first, then raw UTF-8 (trimmed). Returns None when neither
    works or the payload is empty.
    """
    if not payload:
        return None

    try:
        return RTFReader().read(payload)
    except RTFError as e:
        logger.warning(f"RTF parsing failed, trying plain text: {e}")

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Text payload is neither RTF nor UTF-8; treating as empty")
        return None

    return PlainText(text=text.strip(), is_fallback=True)


def encode(
    text: str,
    base_attributes: TextAttributes,
    overrides: Sequence[Tuple[int, int, TextAttributes]] = (),
) -> bytes:
    """
    Encode plain text as RTF.

    Args:
        text: Plain text
        base_attributes: Attributes applied to the whole text
        overrides: (start, end, attributes) spans that replace the base
            attributes; spans must not overlap

    Returns:
        RTF payload
    """
    attrs: List[TextAttributes] = [base_attributes] * len(text)
    for start, end, span_attrs in overrides:
        for index in range(max(start, 0), min(end, len(text))):
            attrs[index] = span_attrs

    runs: List[TextRun] = []
    start = 0
    for index in range(1, len(text) + 1):
        if index < len(text) and attrs[index] == attrs[start]:
            continue
        runs.append(TextRun(start=start, end=index, attributes=attrs[start]))
        start = index

    if not runs:
        runs.append(TextRun(start=0, end=0, attributes=base_attributes))

    return RTFWriter().write(text, runs)
