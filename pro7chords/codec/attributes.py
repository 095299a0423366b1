"""
Character formatting attributes carried by slide text.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional


@dataclass(frozen=True)
class Color:
    """RGBA colour with components in the 0.0-1.0 range."""
    red: float = 0.0
    green: float = 0.0
    blue: float = 0.0
    alpha: float = 1.0

    @property
    def is_transparent(self) -> bool:
        return self.alpha <= 0.0

    def to_rgb255(self) -> tuple:
        """Get (red, green, blue) scaled to 0-255."""
        return tuple(int(round(c * 255)) for c in (self.red, self.green, self.blue))


Color.WHITE = Color(1.0, 1.0, 1.0, 1.0)
Color.BLACK = Color(0.0, 0.0, 0.0, 1.0)
Color.CLEAR = Color(0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class TextAttributes:
    """Formatting applied to a run of characters."""
    font_name: str = "Helvetica"
    font_size: float = 117.0  # points
    foreground: Color = Color.WHITE
    outline_color: Color = Color.BLACK
    outline_width: float = 2.0  # 0 = no outline

    def with_overrides(self, **changes) -> "TextAttributes":
        """Return a copy with some attributes replaced."""
        return replace(self, **changes)


BASELINE_ATTRIBUTES = TextAttributes()


@dataclass
class TextRun:
    """A character range [start, end) sharing the same attributes."""
    start: int
    end: int
    attributes: TextAttributes

    def __len__(self) -> int:
        return self.end - self.start


@dataclass
class PlainText:
    """Plain text recovered from a rich text payload."""
    text: str
    runs: List[TextRun] = field(default_factory=list)
    is_fallback: bool = False  # decoded as raw UTF-8 rather than RTF

    @property
    def stripped(self) -> str:
        return self.text.strip()

    @property
    def is_empty(self) -> bool:
        return not self.stripped

    def attributes_at(self, index: int) -> Optional[TextAttributes]:
        """Get the attributes of the character at ``index``."""
        for run in self.runs:
            if run.start <= index < run.end:
                return run.attributes
        return None

    @property
    def base_attributes(self) -> Optional[TextAttributes]:
        """Attributes of the first character, if any."""
        if not self.text:
            return None
        return self.attributes_at(0)
