"""
Exception types shared by the loader, codec and annotation engine.
"""

from typing import Optional


class Pro7ChordsError(Exception):
    """Base class for all errors raised by pro7chords."""


class FormatError(Pro7ChordsError):
    """Container bytes do not decode to the expected presentation graph."""


class MissingArrangementError(Pro7ChordsError):
    """The presentation has no arrangement but the operation needs one."""

    def __init__(self, message: str = "No arrangement found in presentation"):
        super().__init__(message)


class MissingTextElementError(Pro7ChordsError):
    """A slide that was asked to be annotated has no text element."""

    def __init__(self, message: str = "No text element found in slide"):
        super().__init__(message)


class PartialAnnotationFailure(Pro7ChordsError):
    """
    Annotating a single slide failed.

    Raised inside the traversal and converted into a warning there; it
    never aborts a run.
    """

    def __init__(self, ordinal: int, cause: Exception, cue_name: Optional[str] = None):
        label = f"'{cue_name}'" if cue_name else "?"
        super().__init__(f"Failed to add chords to text slide {ordinal} (cue {label}): {cause}")
        self.ordinal = ordinal
        self.cause = cause
        self.cue_name = cue_name
