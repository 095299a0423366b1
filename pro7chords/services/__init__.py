"""
File services for Pro7Chords.
"""

from pro7chords.services.file_service import (
    ChordFileService,
    FileKind,
    LoadedFile,
    PresentationBundle,
    PresentationFileInfo,
    SaveResult,
    SlideInfo,
)
from pro7chords.services.worker import FileWorker, WorkerStatus

__all__ = [
    "ChordFileService",
    "FileKind",
    "LoadedFile",
    "PresentationBundle",
    "PresentationFileInfo",
    "SaveResult",
    "SlideInfo",
    "FileWorker",
    "WorkerStatus",
]
