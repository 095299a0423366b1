"""
Background file operations.

Runs a whole load or save on a worker thread so callers with an event loop
or UI are not blocked. Work is never interrupted once started; a caller
that loses interest simply ignores the result.
"""

from __future__ import annotations

import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union
import logging

from pro7chords.services.file_service import ChordFileService, LoadedFile

logger = logging.getLogger(__name__)


class WorkerStatus(Enum):
    """Status of a worker."""
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


class FileWorker:
    """
    Runs a single file task on a background thread.

    Callbacks are invoked on the worker thread.
    """

    def __init__(
        self,
        task: Callable[[], Any],
        on_finished: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        name: str = "file-worker",
    ):
        """
        Initialize worker.

        Args:
            task: Callable doing the work; its return value is the result
            on_finished: Called with the result on success
            on_error: Called with the exception on failure
            name: Thread name
        """
        self._task = task
        self._on_finished = on_finished
        self._on_error = on_error
        self._name = name

        self.status = WorkerStatus.PENDING
        self.result: Any = None
        self.error: Optional[Exception] = None

        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def load(
        cls,
        service: ChordFileService,
        path: Union[str, Path],
        **callbacks,
    ) -> "FileWorker":
        """Create a worker that loads ``path``."""
        return cls(lambda: service.load_file(path), name=f"load-{Path(path).name}", **callbacks)

    @classmethod
    def save(
        cls,
        service: ChordFileService,
        source: LoadedFile,
        chords: Union[Mapping[str, str], str],
        output_path: Optional[Union[str, Path]] = None,
        **callbacks,
    ) -> "FileWorker":
        """Create a worker that saves chords for ``source``."""
        return cls(
            lambda: service.save_file(source, chords, output_path),
            name=f"save-{source.path.name}",
            **callbacks,
        )

    @property
    def is_running(self) -> bool:
        return self.status == WorkerStatus.RUNNING

    @property
    def is_done(self) -> bool:
        return self._done.is_set()

    def start(self) -> "FileWorker":
        """Start the task in the background."""
        if self._thread is not None:
            raise RuntimeError("Worker already started")

        self.status = WorkerStatus.RUNNING
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            self.result = self._task()
            self.status = WorkerStatus.FINISHED
        except Exception as e:
            logger.exception(f"{self._name} failed")
            self.error = e
            self.status = WorkerStatus.FAILED
        finally:
            self._done.set()

        try:
            if self.error is None:
                if self._on_finished:
                    self._on_finished(self.result)
            elif self._on_error:
                self._on_error(self.error)
        except Exception:
            logger.exception(f"{self._name} callback failed")

    def wait(self, timeout: Optional[float] = None) -> Any:
        """
        Block until the task completes.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Returns:
            Task result

        Raises:
            TimeoutError: If the task didn't finish in time
            Exception: Whatever the task raised
        """
        if not self._done.wait(timeout):
            raise TimeoutError(f"{self._name} did not finish within {timeout} seconds")
        if self.error is not None:
            raise self.error
        return self.result
