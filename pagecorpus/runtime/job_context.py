from __future__ import annotations

import logging
import threading
from typing import Protocol


logger = logging.getLogger(__name__)

PROGRESS_RESET = -1
PROGRESS_MAX = 100


class Terminable(Protocol):
    def terminate(self) -> None: ...


class JobContext:
    """Progress and cancellation state of a single result run.

    The aggregator thread writes progress and polls the cancel event between
    work units; pollers read progress and request cancellation from other
    threads.
    """

    def __init__(self, progress: int = PROGRESS_RESET):
        self._lock = threading.Lock()
        self._progress = progress
        self.cancel_event = threading.Event()
        self._processes: list[Terminable] = []

    @property
    def progress(self) -> int:
        with self._lock:
            return self._progress

    def set_progress(self, value: int) -> None:
        with self._lock:
            self._progress = max(PROGRESS_RESET, min(PROGRESS_MAX, int(value)))

    def record_progress(self, processed: int, total: int) -> None:
        if total <= 0:
            return
        self.set_progress(PROGRESS_MAX * processed // total)

    def reset_progress(self) -> None:
        self.set_progress(PROGRESS_RESET)

    @property
    def is_canceled(self) -> bool:
        return self.cancel_event.is_set()

    def attach_process(self, process: Terminable) -> None:
        with self._lock:
            self._processes.append(process)

    def detach_process(self, process: Terminable) -> None:
        with self._lock:
            if process in self._processes:
                self._processes.remove(process)

    def cancel(self) -> None:
        self.cancel_event.set()
        with self._lock:
            processes = list(self._processes)
        for process in processes:
            try:
                process.terminate()
            except Exception:  # noqa: BLE001
                logger.warning("Failed to terminate process %r on cancel", process, exc_info=True)
