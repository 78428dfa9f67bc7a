from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pagecorpus.core.errors import ConverterTimeout, ConverterUnavailable


logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    artifact: Path
    returncode: int | None
    stdout: str
    stderr: str
    terminated: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.terminated and self.returncode == 0


class ConverterInvoker:
    """Runs the external structured-format converter, one artifact per call.

    `terminate()` may be called from another thread while `invoke()` blocks; it
    stops the process in flight and makes any later `invoke()` with a set
    cancel event return without starting a process.
    """

    def __init__(self, command: Sequence[str], timeout_seconds: float | None = None, terminate_grace_seconds: float = 15.0):
        if not command:
            raise ValueError("Converter command must not be empty")
        self.command = list(command)
        self.timeout_seconds = timeout_seconds
        self.terminate_grace_seconds = terminate_grace_seconds
        self._lock = threading.Lock()
        self._process: subprocess.Popen | None = None
        self._terminated = False

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    def invoke(self, artifact: Path, cancel_event: threading.Event | None = None) -> ConversionResult:
        cmd = [*self.command, str(artifact)]

        with self._lock:
            if cancel_event is not None and cancel_event.is_set():
                return ConversionResult(artifact=artifact, returncode=None, stdout="", stderr="", terminated=True)
            self._terminated = False
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                )
            except FileNotFoundError as exc:
                raise ConverterUnavailable(f"Converter executable not found in PATH: {self.command[0]}") from exc
            self._process = process

        logger.debug("Started converter pid=%s: %s", process.pid, " ".join(cmd))

        try:
            stdout, stderr = process.communicate(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise ConverterTimeout(
                f"Converter exceeded {self.timeout_seconds}s on {artifact}"
            ) from exc
        finally:
            with self._lock:
                self._process = None
                terminated = self._terminated

        return ConversionResult(
            artifact=artifact,
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            terminated=terminated,
        )

    def terminate(self) -> None:
        with self._lock:
            process = self._process
            if process is None or process.poll() is not None:
                return
            self._terminated = True

        logger.info("Terminating converter pid=%s", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace_seconds)
        except subprocess.TimeoutExpired:
            process.kill()
