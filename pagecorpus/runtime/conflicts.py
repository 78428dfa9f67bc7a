from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from pagecorpus.core.models import ConflictKind


RESULT_PROCESS = "result"

UPSTREAM_PROCESSES = frozenset(
    {
        "preprocessing",
        "despeckling",
        "segmentation",
        "region_extraction",
        "line_segmentation",
        "recognition",
    }
)

ConflictDetector = Callable[[Iterable[str]], ConflictKind]


def _normalize(name: str) -> str:
    snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name.strip())
    return snake.lower().replace("-", "_")


def result_conflict(running_processes: Iterable[str]) -> ConflictKind:
    """Classify running project processes against starting a result job.

    Another result job is blocking; an upstream stage still writing line
    outputs is advisory, since the result would miss its output.
    """
    running = {_normalize(name) for name in running_processes if name and name.strip()}
    if RESULT_PROCESS in running:
        return ConflictKind.BLOCKING
    if running & UPSTREAM_PROCESSES:
        return ConflictKind.ADVISORY
    return ConflictKind.NONE
