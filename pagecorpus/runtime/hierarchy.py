from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from pagecorpus.core.errors import DirectoryUnavailable, IOFailure
from pagecorpus.core.project_layout import ProjectLayout


logger = logging.getLogger(__name__)


@dataclass
class LineUnit:
    line_id: str
    processed: bool = False


@dataclass
class Segment:
    segment_id: str
    path: Path
    line_units: list[LineUnit] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.line_units.sort(key=lambda unit: unit.line_id)


@dataclass
class PageState:
    page_id: str
    segments: list[Segment] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.segments.sort(key=lambda segment: segment.segment_id)

    def line_unit_count(self) -> int:
        return sum(len(segment.line_units) for segment in self.segments)


class ProcessState:
    """Page -> segment -> line-unit tree, kept in lexicographic key order at every level.

    Iteration order is the aggregation order, so the sorting happens here and
    not in the code that walks the tree.
    """

    def __init__(self, pages: Iterable[PageState] = ()):
        by_id: dict[str, PageState] = {}
        for page in pages:
            by_id[page.page_id] = page
        self._pages: list[PageState] = [by_id[page_id] for page_id in sorted(by_id)]

    def __iter__(self) -> Iterator[PageState]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    @property
    def page_ids(self) -> list[str]:
        return [page.page_id for page in self._pages]

    def page(self, page_id: str) -> PageState | None:
        for page in self._pages:
            if page.page_id == page_id:
                return page
        return None

    def total_line_units(self) -> int:
        return sum(page.line_unit_count() for page in self._pages)

    def processed_line_units(self) -> int:
        return sum(
            1
            for page in self._pages
            for segment in page.segments
            for unit in segment.line_units
            if unit.processed
        )

    def as_dict(self) -> dict[str, dict[str, dict[str, bool]]]:
        return {
            page.page_id: {
                segment.segment_id: {unit.line_id: unit.processed for unit in segment.line_units}
                for segment in page.segments
            }
            for page in self._pages
        }


def _list_dir(path: Path) -> list[Path]:
    try:
        return list(path.iterdir())
    except OSError as exc:
        raise IOFailure(f"Failed to list directory {path}: {exc}") from exc


def _scan_segment(layout: ProjectLayout, segment_dir: Path) -> Segment:
    line_units = [
        LineUnit(line_id=layout.line_id(path))
        for path in _list_dir(segment_dir)
        if path.is_file() and layout.is_recognition_file(path)
    ]
    return Segment(segment_id=segment_dir.name, path=segment_dir, line_units=line_units)


def build_process_state(layout: ProjectLayout, page_ids: Iterable[str]) -> ProcessState:
    pages: list[PageState] = []
    for page_id in page_ids:
        page_dir = layout.page_dir(page_id)
        if not page_dir.is_dir():
            raise DirectoryUnavailable(f"Page directory not found: {page_dir}")

        segments = [_scan_segment(layout, child) for child in _list_dir(page_dir) if child.is_dir()]
        pages.append(PageState(page_id=page_id, segments=segments))

    state = ProcessState(pages)
    logger.debug(
        "Built process state for %s: %d pages, %d line units",
        layout.name,
        len(state),
        state.total_line_units(),
    )
    return state
