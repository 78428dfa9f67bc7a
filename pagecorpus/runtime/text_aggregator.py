from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pagecorpus.core.errors import IOFailure
from pagecorpus.core.project_layout import ProjectLayout
from pagecorpus.runtime.hierarchy import ProcessState
from pagecorpus.runtime.job_context import JobContext


logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"
PAGE_SEPARATOR = "\n"


@dataclass
class TextAggregationOutcome:
    pages_written: list[Path] = field(default_factory=list)
    corpus_path: Path | None = None
    canceled: bool = False


def read_line_source(path: Path) -> str:
    """Return the file's lines, each terminated by a single newline."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            return "".join(line.removesuffix(LINE_TERMINATOR) + LINE_TERMINATOR for line in handle)
    except (OSError, UnicodeDecodeError) as exc:
        raise IOFailure(f"Failed to read line source {path}: {exc}") from exc


def _write_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise IOFailure(f"Failed to write result file {path}: {exc}") from exc


def aggregate_text(state: ProcessState, context: JobContext, layout: ProjectLayout) -> TextAggregationOutcome:
    """Concatenate every line unit of `state` into per-page files and the corpus file.

    Pages, segments and line units are consumed in the tree's sorted order. A
    cancellation stops before the next line unit: the page being built is not
    written and neither is the corpus file. Read and write failures propagate
    as `IOFailure` and leave already written page files in place.
    """
    outcome = TextAggregationOutcome()
    total_units = state.total_line_units()
    processed_units = 0
    page_texts: list[str] = []

    for page in state:
        if context.is_canceled:
            outcome.canceled = True
            return outcome

        parts: list[str] = []
        for segment in page.segments:
            for unit in segment.line_units:
                if context.is_canceled:
                    logger.info(
                        "Text aggregation canceled in page %s after %d/%d line units",
                        page.page_id,
                        processed_units,
                        total_units,
                    )
                    outcome.canceled = True
                    return outcome

                source = layout.line_sources(segment.path, unit.line_id).resolve()
                parts.append(read_line_source(source))

                unit.processed = True
                processed_units += 1
                context.record_progress(processed_units, total_units)

        page_text = "".join(parts)
        page_path = layout.page_result_path(page.page_id)
        _write_text(page_path, page_text)
        outcome.pages_written.append(page_path)
        page_texts.append(page_text)

    corpus = "".join(page_text + PAGE_SEPARATOR for page_text in page_texts)
    _write_text(layout.corpus_path, corpus)
    outcome.corpus_path = layout.corpus_path
    logger.info(
        "Wrote %d page results and %s (%d line units)",
        len(outcome.pages_written),
        layout.corpus_path,
        processed_units,
    )
    return outcome
