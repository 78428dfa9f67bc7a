from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pagecorpus.core.project_layout import ProjectLayout
from pagecorpus.runtime.converter import ConversionResult, ConverterInvoker
from pagecorpus.runtime.job_context import JobContext


logger = logging.getLogger(__name__)


@dataclass
class StructuredOutcome:
    results: list[ConversionResult] = field(default_factory=list)
    total_artifacts: int = 0
    canceled: bool = False

    @property
    def failed(self) -> list[ConversionResult]:
        return [result for result in self.results if not result.terminated and result.returncode != 0]


def list_config_artifacts(layout: ProjectLayout) -> list[Path]:
    artifacts_dir = layout.config_artifacts_dir
    if not artifacts_dir.is_dir():
        return []
    return sorted(
        (path for path in artifacts_dir.iterdir() if path.is_file() and layout.is_config_artifact(path)),
        key=lambda path: path.name,
    )


def delegate_structured(
    page_ids: Sequence[str],
    context: JobContext,
    layout: ProjectLayout,
    invoker: ConverterInvoker,
) -> StructuredOutcome:
    """Run the external converter once per configuration artifact of the project.

    Every artifact is converted whatever `page_ids` holds; the ids are only
    logged. Artifacts are processed in file-name order.
    """
    outcome = StructuredOutcome()
    if not layout.config_artifacts_dir.is_dir():
        logger.info("No configuration artifacts directory at %s; nothing to convert", layout.config_artifacts_dir)
        return outcome

    artifacts = list_config_artifacts(layout)
    outcome.total_artifacts = len(artifacts)
    logger.info(
        "Converting %d configuration artifacts for %s (requested pages: %s)",
        len(artifacts),
        layout.name,
        ", ".join(page_ids) or "-",
    )

    context.attach_process(invoker)
    try:
        for index, artifact in enumerate(artifacts, start=1):
            if context.is_canceled:
                outcome.canceled = True
                return outcome

            result = invoker.invoke(artifact.resolve(), cancel_event=context.cancel_event)
            outcome.results.append(result)
            if result.terminated:
                outcome.canceled = True
                return outcome
            if result.returncode != 0:
                logger.warning(
                    "Converter exited with status %s for %s: %s",
                    result.returncode,
                    artifact.name,
                    result.stderr.strip()[-500:],
                )

            context.record_progress(index, len(artifacts))
    finally:
        context.detach_process(invoker)

    return outcome
