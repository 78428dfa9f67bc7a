from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from pagecorpus.core.config import Settings
from pagecorpus.core.models import ConflictKind, ResultMode, ResultRunStatus, RunStatus
from pagecorpus.core.project_layout import ProjectLayout
from pagecorpus.runtime.conflicts import RESULT_PROCESS, ConflictDetector, result_conflict
from pagecorpus.runtime.converter import ConverterInvoker
from pagecorpus.runtime.hierarchy import ProcessState, build_process_state
from pagecorpus.runtime.job_context import JobContext
from pagecorpus.runtime.page_listing import list_page_ids, recognition_completed
from pagecorpus.runtime.structured_delegator import StructuredOutcome, delegate_structured
from pagecorpus.runtime.text_aggregator import TextAggregationOutcome, aggregate_text


logger = logging.getLogger(__name__)

PageLister = Callable[[ProjectLayout], list[str]]
RecognitionPredicate = Callable[[ProjectLayout, str], bool]
ConverterFactory = Callable[[], ConverterInvoker]


class ResultManager:
    """Result generation for one project: text aggregation or structured conversion.

    Each `execute_process` call runs against a fresh `JobContext`; progress and
    cancellation requests always address the most recent run. The manager does
    not stop two runs from overlapping: callers check `get_conflict_type`
    first.
    """

    def __init__(
        self,
        settings: Settings,
        project_dir: Path,
        *,
        conflict_detector: ConflictDetector = result_conflict,
        page_lister: PageLister = list_page_ids,
        recognition_state: RecognitionPredicate = recognition_completed,
        converter_factory: ConverterFactory | None = None,
    ):
        self.settings = settings
        self.layout = ProjectLayout(settings, project_dir)
        self._conflict_detector = conflict_detector
        self._page_lister = page_lister
        self._recognition_state = recognition_state
        self._converter_factory = converter_factory or self._default_converter

        self._state_lock = threading.RLock()
        self._context = JobContext()
        self._process_state: ProcessState | None = None
        self._run = ResultRunStatus()
        self._task: asyncio.Task[None] | None = None

    @property
    def project(self) -> str:
        return self.layout.name

    def _default_converter(self) -> ConverterInvoker:
        return ConverterInvoker(
            self.settings.converter_command,
            timeout_seconds=self.settings.converter_timeout_seconds,
        )

    def initialize(self, page_ids: Iterable[str]) -> ProcessState:
        state = build_process_state(self.layout, page_ids)
        with self._state_lock:
            self._process_state = state
        return state

    def process_state(self) -> dict[str, dict[str, dict[str, bool]]]:
        with self._state_lock:
            if self._process_state is None:
                return {}
            return self._process_state.as_dict()

    def execute_process(
        self,
        page_ids: Sequence[str],
        mode: ResultMode | str,
    ) -> TextAggregationOutcome | StructuredOutcome:
        result_mode = ResultMode(mode)
        page_ids = list(page_ids)
        context = self._begin_run(page_ids, result_mode)
        return self._execute(page_ids, result_mode, context)

    def _begin_run(self, page_ids: list[str], mode: ResultMode) -> JobContext:
        context = JobContext(progress=0)
        with self._state_lock:
            self._context = context
            self._run = ResultRunStatus(
                status=RunStatus.RUNNING,
                mode=mode,
                page_ids=page_ids,
                progress=0,
                started_at=datetime.now(UTC),
            )
        return context

    def _execute(
        self,
        page_ids: list[str],
        result_mode: ResultMode,
        context: JobContext,
    ) -> TextAggregationOutcome | StructuredOutcome:
        logger.info("Starting %s result run for %s (%d pages)", result_mode.value, self.project, len(page_ids))

        try:
            self.layout.ensure_result_dirs()
            if result_mode == ResultMode.TEXT:
                outcome: TextAggregationOutcome | StructuredOutcome = self._execute_text(page_ids, context)
            else:
                outcome = delegate_structured(page_ids, context, self.layout, self._converter_factory())
        except Exception as exc:
            logger.error("Result run for %s failed: %s", self.project, exc)
            self._finish_run(context, RunStatus.FAILED, error=str(exc))
            raise
        except BaseException:
            # Interrupted in the foreground, e.g. Ctrl-C in the CLI
            context.cancel()
            self._finish_run(context, RunStatus.CANCELED)
            raise

        status = RunStatus.CANCELED if outcome.canceled else RunStatus.COMPLETED
        self._finish_run(context, status)
        logger.info("Result run for %s finished: %s (progress %d)", self.project, status.value, context.progress)
        return outcome

    def _execute_text(self, page_ids: Sequence[str], context: JobContext) -> TextAggregationOutcome:
        state = self.initialize(page_ids)
        try:
            return aggregate_text(state, context, self.layout)
        finally:
            with self._state_lock:
                if self._process_state is state:
                    self._process_state = None

    def _finish_run(self, context: JobContext, status: RunStatus, error: str | None = None) -> None:
        with self._state_lock:
            if self._context is not context:
                return
            self._run.status = status
            self._run.ended_at = datetime.now(UTC)
            if error:
                self._run.error = error

    def get_progress(self) -> int:
        with self._state_lock:
            context = self._context
        return context.progress

    def reset_progress(self) -> None:
        with self._state_lock:
            context = self._context
        context.reset_progress()

    def cancel_process(self) -> None:
        with self._state_lock:
            context = self._context
        logger.info("Cancel requested for result run of %s", self.project)
        context.cancel()

    def get_valid_page_ids_for_result(self) -> list[str]:
        return sorted(
            page_id
            for page_id in self._page_lister(self.layout)
            if self._recognition_state(self.layout, page_id)
        )

    def get_conflict_type(self, running_processes: Iterable[str]) -> ConflictKind:
        return self._conflict_detector(running_processes)

    def is_running(self) -> bool:
        with self._state_lock:
            return self._run.status == RunStatus.RUNNING

    def running_processes(self) -> list[str]:
        return [RESULT_PROCESS] if self.is_running() else []

    def status(self) -> ResultRunStatus:
        with self._state_lock:
            snapshot = self._run.model_copy(deep=True)
            context = self._context
        snapshot.progress = context.progress
        return snapshot

    async def launch(self, page_ids: Sequence[str], mode: ResultMode | str) -> ResultRunStatus:
        """Start `execute_process` in a worker thread and return immediately."""
        result_mode = ResultMode(mode)
        page_ids = list(page_ids)

        with self._state_lock:
            if self._task and not self._task.done():
                raise ValueError(f"A result run is already active for project {self.project}")
            # Registered before the worker thread starts so early polls and cancels reach this run
            context = self._begin_run(page_ids, result_mode)
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run_in_background(page_ids, result_mode, context))
        return self.status()

    async def _run_in_background(self, page_ids: list[str], mode: ResultMode, context: JobContext) -> None:
        try:
            await asyncio.to_thread(self._execute, page_ids, mode, context)
        except Exception:  # noqa: BLE001
            # Failure is recorded in the run status; pollers must not see a stale percentage
            context.reset_progress()

    async def wait(self) -> None:
        with self._state_lock:
            task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        with self._state_lock:
            task = self._task
        if task is None or task.done():
            return
        await asyncio.to_thread(self.cancel_process)
        await asyncio.gather(task, return_exceptions=True)
