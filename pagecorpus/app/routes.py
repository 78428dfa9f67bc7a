from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from pagecorpus.core.config import Settings
from pagecorpus.core.job_configs import discover_job_configs
from pagecorpus.core.models import (
    CancelResultResponse,
    ConflictKind,
    ConflictRequest,
    ConflictResponse,
    ExecuteResultRequest,
    ExecuteResultResponse,
    ProgressResponse,
    ProjectStatusResponse,
    ResultMode,
    ValidPagesResponse,
)
from pagecorpus.runtime.registry import ResultManagerRegistry
from pagecorpus.runtime.result_manager import ResultManager


def build_result_router(*, settings: Settings, registry: ResultManagerRegistry) -> APIRouter:
    router = APIRouter()

    def _manager(project: str) -> ResultManager:
        try:
            return registry.get(project)
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @router.get("/api/projects")
    def list_projects() -> dict[str, Any]:
        return {
            "projects_root": str(settings.projects_path),
            "projects": registry.list_projects(),
        }

    @router.get("/api/job-configs")
    def list_job_configs() -> dict[str, Any]:
        return {
            "job_configs_root": str(settings.job_configs_path),
            "candidates": discover_job_configs(settings),
        }

    @router.get("/api/projects/{project}/result/pages", response_model=ValidPagesResponse)
    def valid_pages(project: str) -> ValidPagesResponse:
        manager = _manager(project)
        return ValidPagesResponse(project=project, page_ids=manager.get_valid_page_ids_for_result())

    @router.get("/api/projects/{project}/result/progress", response_model=ProgressResponse)
    def progress(project: str) -> ProgressResponse:
        manager = _manager(project)
        return ProgressResponse(project=project, progress=manager.get_progress())

    @router.get("/api/projects/{project}/result/status", response_model=ProjectStatusResponse)
    def status(project: str) -> ProjectStatusResponse:
        manager = _manager(project)
        return ProjectStatusResponse(project=project, run=manager.status())

    @router.post("/api/projects/{project}/result/conflict", response_model=ConflictResponse)
    def conflict(project: str, payload: ConflictRequest) -> ConflictResponse:
        manager = _manager(project)
        running = [*manager.running_processes(), *payload.running_processes]
        return ConflictResponse(project=project, conflict=manager.get_conflict_type(running))

    @router.post("/api/projects/{project}/result/execute", response_model=ExecuteResultResponse)
    async def execute(project: str, payload: ExecuteResultRequest) -> ExecuteResultResponse:
        manager = _manager(project)

        running = [*manager.running_processes(), *payload.running_processes]
        conflict_kind = manager.get_conflict_type(running)
        if conflict_kind == ConflictKind.BLOCKING:
            raise HTTPException(status_code=409, detail=f"result process conflicts with running processes: {running}")

        if payload.mode == ResultMode.TEXT:
            layout = manager.layout
            missing = [
                page_id
                for page_id in payload.page_ids
                if not layout.is_valid_page_id(page_id) or not layout.page_dir(page_id).is_dir()
            ]
            if missing:
                raise HTTPException(status_code=400, detail=f"unknown page ids: {', '.join(missing)}")

        try:
            run = await manager.launch(payload.page_ids, payload.mode)
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

        return ExecuteResultResponse(project=project, conflict=conflict_kind, run=run)

    @router.post("/api/projects/{project}/result/cancel", response_model=CancelResultResponse)
    def cancel(project: str) -> CancelResultResponse:
        manager = _manager(project)
        was_running = manager.is_running()
        manager.cancel_process()
        return CancelResultResponse(project=project, canceled=was_running)

    @router.post("/api/projects/{project}/result/reset", response_model=ProgressResponse)
    def reset(project: str) -> ProgressResponse:
        manager = _manager(project)
        manager.reset_progress()
        return ProgressResponse(project=project, progress=manager.get_progress())

    return router
