from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ResultMode(str, Enum):
    TEXT = "text"
    STRUCTURED = "structured"

    @classmethod
    def _missing_(cls, value: object) -> "ResultMode | None":
        if isinstance(value, str):
            normalized = value.strip().lower()
            aliases = {"txt": cls.TEXT, "xml": cls.STRUCTURED}
            if normalized in aliases:
                return aliases[normalized]
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


class ConflictKind(str, Enum):
    NONE = "none"
    BLOCKING = "blocking"
    ADVISORY = "advisory"


def _clean_page_ids(value: list[str]) -> list[str]:
    return [page_id.strip() for page_id in value if page_id and page_id.strip()]


class ResultJobConfig(BaseModel):
    project: str = Field(..., description="Project directory name or path")
    page_ids: list[str] = Field(default_factory=list, description="Pages to aggregate; empty means all valid pages")
    mode: ResultMode = ResultMode.TEXT

    @field_validator("page_ids")
    @classmethod
    def validate_page_ids(cls, value: list[str]) -> list[str]:
        return _clean_page_ids(value)


class ExecuteResultRequest(BaseModel):
    page_ids: list[str] = Field(default_factory=list)
    mode: ResultMode = ResultMode.TEXT
    running_processes: list[str] = Field(
        default_factory=list,
        description="Processes the caller knows to be running on this project",
    )

    @field_validator("page_ids")
    @classmethod
    def validate_page_ids(cls, value: list[str]) -> list[str]:
        cleaned = _clean_page_ids(value)
        if not cleaned:
            raise ValueError("At least one page id is required")
        return cleaned


class ConflictRequest(BaseModel):
    running_processes: list[str] = Field(default_factory=list)


class ConflictResponse(BaseModel):
    project: str
    conflict: ConflictKind


class ProgressResponse(BaseModel):
    project: str
    progress: int = Field(..., ge=-1, le=100)


class ValidPagesResponse(BaseModel):
    project: str
    page_ids: list[str]


class ResultRunStatus(BaseModel):
    status: RunStatus = RunStatus.IDLE
    mode: ResultMode | None = None
    page_ids: list[str] = Field(default_factory=list)
    progress: int = -1
    started_at: datetime | None = None
    ended_at: datetime | None = None
    error: str | None = None


class ProjectStatusResponse(BaseModel):
    project: str
    run: ResultRunStatus


class ExecuteResultResponse(BaseModel):
    project: str
    conflict: ConflictKind
    run: ResultRunStatus


class CancelResultResponse(BaseModel):
    project: str
    canceled: bool
