from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pagecorpus.core.config import Settings
from pagecorpus.core.errors import DirectoryUnavailable, IOFailure


CORPUS_FILE_NAME = "complete.txt"
PAGE_RESULT_SUFFIX = ".txt"


@dataclass(frozen=True)
class LineSources:
    ground_truth: Path
    recognition: Path

    def resolve(self) -> Path:
        if self.ground_truth.is_file():
            return self.ground_truth
        return self.recognition


class ProjectLayout:
    """Project-relative paths and file-name conventions of one recognition project."""

    def __init__(self, settings: Settings, project_dir: Path):
        self.settings = settings
        self.project_dir = project_dir

    @property
    def name(self) -> str:
        return self.project_dir.name

    @property
    def page_root(self) -> Path:
        return self.project_dir / self.settings.page_dir_name

    @property
    def original_images_dir(self) -> Path:
        return self.project_dir / self.settings.original_images_dir_name

    @property
    def config_artifacts_dir(self) -> Path:
        return self.project_dir / self.settings.ocr_dir_name

    @property
    def result_dir(self) -> Path:
        return self.project_dir / self.settings.result_dir_name

    @property
    def result_pages_dir(self) -> Path:
        return self.project_dir / self.settings.result_pages_dir_name

    @property
    def corpus_path(self) -> Path:
        return self.result_dir / CORPUS_FILE_NAME

    @staticmethod
    def is_valid_page_id(page_id: str) -> bool:
        """Page ids name a single directory entry below the page root."""
        return bool(page_id) and page_id not in {".", ".."} and not any(sep in page_id for sep in ("/", "\\", "\0"))

    def _checked_page_id(self, page_id: str) -> str:
        if not self.is_valid_page_id(page_id):
            raise DirectoryUnavailable(f"Invalid page id: {page_id!r}")
        return page_id

    def page_dir(self, page_id: str) -> Path:
        return self.page_root / self._checked_page_id(page_id)

    def page_result_path(self, page_id: str) -> Path:
        return self.result_pages_dir / f"{self._checked_page_id(page_id)}{PAGE_RESULT_SUFFIX}"

    def ensure_result_dirs(self) -> None:
        for path in (self.result_dir, self.result_pages_dir):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise IOFailure(f"Failed to create result directory {path}: {exc}") from exc

    def is_recognition_file(self, path: Path) -> bool:
        name = path.name
        return (
            name.endswith(self.settings.recognition_ext)
            and not name.endswith(self.settings.ground_truth_ext)
            and len(name) > len(self.settings.recognition_ext)
        )

    def is_config_artifact(self, path: Path) -> bool:
        return path.name.endswith(self.settings.config_artifact_ext)

    def line_id(self, path: Path) -> str:
        return path.name.removesuffix(self.settings.recognition_ext)

    def line_sources(self, segment_dir: Path, line_id: str) -> LineSources:
        return LineSources(
            ground_truth=segment_dir / f"{line_id}{self.settings.ground_truth_ext}",
            recognition=segment_dir / f"{line_id}{self.settings.recognition_ext}",
        )
