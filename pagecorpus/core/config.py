from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


REPO_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    api_host: str = Field(default="0.0.0.0", alias="PAGECORPUS_API_HOST")
    api_port: int = Field(default=8797, alias="PAGECORPUS_API_PORT")
    log_level: str = Field(default="INFO", alias="PAGECORPUS_LOG_LEVEL")

    projects_dir: str = Field(default="projects", alias="PAGECORPUS_PROJECTS_DIR")
    job_configs_dir: str = Field(default="job_configs", alias="PAGECORPUS_JOB_CONFIGS_DIR")

    # Project-relative layout
    page_dir_name: str = Field(default="processing", alias="PAGECORPUS_PAGE_DIR")
    original_images_dir_name: str = Field(default="original", alias="PAGECORPUS_ORIGINAL_IMAGES_DIR")
    ocr_dir_name: str = Field(default="ocr", alias="PAGECORPUS_OCR_DIR")
    result_dir_name: str = Field(default="results", alias="PAGECORPUS_RESULT_DIR")
    result_pages_dir_name: str = Field(default="results/pages", alias="PAGECORPUS_RESULT_PAGES_DIR")

    recognition_ext: str = Field(default=".txt", alias="PAGECORPUS_RECOGNITION_EXT")
    ground_truth_ext: str = Field(default=".gt.txt", alias="PAGECORPUS_GROUND_TRUTH_EXT")
    config_artifact_ext: str = Field(default=".conf", alias="PAGECORPUS_CONFIG_ARTIFACT_EXT")
    image_ext: str = Field(default=".png", alias="PAGECORPUS_IMAGE_EXT")
    line_image_ext: str = Field(default=".bin.png", alias="PAGECORPUS_LINE_IMAGE_EXT")

    converter_command: list[str] = Field(
        default_factory=lambda: ["pagedir2pagexml.py"],
        alias="PAGECORPUS_CONVERTER_COMMAND",
    )
    converter_timeout_seconds: float | None = Field(default=None, gt=0.0, alias="PAGECORPUS_CONVERTER_TIMEOUT_SECONDS")

    def resolve_path(self, path_value: str) -> Path:
        candidate = Path(path_value).expanduser()
        if candidate.is_absolute():
            return candidate
        return REPO_ROOT / candidate

    @property
    def projects_path(self) -> Path:
        return self.resolve_path(self.projects_dir)

    @property
    def job_configs_path(self) -> Path:
        return self.resolve_path(self.job_configs_dir)

    def ensure_runtime_dirs(self) -> None:
        self.projects_path.mkdir(parents=True, exist_ok=True)
        self.job_configs_path.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_runtime_dirs()
    return settings
