from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pagecorpus.core.config import Settings
from pagecorpus.core.models import ResultJobConfig


JOB_CONFIG_SUFFIXES = {".yaml", ".yml"}


def is_job_config(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in JOB_CONFIG_SUFFIXES


def resolve_job_config_path(settings: Settings, candidate: str) -> Path:
    """Absolute paths win, then paths relative to the working dir, then the configs dir."""
    raw = Path(candidate).expanduser()
    if raw.is_absolute():
        return raw
    in_cwd = (Path.cwd() / raw).resolve()
    return in_cwd if in_cwd.exists() else (settings.job_configs_path / raw).resolve()


def _read_payload(path: Path) -> dict[str, Any]:
    if path.suffix.lower() not in JOB_CONFIG_SUFFIXES:
        raise ValueError("Job config file must end in .yaml or .yml")

    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ValueError("Job config root must be a mapping/object")

    # YAML reads unquoted ids such as 0010 as ints, losing the leading zeros
    page_ids = payload.get("page_ids")
    if isinstance(page_ids, list) and not all(isinstance(page_id, str) for page_id in page_ids):
        raise ValueError("Job config page_ids must be quoted strings (e.g. '0001')")
    return payload


def load_job_config(settings: Settings, candidate: str) -> ResultJobConfig:
    path = resolve_job_config_path(settings, candidate)
    if not path.is_file():
        raise FileNotFoundError(f"Job config file not found: {path}")
    return ResultJobConfig.model_validate(_read_payload(path))


def _summarize(path: Path, configs_root: Path) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "path": str(path),
        "relative_to_configs": path.relative_to(configs_root).as_posix(),
        "project": None,
        "mode": None,
        "page_count": 0,
        "error": None,
    }
    try:
        config = ResultJobConfig.model_validate(_read_payload(path))
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        entry["error"] = str(exc).splitlines()[0]
        return entry

    entry.update(project=config.project, mode=config.mode.value, page_count=len(config.page_ids))
    return entry


def discover_job_configs(settings: Settings, max_items: int = 500) -> list[dict[str, Any]]:
    """Result-job configs below the configs dir, each with a summary or its load error."""
    configs_root = settings.job_configs_path
    configs_root.mkdir(parents=True, exist_ok=True)

    configs = [path for path in sorted(configs_root.rglob("*")) if is_job_config(path)]
    return [_summarize(path, configs_root) for path in configs[:max_items]]
