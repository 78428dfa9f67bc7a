from __future__ import annotations

import threading
from pathlib import Path

from pagecorpus.core.config import Settings
from pagecorpus.runtime.result_manager import ResultManager


class ResultManagerRegistry:
    """One `ResultManager` per project directory below the configured projects root."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._lock = threading.RLock()
        self._managers: dict[Path, ResultManager] = {}

    def resolve_project_dir(self, project: str) -> Path:
        raw = Path(project).expanduser()
        if raw.is_absolute():
            return raw.resolve()

        root = self.settings.projects_path.resolve()
        candidate = (root / raw).resolve()
        try:
            candidate.relative_to(root)
        except ValueError as exc:
            raise ValueError("project must stay inside the projects directory") from exc
        return candidate

    def list_projects(self) -> list[str]:
        root = self.settings.projects_path
        if not root.is_dir():
            return []
        return sorted(path.name for path in root.iterdir() if path.is_dir())

    def get(self, project: str) -> ResultManager:
        project_dir = self.resolve_project_dir(project)
        if not project_dir.is_dir():
            raise FileNotFoundError(f"Project not found: {project}")

        with self._lock:
            manager = self._managers.get(project_dir)
            if manager is None:
                manager = ResultManager(self.settings, project_dir)
                self._managers[project_dir] = manager
            return manager

    async def shutdown(self) -> None:
        with self._lock:
            managers = list(self._managers.values())
        for manager in managers:
            await manager.shutdown()
