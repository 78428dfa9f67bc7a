from __future__ import annotations

from pathlib import Path

import pytest

from pagecorpus import cli
from pagecorpus.core.config import Settings


def _build_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        _env_file=None,
        PAGECORPUS_PROJECTS_DIR=str(tmp_path / "projects"),
        PAGECORPUS_JOB_CONFIGS_DIR=str(tmp_path / "job_configs"),
    )
    settings.ensure_runtime_dirs()
    return settings


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    settings = _build_settings(tmp_path)
    monkeypatch.setattr("pagecorpus.core.config.get_settings", lambda: settings)
    return settings


def test_parser_collects_repeated_pages() -> None:
    args = cli.build_parser().parse_args(["run", "book", "--page", "0001", "--page", "0002", "--mode", "text"])

    assert args.command == "run"
    assert args.project == "book"
    assert args.page_ids == ["0001", "0002"]
    assert args.mode == "text"


def test_run_result_job_from_yaml_config(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    project_dir = settings.projects_path / "book"
    _write(project_dir / "processing" / "0001" / "seg" / "l0.txt", "hello")
    _write(settings.job_configs_path / "book.yaml", "project: book\npage_ids: ['0001']\nmode: text\n")

    args = cli.build_parser().parse_args(["run", "--config", "book.yaml"])
    code = cli.run_result_job(args)

    out = capsys.readouterr().out
    assert code == 0
    assert "Conflict check: none" in out
    assert "Wrote 1 page results" in out
    assert (project_dir / "results" / "complete.txt").read_text(encoding="utf-8") == "hello\n\n"


def test_run_result_job_defaults_to_ready_pages(settings: Settings) -> None:
    project_dir = settings.projects_path / "book"
    _write(project_dir / "original" / "0001.png", "")
    _write(project_dir / "original" / "0002.png", "")
    _write(project_dir / "processing" / "0001" / "seg" / "l0.bin.png", "")
    _write(project_dir / "processing" / "0001" / "seg" / "l0.txt", "ready")
    _write(project_dir / "processing" / "0002" / "seg" / "l0.bin.png", "")

    code = cli.run_result_job(cli.build_parser().parse_args(["run", "book"]))

    assert code == 0
    assert (project_dir / "results" / "pages" / "0001.txt").exists()
    assert not (project_dir / "results" / "pages" / "0002.txt").exists()


def test_run_result_job_reports_failures(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    (settings.projects_path / "book").mkdir()

    missing_project = cli.run_result_job(cli.build_parser().parse_args(["run", "nope"]))
    no_pages = cli.run_result_job(cli.build_parser().parse_args(["run", "book"]))
    missing_page = cli.run_result_job(cli.build_parser().parse_args(["run", "book", "--page", "0404"]))

    err = capsys.readouterr().err
    assert missing_project == 2
    assert no_pages == 1
    assert missing_page == 1
    assert "No pages with completed recognition found" in err
    assert "Result generation failed" in err


def test_list_ready_pages(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    project_dir = settings.projects_path / "book"
    _write(project_dir / "original" / "0001.png", "")
    _write(project_dir / "processing" / "0001" / "seg" / "l0.bin.png", "")
    _write(project_dir / "processing" / "0001" / "seg" / "l0.txt", "ready")

    code = cli.list_ready_pages(cli.build_parser().parse_args(["pages", "book"]))

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["0001"]


def test_run_result_job_reports_unwritable_results(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    project_dir = settings.projects_path / "book"
    _write(project_dir / "processing" / "0001" / "seg" / "l0.txt", "hello")
    _write(project_dir / "results", "not a directory")

    code = cli.run_result_job(cli.build_parser().parse_args(["run", "book", "--page", "0001"]))

    assert code == 1
    assert "Failed to create result directory" in capsys.readouterr().err
