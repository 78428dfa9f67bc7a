from pathlib import Path

import pytest

from pagecorpus.core.config import Settings
from pagecorpus.core.errors import DirectoryUnavailable, IOFailure
from pagecorpus.core.project_layout import ProjectLayout
from pagecorpus.runtime.hierarchy import ProcessState, build_process_state


def _build_layout(tmp_path: Path) -> ProjectLayout:
    settings = Settings(
        _env_file=None,
        PAGECORPUS_PROJECTS_DIR=str(tmp_path / "projects"),
        PAGECORPUS_JOB_CONFIGS_DIR=str(tmp_path / "job_configs"),
    )
    project_dir = settings.projects_path / "book"
    project_dir.mkdir(parents=True)
    return ProjectLayout(settings, project_dir)


def _touch(path: Path, text: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_build_orders_pages_segments_and_lines(tmp_path: Path) -> None:
    layout = _build_layout(tmp_path)
    for name in ["0002__001__paragraph__001", "0002__001__paragraph__000"]:
        _touch(layout.page_dir("0002") / "0002__001__paragraph" / f"{name}.txt")
    _touch(layout.page_dir("0002") / "0002__000__heading" / "0002__000__heading__000.txt")
    _touch(layout.page_dir("0001") / "0001__000__paragraph" / "0001__000__paragraph__000.txt")

    state = build_process_state(layout, ["0002", "0001"])

    assert state.page_ids == ["0001", "0002"]
    assert list(state.as_dict()["0002"]) == ["0002__000__heading", "0002__001__paragraph"]
    assert list(state.as_dict()["0002"]["0002__001__paragraph"]) == [
        "0002__001__paragraph__000",
        "0002__001__paragraph__001",
    ]
    assert state.total_line_units() == 4
    assert state.processed_line_units() == 0


def test_build_skips_ground_truth_and_other_files(tmp_path: Path) -> None:
    layout = _build_layout(tmp_path)
    segment_dir = layout.page_dir("0001") / "seg_a"
    _touch(segment_dir / "l0.txt", "rec")
    _touch(segment_dir / "l0.gt.txt", "gt")
    _touch(segment_dir / "l1.gt.txt", "gt only")
    _touch(segment_dir / "l0.bin.png")
    _touch(layout.page_dir("0001") / "seg_a.png")

    state = build_process_state(layout, ["0001"])

    assert state.as_dict() == {"0001": {"seg_a": {"l0": False}}}


def test_page_without_segments_is_kept(tmp_path: Path) -> None:
    layout = _build_layout(tmp_path)
    layout.page_dir("0003").mkdir(parents=True)

    state = build_process_state(layout, ["0003"])

    assert state.as_dict() == {"0003": {}}
    assert state.total_line_units() == 0


def test_missing_page_directory_aborts_build(tmp_path: Path) -> None:
    layout = _build_layout(tmp_path)
    _touch(layout.page_dir("0001") / "seg" / "l0.txt")

    with pytest.raises(DirectoryUnavailable, match="0009"):
        build_process_state(layout, ["0001", "0009"])


def test_directory_unavailable_is_an_io_failure() -> None:
    assert issubclass(DirectoryUnavailable, IOFailure)
    assert issubclass(IOFailure, OSError)


def test_duplicate_page_ids_collapse(tmp_path: Path) -> None:
    layout = _build_layout(tmp_path)
    _touch(layout.page_dir("0001") / "seg" / "l0.txt")

    state = build_process_state(layout, ["0001", "0001"])

    assert len(state) == 1
    assert state.total_line_units() == 1


def test_empty_process_state() -> None:
    state = ProcessState()

    assert state.page_ids == []
    assert state.total_line_units() == 0
    assert state.page("0001") is None


@pytest.mark.parametrize("page_id", ["../../../outside", "..", ".", "", "0001/seg", "..\\outside"])
def test_build_rejects_page_ids_outside_page_root(tmp_path: Path, page_id: str) -> None:
    layout = _build_layout(tmp_path)
    (layout.project_dir.parent / "outside").mkdir()
    layout.page_root.mkdir()

    with pytest.raises(DirectoryUnavailable, match="Invalid page id"):
        build_process_state(layout, [page_id])


def test_unlistable_page_directory_raises_io_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    layout = _build_layout(tmp_path)
    _touch(layout.page_dir("0001") / "seg" / "l0.txt", "text")
    blocked = layout.page_dir("0001")
    original_iterdir = Path.iterdir

    def iterdir(self: Path):
        if self == blocked:
            raise PermissionError(13, "Permission denied", str(self))
        return original_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", iterdir)

    with pytest.raises(IOFailure, match="Failed to list directory"):
        build_process_state(layout, ["0001"])
