from pagecorpus.core.models import ConflictKind
from pagecorpus.runtime.conflicts import result_conflict


def test_no_running_processes_is_no_conflict() -> None:
    assert result_conflict([]) == ConflictKind.NONE
    assert result_conflict(["", "  "]) == ConflictKind.NONE


def test_running_result_job_blocks() -> None:
    assert result_conflict(["recognition", "result"]) == ConflictKind.BLOCKING


def test_running_upstream_stage_is_advisory() -> None:
    assert result_conflict(["recognition"]) == ConflictKind.ADVISORY
    assert result_conflict(["lineSegmentation"]) == ConflictKind.ADVISORY
    assert result_conflict(["region-extraction"]) == ConflictKind.ADVISORY


def test_unrelated_processes_do_not_conflict() -> None:
    assert result_conflict(["training", "export"]) == ConflictKind.NONE
