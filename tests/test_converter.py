import json
import sys
import threading
import time
from pathlib import Path

import pytest

from pagecorpus.core.errors import ConverterTimeout, ConverterUnavailable
from pagecorpus.runtime.converter import ConversionResult, ConverterInvoker


ECHO_ARGS = "import json, sys\nprint(json.dumps(sys.argv[1:]))\n"
SLEEP = "import time\ntime.sleep(60)\n"
FAIL = "import sys\nsys.stderr.write('bad conf')\nsys.exit(4)\n"


def _script(tmp_path: Path, name: str, body: str) -> list[str]:
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    return [sys.executable, str(path)]


def test_invoke_passes_artifact_as_only_argument(tmp_path: Path) -> None:
    invoker = ConverterInvoker(_script(tmp_path, "echo.py", ECHO_ARGS))
    artifact = (tmp_path / "0001.conf").resolve()

    result = invoker.invoke(artifact)

    assert result.succeeded
    assert json.loads(result.stdout) == [str(artifact)]
    assert invoker.is_running is False


def test_invoke_captures_failure_without_raising(tmp_path: Path) -> None:
    invoker = ConverterInvoker(_script(tmp_path, "fail.py", FAIL))

    result = invoker.invoke(tmp_path / "a.conf")

    assert result.returncode == 4
    assert result.stderr == "bad conf"
    assert result.succeeded is False


def test_missing_executable_raises(tmp_path: Path) -> None:
    invoker = ConverterInvoker([str(tmp_path / "does-not-exist")])

    with pytest.raises(ConverterUnavailable):
        invoker.invoke(tmp_path / "a.conf")


def test_set_cancel_event_skips_process_start(tmp_path: Path) -> None:
    marker = tmp_path / "started"
    invoker = ConverterInvoker(_script(tmp_path, "touch.py", f"open({str(marker)!r}, 'w').close()\n"))
    cancel_event = threading.Event()
    cancel_event.set()

    result = invoker.invoke(tmp_path / "a.conf", cancel_event=cancel_event)

    assert result.terminated is True
    assert result.returncode is None
    assert not marker.exists()


def test_terminate_stops_running_converter(tmp_path: Path) -> None:
    invoker = ConverterInvoker(_script(tmp_path, "sleep.py", SLEEP))
    results: list[ConversionResult] = []
    worker = threading.Thread(target=lambda: results.append(invoker.invoke(tmp_path / "a.conf")))
    worker.start()

    deadline = time.time() + 10
    while not invoker.is_running and time.time() < deadline:
        time.sleep(0.05)
    assert invoker.is_running

    invoker.terminate()
    worker.join(timeout=20)

    assert not worker.is_alive()
    assert results[0].terminated is True
    assert results[0].succeeded is False


def test_timeout_kills_converter(tmp_path: Path) -> None:
    invoker = ConverterInvoker(_script(tmp_path, "sleep.py", SLEEP), timeout_seconds=0.5)

    with pytest.raises(ConverterTimeout):
        invoker.invoke(tmp_path / "a.conf")

    assert invoker.is_running is False


def test_empty_command_is_rejected() -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        ConverterInvoker([])
