from __future__ import annotations

import argparse
import logging
import subprocess
import sys

from pagecorpus.core.errors import ResultError
from pagecorpus.core.models import ResultMode
from pagecorpus.runtime.structured_delegator import StructuredOutcome


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="pagecorpus: build page and corpus results from line recognition output")
    parser.add_argument("--log-level", default=None, help="Logging level (default from env PAGECORPUS_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=False)

    api_parser = subparsers.add_parser("api", help="Run the result API service")
    api_parser.add_argument("--host", default=None)
    api_parser.add_argument("--port", type=int, default=None)

    run_parser = subparsers.add_parser("run", help="Generate results for a project in the foreground")
    run_parser.add_argument("project", nargs="?", default=None, help="Project name (below projects dir) or path")
    run_parser.add_argument("--config", default=None, help="YAML job config with project, page_ids and mode")
    run_parser.add_argument(
        "--page",
        dest="page_ids",
        action="append",
        default=[],
        help="Page id to include (repeatable; default: all pages with completed recognition)",
    )
    run_parser.add_argument("--mode", choices=[mode.value for mode in ResultMode], default=None)

    pages_parser = subparsers.add_parser("pages", help="List page ids ready for result generation")
    pages_parser.add_argument("project", help="Project name (below projects dir) or path")

    test_parser = subparsers.add_parser("test", help="Run all tests with pytest")
    test_parser.add_argument(
        "pytest_args",
        nargs=argparse.REMAINDER,
        help="Optional extra pytest args; use `--` before args (e.g. pagecorpus test -- -k aggregator)",
    )

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def run_tests(args: argparse.Namespace) -> int:
    cmd = [sys.executable, "-m", "pytest"]
    if args.pytest_args:
        cmd.extend(arg for arg in args.pytest_args if arg != "--")
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd)


def run_result_job(args: argparse.Namespace) -> int:
    from pagecorpus.core.config import get_settings
    from pagecorpus.core.job_configs import load_job_config
    from pagecorpus.runtime.registry import ResultManagerRegistry

    settings = get_settings()
    project = args.project
    page_ids = list(args.page_ids)
    mode = ResultMode(args.mode) if args.mode else None

    if args.config:
        try:
            config = load_job_config(settings, args.config)
        except (FileNotFoundError, ValueError) as exc:
            print(f"Invalid job config: {exc}", file=sys.stderr)
            return 2
        project = project or config.project
        page_ids = page_ids or config.page_ids
        mode = mode or config.mode

    if not project:
        print("A project is required (argument or job config)", file=sys.stderr)
        return 2

    registry = ResultManagerRegistry(settings)
    try:
        manager = registry.get(project)
    except (FileNotFoundError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    conflict = manager.get_conflict_type(manager.running_processes())
    print(f"Conflict check: {conflict.value}")

    if not page_ids:
        page_ids = manager.get_valid_page_ids_for_result()
    if not page_ids and (mode or ResultMode.TEXT) == ResultMode.TEXT:
        print("No pages with completed recognition found", file=sys.stderr)
        return 1

    try:
        outcome = manager.execute_process(page_ids, mode or ResultMode.TEXT)
    except ResultError as exc:
        manager.reset_progress()
        print(f"Result generation failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        manager.cancel_process()
        return 130

    if isinstance(outcome, StructuredOutcome):
        print(f"Converted {len(outcome.results)}/{outcome.total_artifacts} artifacts ({len(outcome.failed)} failed)")
        return 1 if outcome.failed else 0

    print(f"Wrote {len(outcome.pages_written)} page results")
    if outcome.corpus_path is not None:
        print(f"Corpus: {outcome.corpus_path}")
    return 0


def list_ready_pages(args: argparse.Namespace) -> int:
    from pagecorpus.core.config import get_settings
    from pagecorpus.runtime.registry import ResultManagerRegistry

    registry = ResultManagerRegistry(get_settings())
    try:
        manager = registry.get(args.project)
    except (FileNotFoundError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    for page_id in manager.get_valid_page_ids_for_result():
        print(page_id)
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "test":
        raise SystemExit(run_tests(args))

    from pagecorpus.core.config import get_settings

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "api":
        import uvicorn

        from pagecorpus.app.api import create_app

        host = args.host or settings.api_host
        port = args.port or settings.api_port
        uvicorn.run(create_app(settings), host=host, port=port, log_level="info")
        return

    if args.command == "run":
        raise SystemExit(run_result_job(args))

    if args.command == "pages":
        raise SystemExit(list_ready_pages(args))

    parser.print_help()


if __name__ == "__main__":
    main()
