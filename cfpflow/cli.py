# cfpflow/cli.py
"""
cfpflow command line

Usage:
    # Full run against the hosted service
    cfpflow run

    # Another environment, two groups only, CI output
    CFP_BASE_URL=http://localhost:3000 cfpflow run --group auth --group categories --ci-mode

    # List groups
    cfpflow groups
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from cfpflow.config import FlowSettings
from cfpflow.errors import ConfigurationError
from cfpflow.evaluator import ExpectationEvaluator
from cfpflow.executor import RequestExecutor
from cfpflow.orchestrator import FlowOrchestrator
from cfpflow.reporter import Reporter
from cfpflow.suites import build_groups, select_groups
from cfpflow.types import RunReport
from cfpflow.userdata import TestDataGenerator, user_from_credentials

logger = logging.getLogger("cfpflow")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 2


class ColoredFormatter(logging.Formatter):
    """Colored console output"""

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(level: str = "INFO", verbose: bool = False, ci_mode: bool = False) -> None:
    handler = logging.StreamHandler()

    if not ci_mode and sys.stdout.isatty():
        formatter: logging.Formatter = ColoredFormatter(
            "%(asctime)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO))

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def exit_code(report: RunReport) -> int:
    if report.aborted:
        return EXIT_ABORTED
    return EXIT_OK if report.succeeded else EXIT_FAILED


def run(args: argparse.Namespace, settings: FlowSettings) -> int:
    data = TestDataGenerator()
    groups = select_groups(build_groups(data), args.groups)

    if settings.user_email and settings.user_password:
        user = user_from_credentials(settings.user_email, settings.user_password)
    else:
        user = data.user()

    evaluator = ExpectationEvaluator(settings.max_response_time_ms)

    with RequestExecutor(settings) as executor:
        report = FlowOrchestrator(
            executor,
            groups,
            user,
            evaluator=evaluator,
            get_retries=settings.get_retries,
        ).run()

    if not args.no_reports:
        paths = Reporter(settings.reports_dir).create_reports(report)
        logger.info("📁 Reports saved:")
        for fmt, path in paths.items():
            logger.info(f"  • {fmt.upper()}: {path}")

    totals = report.totals()
    print("\n" + "=" * 60)
    print("📊 FLOW SUMMARY")
    print("=" * 60)
    print(f"Status: {'✅ PASSED' if report.succeeded else '❌ FAILED'}")
    print(f"Run ID: {report.run_id}")
    if report.aborted:
        print(f"Aborted: {report.abort_reason}")
    print("  ".join(f"{k}={v}" for k, v in totals.items()))
    print(f"Duration: {report.duration_s:.2f}s")
    print("=" * 60 + "\n")

    return exit_code(report)


def list_groups() -> int:
    for group in build_groups():
        print(f"{group.name:<14} {len(group.steps):>2} steps  {group.description}")
    return EXIT_OK


def _build_cli() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cfpflow",
        description="Session-stateful API flow runner for the CFP finance service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("run", help="Run the flow")
    r.add_argument("--base-url", help="Service base URL (env: CFP_BASE_URL)")
    r.add_argument("--timeout-ms", type=int, help="Per-request timeout (env: CFP_TIMEOUT_MS)")
    r.add_argument("--max-response-time-ms", type=int, help="Default response-time ceiling")
    r.add_argument("--group", dest="groups", action="append", help="Only run this group (repeatable)")
    r.add_argument("--reports-dir", help="Report output directory (env: CFP_REPORTS_DIR)")
    r.add_argument("--no-reports", action="store_true", help="Skip writing report files")
    r.add_argument("--ci-mode", action="store_true", help="Plain log output")
    r.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    sub.add_parser("groups", help="List available test groups")
    return p


def _settings_from_args(args: argparse.Namespace) -> FlowSettings:
    overrides = {
        "base_url": getattr(args, "base_url", None),
        "timeout_ms": getattr(args, "timeout_ms", None),
        "max_response_time_ms": getattr(args, "max_response_time_ms", None),
        "reports_dir": getattr(args, "reports_dir", None),
    }
    try:
        return FlowSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise ConfigurationError(f"invalid settings: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_cli().parse_args(argv)

    if args.command == "groups":
        return list_groups()

    try:
        settings = _settings_from_args(args)
    except ConfigurationError as e:
        setup_logging(verbose=args.verbose, ci_mode=args.ci_mode)
        logger.error(f"❌ {e}")
        return EXIT_FAILED

    setup_logging(settings.log_level, verbose=args.verbose, ci_mode=args.ci_mode)

    try:
        return run(args, settings)
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        return EXIT_FAILED
    except KeyboardInterrupt:
        print("\n\n👋 Cancelled by user")
        return 130
    except Exception as exc:
        logger.exception(f"Run failed: {exc}")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
