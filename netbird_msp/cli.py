"""
CLI Module
Purpose: Command-line entry point for the NetBird MSP billing report

Exit codes:
  0  report written (per-tenant failures are reported, not fatal)
  1  startup/configuration error (e.g. NETBIRD_API_TOKEN missing)
  2  fatal run error (tenant list could not be fetched)
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from netbird_msp import __version__
from netbird_msp.config import resolve_settings
from netbird_msp.exceptions import ConfigurationError, FetchError
from netbird_msp.orchestrator import run_report

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_FETCH_ERROR = 2

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def setup_logger(level: str = "INFO", log_file: Optional[str] = None) -> Optional[Path]:
    """Route loguru to stderr (stdout carries the report) and optionally a file"""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, format=LOG_FORMAT, level=level)
        return path
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netbird-msp-report",
        description="NetBird MSP comprehensive billing report: registered vs billable users per tenant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  netbird-msp-report
  netbird-msp-report --output-dir reports --excel
  NETBIRD_API_TOKEN=... netbird-msp-report --config config.yaml
        """,
    )
    parser.add_argument("--config", help="YAML config file (default: config.yaml if present)")
    parser.add_argument("--output-dir", help="Directory for the generated reports")
    parser.add_argument("--api-url", help="NetBird API base URL")
    parser.add_argument("--excel", action="store_true", help="Also write an Excel workbook")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    parser.add_argument("--quiet", action="store_true", help="Do not print the report to stdout")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    overrides: dict = {}
    if args.api_url:
        overrides.setdefault("api", {})["base_url"] = args.api_url
    if args.output_dir:
        overrides.setdefault("output", {})["directory"] = args.output_dir
    if args.excel:
        overrides.setdefault("output", {})["excel"] = True
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level.upper()
    if args.log_file:
        overrides.setdefault("logging", {})["file"] = args.log_file
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(level=(args.log_level or "INFO").upper(), log_file=args.log_file)

    try:
        settings = resolve_settings(args.config, overrides=_overrides(args))
    except ConfigurationError as e:
        print(f"❌ ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    log_cfg = settings.cfg["logging"]
    setup_logger(level=str(log_cfg.get("level") or "INFO").upper(), log_file=log_cfg.get("file"))

    try:
        result = run_report(settings)
    except FetchError as e:
        logger.error(f"❌ Failed to fetch tenants. Check your token permissions. ({e})")
        return EXIT_FETCH_ERROR

    if not args.quiet:
        text_path = result.paths[0]
        sys.stdout.write(text_path.read_text(encoding="utf-8"))

    print("")
    print("📊 Executive Summary Preview:")
    print("============================================")
    print(json.dumps(result.summary.to_dict(), indent=2))
    print("")
    print("✅ Comprehensive NetBird billing analysis complete!")
    print("📄 Reports saved to:")
    for path in result.paths:
        print(f"   • {path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
