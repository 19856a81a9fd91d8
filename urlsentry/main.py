"""Command-line entry point for urlsentry."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import Config, load_config, validate_config
from .pipeline.analysis import AnalysisEngine, AnalysisReport

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urlsentry",
        description="Check URLs for domain spoofing: look-alike domains, mixed scripts, homoglyphs and bad Punycode.",
    )
    parser.add_argument("urls", nargs="+", metavar="URL", help="URL or domain to analyze")
    parser.add_argument("--json", action="store_true", help="Print reports as a JSON array")
    parser.add_argument("--offline", action="store_true", help="Skip external reputation lookups")
    parser.add_argument("--config-dir", type=Path, help="Directory holding allowlist.txt, heuristics.yaml and legitimate_sites.yaml")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any URL is suspicious or dangerous",
    )
    return parser


def format_report(report: AnalysisReport) -> str:
    """Render one report as an indented text block."""
    lines = [
        report.url,
        f"  Domain: {report.domain or '-'}",
        f"  Verdict: {report.verdict.level}",
        f"  Suspicion level: {report.security.suspicion_level if report.security.is_suspicious else 'none'}",
    ]

    if report.security.issues:
        lines.append("  Issues:")
        for issue in report.security.issues:
            lines.append(f"    - [{issue.severity}] {issue.type}: {issue.description}")
            if issue.details:
                lines.append(f"        {issue.details}")

    lines.append(f"  Lexical: {report.lexical.explanation}")

    if report.reputation is not None:
        if not report.reputation.available:
            status = "unavailable"
        elif report.reputation.is_dangerous:
            status = f"dangerous ({', '.join(report.reputation.sources)})"
        else:
            status = "clean"
        lines.append(f"  Reputation: {status}")

    return "\n".join(lines)


async def run(config: Config, urls: list[str], *, offline: bool = False) -> list[AnalysisReport]:
    engine = AnalysisEngine.from_config(config, offline=offline)
    return await engine.analyze_many(urls)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config_dir)
    logging.basicConfig(
        level=getattr(logging, args.log_level or config.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 2

    reports = asyncio.run(run(config, args.urls, offline=args.offline))

    if args.json:
        print(json.dumps([report.to_dict() for report in reports], indent=2, ensure_ascii=False))
    else:
        print("\n\n".join(format_report(report) for report in reports))

    if args.strict and any(report.is_flagged for report in reports):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
