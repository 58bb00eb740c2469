"""CLI entry point for uploading JUnit results to Zephyr Squad."""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import SecretStr, ValidationError

from zephyr_upload.config import UploadConfig
from zephyr_upload.gateway.connection import JiraConnection
from zephyr_upload.junit import load_results
from zephyr_upload.uploader import Uploader


def parse_names(names: str | None) -> frozenset[str] | None:
    """Parse a comma-separated list of names, None when no name is given."""
    if names is None:
        return None
    parsed = frozenset(n.strip() for n in names.split(",") if n.strip())
    return parsed or None


async def run(config: UploadConfig, reports: Sequence[Path]) -> int:
    """Upload the results in the reports and return exit code."""
    log = logging.getLogger("zephyr_upload")

    results = list(load_results(reports))
    log.info("Loaded %d test result(s) from %d report(s)", len(results), len(reports))

    async with JiraConnection.from_config(config) as connection:
        uploader = Uploader.from_config(config, connection)
        uploaded = await uploader.upload(results)

    print(json.dumps({"uploaded": uploaded, "results": len(results)}))

    return 0 if uploaded else 1


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Upload JUnit test results to a new Zephyr Squad test cycle"
    )
    parser.add_argument(
        "reports",
        nargs="+",
        type=Path,
        help="JUnit XML report files",
    )
    parser.add_argument(
        "--jira-endpoint",
        required=True,
        help="URL of the Jira REST API (e.g. https://jira.example.com/rest/api/2)",
    )
    parser.add_argument(
        "--zephyr-endpoint",
        required=True,
        help="URL of the Zephyr REST API "
        "(e.g. https://jira.example.com/rest/zapi/latest)",
    )
    parser.add_argument("--project", required=True, help="Jira project name")
    parser.add_argument(
        "--version",
        help="Project version name (the cycle goes under Unscheduled when omitted)",
    )
    parser.add_argument(
        "--components",
        help="Comma-separated components whose other Test issues are marked unexecuted",
    )
    parser.add_argument(
        "--epics",
        help="Comma-separated epics whose other Test issues are marked unexecuted "
        "(overrides --components)",
    )
    parser.add_argument(
        "--username",
        default=os.environ.get("JIRA_USERNAME"),
        help="Jira username (default: $JIRA_USERNAME)",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("JIRA_PASSWORD"),
        help="Jira password or API token (default: $JIRA_PASSWORD)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log requests and responses",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = UploadConfig(
            jira_endpoint=args.jira_endpoint,
            zephyr_endpoint=args.zephyr_endpoint,
            project=args.project,
            version=args.version,
            components=parse_names(args.components),
            epics=parse_names(args.epics),
            username=args.username,
            password=SecretStr(args.password) if args.password is not None else None,
        )
    except ValidationError as e:
        parser.error(f"invalid configuration: {e}")

    exit_code = asyncio.run(run(config, args.reports))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
