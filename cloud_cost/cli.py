"""
Multi-account AWS cost summary on the command line.

    cloud-cost-manager --profiles prod,staging
    cloud-cost-manager --accounts-file accounts.json --json
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from cloud_cost.modules.reporting.domain.aggregator import generate_report
from cloud_cost.schemas.costs import Report
from cloud_cost.shared.adapters.factory import build_provider
from cloud_cost.shared.core.config import Settings
from cloud_cost.shared.core.exceptions import CloudCostException, ConfigurationError
from cloud_cost.shared.core.logging import setup_logging

logger = structlog.get_logger()


def _split_profiles(value: str) -> List[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="cloud-cost-manager", description="Multi-account AWS cost summary")
    ap.add_argument("--profiles", type=_split_profiles, default=None,
                    help="Comma-separated list of AWS shared config profiles")
    ap.add_argument("--region", default=None,
                    help="Override AWS region (Cost Explorer is us-east-1 by default)")
    ap.add_argument("--accounts-file", default=None,
                    help="Load AWS credentials from a JSON file (overrides profiles)")
    ap.add_argument("--assume-roles-file", default=None,
                    help="Load role ARNs from a JSON file (overrides profiles/accounts)")
    ap.add_argument("--base-profile", default=None,
                    help="Base profile for STS AssumeRole calls")
    ap.add_argument("--json", action="store_true", help="Print the report as JSON")
    ap.add_argument("--debug", action="store_true", help="Verbose console logging")
    return ap.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Environment settings with explicit command-line choices layered on top."""
    overrides: Dict[str, Any] = {}
    if args.region:
        overrides["AWS_REGION"] = args.region
    if args.assume_roles_file:
        overrides["ASSUME_ROLES_FILE"] = args.assume_roles_file
    elif args.accounts_file:
        overrides.update(ACCOUNTS_FILE=args.accounts_file, ASSUME_ROLES_FILE=None, BASE_PROFILE=None)
    elif args.profiles:
        overrides.update(AWS_PROFILES=args.profiles, ACCOUNTS_FILE=None, ASSUME_ROLES_FILE=None, BASE_PROFILE=None)
    if args.base_profile:
        overrides["BASE_PROFILE"] = args.base_profile
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def format_report(report: Report) -> str:
    lines = [
        "Cloud Cost Manager",
        "",
        f"Month-to-date window: {report.month_start} to {report.month_end_exclusive} (exclusive)",
        f"Previous month window: {report.prev_start} to {report.prev_end_exclusive} (exclusive)",
        "",
        "Breakdown by account:",
    ]
    for s in report.summaries:
        lines.append(f"- {s.account_name} ({s.account_id}) via {s.account_ref}: ${s.total:.2f}")

    lines += ["", f"Total across all accounts: ${report.total_all:.2f}", "", "Top 5 services across all accounts:"]
    for service, amount in report.top_services:
        lines.append(f"- {service}: ${amount:.2f}")

    lines += [
        "",
        "Month-to-month comparison:",
        f"- Current MTD: ${report.total_all:.2f}",
        f"- Previous month same point: ${report.prev_total:.2f}",
        f"- Change: ${report.delta:.2f} ({report.delta_pct:.2f}%)",
    ]
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> Report:
    settings = settings_from_args(args)
    provider, accounts = build_provider(settings)
    today = datetime.now(timezone.utc).date()
    return await generate_report(provider, accounts, today)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(debug=args.debug)
    try:
        report = asyncio.run(run(args))
    except CloudCostException as e:
        logger.error("report_failed", code=e.code, error=e.message)
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        print(format_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
