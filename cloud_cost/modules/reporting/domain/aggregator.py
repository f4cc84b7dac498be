"""
Report Aggregator

Fans out per-account cost queries for the month-to-date window and the
matching slice of the previous month, then merges them into a single
comparative Report.

Failure policy is all-or-nothing: the first provider error aborts the
report and propagates unchanged. Sibling fetches are not cancelled;
their results are discarded.
"""

import asyncio
import sys
from datetime import date
from typing import Dict, List, Sequence, Tuple

import structlog

from cloud_cost.modules.reporting.domain.windows import month_to_date, previous_month_same_point
from cloud_cost.schemas.costs import AccountSummary, Report
from cloud_cost.shared.adapters.base import CostProvider

logger = structlog.get_logger()

TOP_SERVICES_LIMIT = 5


async def generate_report(
    provider: CostProvider,
    accounts: Sequence[str],
    today: date
) -> Report:
    month_start, month_end_exclusive = month_to_date(today)
    prev_start, prev_end_exclusive = previous_month_same_point(today)

    # gather keeps argument order, so summaries line up with accounts
    summaries: List[AccountSummary] = list(await asyncio.gather(*(
        provider.fetch_account_summary(ref, month_start, month_end_exclusive)
        for ref in accounts
    )))

    total_all = sum(s.total for s in summaries)
    services_total = merge_services(summaries)
    top_services = rank_services(services_total)

    prev_total = await total_for_all_accounts(provider, accounts, prev_start, prev_end_exclusive)

    delta = total_all - prev_total
    if abs(prev_total) < sys.float_info.epsilon:
        delta_pct = 0.0
    else:
        delta_pct = (delta / prev_total) * 100

    logger.info(
        "report_generated",
        accounts=len(summaries),
        month_start=month_start.isoformat(),
        total_all=round(total_all, 2),
        prev_total=round(prev_total, 2),
    )

    return Report(
        month_start=month_start,
        month_end_exclusive=month_end_exclusive,
        prev_start=prev_start,
        prev_end_exclusive=prev_end_exclusive,
        summaries=summaries,
        total_all=total_all,
        services_total=services_total,
        top_services=top_services,
        prev_total=prev_total,
        delta=delta,
        delta_pct=delta_pct,
    )


async def total_for_all_accounts(
    provider: CostProvider,
    accounts: Sequence[str],
    start: date,
    end_exclusive: date
) -> float:
    """Sum of total-only fetches across accounts."""
    totals = await asyncio.gather(*(
        provider.total_cost(ref, start, end_exclusive)
        for ref in accounts
    ))
    return sum(totals)


def merge_services(summaries: Sequence[AccountSummary]) -> Dict[str, float]:
    """Per-service sum across accounts."""
    merged: Dict[str, float] = {}
    for summary in summaries:
        for service, amount in summary.services.items():
            merged[service] = merged.get(service, 0.0) + amount
    return merged


def rank_services(services_total: Dict[str, float], limit: int = TOP_SERVICES_LIMIT) -> List[Tuple[str, float]]:
    return sorted(services_total.items(), key=lambda item: item[1], reverse=True)[:limit]
