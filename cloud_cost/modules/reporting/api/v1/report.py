from datetime import datetime, timezone
from typing import Annotated, List, Optional

import structlog
from fastapi import APIRouter, Depends

from cloud_cost.modules.reporting.domain.aggregator import generate_report
from cloud_cost.schemas.costs import Report
from cloud_cost.shared.adapters.base import CostProvider
from cloud_cost.shared.core.dependencies import get_accounts, get_cost_provider, require_auth

router = APIRouter(tags=["Cost Report"])
logger = structlog.get_logger()


@router.get("/report/aws", response_model=Report)
async def report_aws(
    # Resolved in order: reject unauthenticated callers before touching account config
    caller: Annotated[Optional[str], Depends(require_auth)],
    provider: Annotated[CostProvider, Depends(get_cost_provider)],
    accounts: Annotated[List[str], Depends(get_accounts)],
):
    """Month-to-date AWS spend across configured accounts vs. the previous month."""
    today = datetime.now(timezone.utc).date()
    logger.info("report_requested", accounts=len(accounts), caller=caller)
    return await generate_report(provider, accounts, today)
