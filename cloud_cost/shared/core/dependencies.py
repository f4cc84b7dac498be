from functools import lru_cache
from typing import Annotated, List, Optional, Tuple

from fastapi import Depends, Header

from cloud_cost.shared.adapters.base import CostProvider
from cloud_cost.shared.adapters.factory import build_provider
from cloud_cost.shared.core.config import Settings, get_settings
from cloud_cost.shared.core.exceptions import AuthError

IAM_ARN_HEADER = "x-amzn-iam-arn"


@lru_cache
def _configured_provider() -> Tuple[CostProvider, Tuple[str, ...]]:
    # Built once per process so assumed-role credentials stay cached
    provider, accounts = build_provider(get_settings())
    return provider, tuple(accounts)


def get_cost_provider() -> CostProvider:
    return _configured_provider()[0]


def get_accounts() -> List[str]:
    return list(_configured_provider()[1])


def require_auth(
    settings: Annotated[Settings, Depends(get_settings)],
    iam_arn: Annotated[Optional[str], Header(alias=IAM_ARN_HEADER)] = None,
) -> Optional[str]:
    """
    Enforces AUTH_MODE. In "iam" mode the caller identity header set by
    an IAM-authenticated front door (e.g. API Gateway) must be present.
    """
    if settings.AUTH_MODE == "iam" and not iam_arn:
        raise AuthError(f"Missing {IAM_ARN_HEADER} header")
    return iam_arn
