"""
Cloud Cost Report Schemas
"""

from datetime import date
from types import MappingProxyType
from typing import Annotated, Dict, Mapping, Tuple
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

# Costs the billing API returns without a service label
UNKNOWN_SERVICE = "Unknown"

# Read-only per-service totals; serialized back to a plain dict
ServiceCosts = Annotated[
    Mapping[str, float],
    AfterValidator(lambda v: MappingProxyType(dict(v))),
    PlainSerializer(lambda v: dict(v), return_type=Dict[str, float]),
]


class AccountSummary(BaseModel):
    """One account's spend for one half-open date window."""
    model_config = ConfigDict(frozen=True)

    account_ref: str = Field(..., description="Caller-supplied reference used to select credentials")
    account_id: str = Field(..., description="Account identity resolved from the billing system")
    account_name: str = Field(..., description="Human label, falls back to account_id")
    total: float = Field(..., description="Total cost for the window")
    services: ServiceCosts = Field(default_factory=dict, validate_default=True)


class Report(BaseModel):
    """
    Month-to-date spend across accounts compared with the previous month.

    Immutable all the way down: collections are tuples and read-only mappings.
    """
    model_config = ConfigDict(frozen=True)

    month_start: date
    month_end_exclusive: date
    prev_start: date
    prev_end_exclusive: date
    summaries: Tuple[AccountSummary, ...] = ()
    total_all: float = 0.0
    services_total: ServiceCosts = Field(default_factory=dict, validate_default=True)
    top_services: Tuple[Tuple[str, float], ...] = ()
    prev_total: float = 0.0
    delta: float = 0.0
    delta_pct: float = 0.0
