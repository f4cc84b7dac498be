import os
# Keep host AWS/app configuration out of the tests BEFORE any app imports
for _var in ("ACCOUNTS_FILE", "ASSUME_ROLES_FILE", "BASE_PROFILE", "AWS_PROFILES", "AUTH_MODE"):
    os.environ.pop(_var, None)
os.environ["DEBUG"] = "False"

import asyncio
from datetime import date
from typing import AsyncGenerator, Dict, List, Optional, Tuple

import pytest
from httpx import AsyncClient, ASGITransport

from cloud_cost.schemas.costs import AccountSummary
from cloud_cost.shared.adapters.base import CostProvider
from cloud_cost.shared.core.exceptions import ProviderError


class FakeCostProvider(CostProvider):
    """
    Deterministic in-memory provider.

    accounts maps account_ref -> (current total, services, previous total).
    delays (seconds) let tests control completion order.
    """

    def __init__(
        self,
        accounts: Dict[str, Tuple[float, Dict[str, float], float]],
        delays: Optional[Dict[str, float]] = None,
        fail_summary: Optional[Dict[str, Exception]] = None,
        fail_total: Optional[Dict[str, Exception]] = None,
    ):
        self.accounts = accounts
        self.delays = delays or {}
        self.fail_summary = fail_summary or {}
        self.fail_total = fail_total or {}
        self.summary_calls: List[Tuple[str, date, date]] = []
        self.total_calls: List[Tuple[str, date, date]] = []
        self.completed: List[str] = []

    async def fetch_account_summary(self, account_ref, start, end_exclusive):
        self.summary_calls.append((account_ref, start, end_exclusive))
        await asyncio.sleep(self.delays.get(account_ref, 0))
        if account_ref in self.fail_summary:
            raise self.fail_summary[account_ref]
        if account_ref not in self.accounts:
            raise ProviderError(f"Unknown account reference: {account_ref}", code="unknown_account")
        total, services, _prev = self.accounts[account_ref]
        self.completed.append(account_ref)
        return AccountSummary(
            account_ref=account_ref,
            account_id=f"id-{account_ref}",
            account_name=f"name-{account_ref}",
            total=total,
            services=services,
        )

    async def total_cost(self, account_ref, start, end_exclusive):
        self.total_calls.append((account_ref, start, end_exclusive))
        await asyncio.sleep(self.delays.get(account_ref, 0))
        if account_ref in self.fail_total:
            raise self.fail_total[account_ref]
        return self.accounts[account_ref][2]


@pytest.fixture
def two_account_provider() -> FakeCostProvider:
    return FakeCostProvider({
        "prod": (100.0, {"A": 60.0, "B": 40.0}, 120.0),
        "dev": (50.0, {"A": 30.0, "C": 20.0}, 30.0),
    })


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached per process; rebuild them for every test."""
    from cloud_cost.shared.core.config import get_settings
    from cloud_cost.shared.core.dependencies import _configured_provider
    get_settings.cache_clear()
    _configured_provider.cache_clear()
    yield
    get_settings.cache_clear()
    _configured_provider.cache_clear()


@pytest.fixture
async def ac() -> AsyncGenerator[AsyncClient, None]:
    """Async client fixture for testing API endpoints."""
    from cloud_cost.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_provider():
    return FakeCostProvider
