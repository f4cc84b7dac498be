from abc import ABC, abstractmethod
from datetime import date

from cloud_cost.schemas.costs import AccountSummary


class CostProvider(ABC):
    """
    Abstract Base Class for account cost providers.

    Both operations take an account reference and a half-open window
    [start, end_exclusive) and raise ProviderError on any failure.
    """

    @abstractmethod
    async def fetch_account_summary(
        self,
        account_ref: str,
        start: date,
        end_exclusive: date
    ) -> AccountSummary:
        """Resolve the account identity and its cost broken down by service."""
        pass

    @abstractmethod
    async def total_cost(
        self,
        account_ref: str,
        start: date,
        end_exclusive: date
    ) -> float:
        """Return only the aggregate cost for the window."""
        pass
