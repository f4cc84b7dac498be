"""
AWS Cost Explorer Provider (Native Async)

Fetches per-account cost data through aioboto3. Credentials are selected
per account reference using one of three strategies:
- static: access keys loaded from an accounts file
- assume-role: STS AssumeRole from a base session
- profile: the account reference is an AWS shared-config profile name
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import aioboto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from cloud_cost.schemas.costs import AccountSummary, UNKNOWN_SERVICE
from cloud_cost.shared.adapters.base import CostProvider
from cloud_cost.shared.adapters.aws_utils import (
    DEFAULT_BOTO_CONFIG,
    STS_BOTO_CONFIG,
    map_aws_credentials,
    with_aws_retry,
)
from cloud_cost.shared.core.exceptions import ProviderError

logger = structlog.get_logger()

COST_METRIC = "UnblendedCost"

# Refresh assumed-role credentials this long before they expire
CREDENTIAL_REFRESH_MARGIN = timedelta(minutes=5)


@dataclass(frozen=True)
class StaticCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None


@dataclass(frozen=True)
class AssumeRoleConfig:
    role_arn: str
    external_id: Optional[str] = None


class AWSCostProvider(CostProvider):
    """
    CostProvider backed by AWS Cost Explorer, STS, Organizations and IAM.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        static_credentials: Optional[Dict[str, StaticCredentials]] = None,
        assume_roles: Optional[Dict[str, AssumeRoleConfig]] = None,
        base_profile: Optional[str] = None,
    ):
        self.region = region
        self.static_credentials = static_credentials
        self.assume_roles = assume_roles
        self.base_profile = base_profile
        self._role_credentials: Dict[str, Dict] = {}

    @property
    def mode(self) -> str:
        if self.static_credentials is not None:
            return "static"
        if self.assume_roles is not None:
            return "assume_role"
        return "profile"

    async def fetch_account_summary(
        self,
        account_ref: str,
        start: date,
        end_exclusive: date
    ) -> AccountSummary:
        session = await self._session_for(account_ref)
        try:
            account_id = await self._get_account_id(session)
            account_name = await self._resolve_account_name(session, account_id)
            total, services = await self._get_costs_by_service(session, start, end_exclusive)
        except ClientError as e:
            raise self._client_error(e, account_ref) from e
        except BotoCoreError as e:
            raise self._connection_error(e, account_ref) from e

        logger.info(
            "account_summary_fetched",
            account_ref=account_ref,
            account_id=account_id,
            total=round(total, 2),
            services=len(services),
        )
        return AccountSummary(
            account_ref=account_ref,
            account_id=account_id,
            account_name=account_name,
            total=total,
            services=services,
        )

    async def total_cost(
        self,
        account_ref: str,
        start: date,
        end_exclusive: date
    ) -> float:
        session = await self._session_for(account_ref)
        try:
            total, _services = await self._get_costs_by_service(session, start, end_exclusive)
        except ClientError as e:
            raise self._client_error(e, account_ref) from e
        except BotoCoreError as e:
            raise self._connection_error(e, account_ref) from e
        return total

    async def _session_for(self, account_ref: str) -> aioboto3.Session:
        """Build an aioboto3 session holding the credentials for one account."""
        if self.static_credentials is not None:
            entry = self.static_credentials.get(account_ref)
            if entry is None:
                raise ProviderError(f"Unknown account reference: {account_ref}", code="unknown_account")
            return aioboto3.Session(
                aws_access_key_id=entry.access_key_id,
                aws_secret_access_key=entry.secret_access_key,
                aws_session_token=entry.session_token,
                region_name=self.region,
            )

        if self.assume_roles is not None:
            creds = await self.get_role_credentials(account_ref)
            return aioboto3.Session(region_name=self.region, **map_aws_credentials(creds))

        try:
            return aioboto3.Session(profile_name=account_ref, region_name=self.region)
        except BotoCoreError as e:
            raise self._connection_error(e, account_ref) from e

    async def get_role_credentials(self, account_ref: str) -> Dict:
        """Get temporary credentials via STS AssumeRole, cached until shortly before expiry."""
        role = self.assume_roles.get(account_ref) if self.assume_roles else None
        if role is None:
            raise ProviderError(f"Unknown account reference: {account_ref}", code="unknown_account")

        cached = self._role_credentials.get(account_ref)
        if (
            cached and cached.get("Expiration")
            and datetime.now(timezone.utc) + CREDENTIAL_REFRESH_MARGIN < cached["Expiration"]
        ):
            return cached

        params = {
            "RoleArn": role.role_arn,
            "RoleSessionName": f"cloud-cost-manager-{account_ref}",
        }
        if role.external_id:
            params["ExternalId"] = role.external_id

        try:
            base = aioboto3.Session(profile_name=self.base_profile, region_name=self.region)
            response = await self._assume_role(base, params)
        except ClientError as e:
            logger.error("sts_assume_role_failed", account_ref=account_ref, error=str(e))
            raise self._client_error(e, account_ref) from e
        except BotoCoreError as e:
            raise self._connection_error(e, account_ref) from e

        creds = response.get("Credentials")
        if not creds:
            raise ProviderError("Missing credentials from AssumeRole", code="malformed_response",
                                details={"account_ref": account_ref})

        self._role_credentials[account_ref] = creds
        logger.info("sts_assume_role_success", account_ref=account_ref,
                    expires_at=str(creds.get("Expiration")))
        return creds

    @with_aws_retry
    async def _assume_role(self, base: aioboto3.Session, params: Dict) -> Dict:
        async with base.client("sts", config=STS_BOTO_CONFIG) as sts:
            return await sts.assume_role(**params)

    @with_aws_retry
    async def _get_account_id(self, session: aioboto3.Session) -> str:
        async with session.client("sts", config=STS_BOTO_CONFIG) as sts:
            identity = await sts.get_caller_identity()
        account_id = identity.get("Account")
        if not account_id:
            raise ProviderError("Missing account id in GetCallerIdentity response", code="malformed_response")
        return account_id

    async def _resolve_account_name(self, session: aioboto3.Session, account_id: str) -> str:
        """
        Best-effort friendly name: Organizations account name, then the
        first IAM account alias, then the account id itself.
        """
        try:
            async with session.client("organizations", config=DEFAULT_BOTO_CONFIG) as org:
                resp = await org.describe_account(AccountId=account_id)
            name = resp.get("Account", {}).get("Name")
            if name:
                return name
        except (ClientError, BotoCoreError) as e:
            logger.debug("org_describe_account_unavailable", account_id=account_id, error=str(e))

        try:
            async with session.client("iam", config=DEFAULT_BOTO_CONFIG) as iam:
                resp = await iam.list_account_aliases()
            aliases = resp.get("AccountAliases") or []
            if aliases:
                return aliases[0]
        except (ClientError, BotoCoreError) as e:
            logger.debug("iam_account_alias_unavailable", account_id=account_id, error=str(e))

        return account_id

    @with_aws_retry
    async def _get_costs_by_service(
        self,
        session: aioboto3.Session,
        start: date,
        end_exclusive: date
    ) -> Tuple[float, Dict[str, float]]:
        """Single Cost Explorer request grouped by SERVICE over [start, end_exclusive)."""
        async with session.client("ce", config=DEFAULT_BOTO_CONFIG) as ce:
            response = await ce.get_cost_and_usage(
                TimePeriod={
                    "Start": start.strftime("%Y-%m-%d"),
                    "End": end_exclusive.strftime("%Y-%m-%d"),
                },
                Granularity="MONTHLY",
                Metrics=[COST_METRIC],
                GroupBy=[{"Type": "DIMENSION", "Key": "SERVICE"}],
            )

        total = 0.0
        services: Dict[str, float] = {}
        for result in response.get("ResultsByTime", []):
            for group in result.get("Groups", []):
                keys = group.get("Keys") or []
                service = keys[0] if keys else UNKNOWN_SERVICE
                amount = self._parse_amount(group)
                services[service] = services.get(service, 0.0) + amount
                total += amount

        return total, services

    @staticmethod
    def _parse_amount(group: Dict) -> float:
        raw = (group.get("Metrics") or {}).get(COST_METRIC, {}).get("Amount")
        if raw is None:
            return 0.0
        try:
            return float(raw)
        except (TypeError, ValueError) as e:
            raise ProviderError(f"Unparseable cost amount: {raw!r}", code="malformed_response") from e

    @staticmethod
    def _client_error(e: ClientError, account_ref: str) -> ProviderError:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.error("aws_api_call_failed", account_ref=account_ref, code=error_code, error=str(e))
        return ProviderError(
            message=f"AWS API failure: {str(e)}",
            code=error_code,
            details={"account_ref": account_ref},
        )

    @staticmethod
    def _connection_error(e: BotoCoreError, account_ref: str) -> ProviderError:
        logger.error("aws_connection_failed", account_ref=account_ref, error=str(e))
        return ProviderError(
            message=f"AWS connection failure: {str(e)}",
            code="connection_error",
            details={"account_ref": account_ref},
        )
