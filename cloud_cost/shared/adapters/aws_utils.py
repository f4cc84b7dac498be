import logging
from functools import wraps
from typing import Dict

import structlog
import tenacity
from botocore.config import Config as BotoConfig
from botocore.exceptions import ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError

logger = structlog.get_logger()

# Standardized boto config with timeouts to prevent indefinite hangs
DEFAULT_BOTO_CONFIG = BotoConfig(
    read_timeout=30,
    connect_timeout=10,
    retries={"max_attempts": 3, "mode": "adaptive"}
)

STS_BOTO_CONFIG = BotoConfig(
    read_timeout=10,
    connect_timeout=5,
    retries={"max_attempts": 2}
)

# Mapping CamelCase to snake_case for aioboto3/boto3 credentials
AWS_CREDENTIAL_MAPPING = {
    "AccessKeyId": "aws_access_key_id",
    "SecretAccessKey": "aws_secret_access_key",
    "SessionToken": "aws_session_token",
    "aws_access_key_id": "aws_access_key_id",
    "aws_secret_access_key": "aws_secret_access_key",
    "aws_session_token": "aws_session_token",
}


def map_aws_credentials(credentials: Dict[str, str]) -> Dict[str, str]:
    """
    Maps credentials dictionary to valid boto3/aioboto3 kwargs.
    Handles both CamelCase (AWS standard) and snake_case (boto3) keys.
    """
    mapped: Dict[str, str] = {}
    if not credentials:
        return mapped

    for src, dst in AWS_CREDENTIAL_MAPPING.items():
        if credentials.get(src) is not None:
            mapped[dst] = credentials[src]

    return mapped


def with_aws_retry(func):
    """
    Exponential backoff retry decorator for AWS API coroutines.
    Targets transient network failures only; the last error is re-raised
    unchanged once attempts are exhausted.
    """
    @tenacity.retry(
        retry=tenacity.retry_if_exception_type((ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError)),
        wait=tenacity.wait_exponential(multiplier=1, min=2, max=10),
        stop=tenacity.stop_after_attempt(4),
        before_sleep=tenacity.before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
    @wraps(func)
    async def wrapper(*args, **kwargs):
        return await func(*args, **kwargs)
    return wrapper
