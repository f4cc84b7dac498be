"""
Cost Provider Factory

Turns settings (or CLI overrides) into a configured AWSCostProvider and
the ordered list of account references to report on.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import structlog

from cloud_cost.shared.adapters.aws import AWSCostProvider, AssumeRoleConfig, StaticCredentials
from cloud_cost.shared.core.config import Settings
from cloud_cost.shared.core.exceptions import ConfigurationError

logger = structlog.get_logger()


def _read_json_list(path: str) -> List[Dict]:
    try:
        data = json.loads(Path(path).read_text())
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", details={"path": path}) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}", details={"path": path}) from e

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ConfigurationError(f"{path} must contain a JSON array of objects", details={"path": path})
    return data


def load_static_accounts(path: str) -> Tuple[Dict[str, StaticCredentials], List[str]]:
    """
    Load access keys from a JSON array of
    {"access_key_id": ..., "secret_access_key": ...} objects.
    Entries are labelled credential-1, credential-2, ... in file order.
    """
    creds: Dict[str, StaticCredentials] = {}
    labels: List[str] = []
    for idx, entry in enumerate(_read_json_list(path)):
        try:
            item = StaticCredentials(
                access_key_id=entry["access_key_id"],
                secret_access_key=entry["secret_access_key"],
            )
        except KeyError as e:
            raise ConfigurationError(
                f"Entry {idx + 1} in {path} is missing {e.args[0]}", details={"path": path}
            ) from e
        label = f"credential-{idx + 1}"
        labels.append(label)
        creds[label] = item
    return creds, labels


def load_assume_roles(path: str) -> Tuple[Dict[str, AssumeRoleConfig], List[str]]:
    """
    Load roles from a JSON array of
    {"account_ref": ..., "role_arn": ..., "external_id": ...} objects.
    """
    roles: Dict[str, AssumeRoleConfig] = {}
    refs: List[str] = []
    for idx, entry in enumerate(_read_json_list(path)):
        try:
            ref = entry["account_ref"]
            role = AssumeRoleConfig(role_arn=entry["role_arn"], external_id=entry.get("external_id"))
        except KeyError as e:
            raise ConfigurationError(
                f"Entry {idx + 1} in {path} is missing {e.args[0]}", details={"path": path}
            ) from e
        if ref in roles:
            raise ConfigurationError(f"Duplicate account_ref {ref!r} in {path}", details={"path": path})
        refs.append(ref)
        roles[ref] = role
    return roles, refs


def build_provider(
    settings: Settings,
    profiles: Optional[List[str]] = None,
) -> Tuple[AWSCostProvider, List[str]]:
    """
    Returns the provider and account references.
    Precedence: assume-roles file > accounts file > profiles.
    """
    if settings.ASSUME_ROLES_FILE:
        roles, refs = load_assume_roles(settings.ASSUME_ROLES_FILE)
        provider = AWSCostProvider(
            region=settings.AWS_REGION,
            assume_roles=roles,
            base_profile=settings.BASE_PROFILE,
        )
    elif settings.ACCOUNTS_FILE:
        creds, refs = load_static_accounts(settings.ACCOUNTS_FILE)
        provider = AWSCostProvider(region=settings.AWS_REGION, static_credentials=creds)
    else:
        refs = list(profiles if profiles is not None else settings.AWS_PROFILES) or ["default"]
        provider = AWSCostProvider(region=settings.AWS_REGION)

    logger.info("cost_provider_configured", mode=provider.mode, accounts=len(refs), region=settings.AWS_REGION)
    return provider, refs
