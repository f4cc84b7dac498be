from .base import CostProvider
from .aws import AWSCostProvider, AssumeRoleConfig, StaticCredentials

__all__ = ["CostProvider", "AWSCostProvider", "AssumeRoleConfig", "StaticCredentials"]
