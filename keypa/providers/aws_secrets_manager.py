"""AWS Secrets Manager provider."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import structlog

from ..core.provider import coerce_options
from ..core.types import ProviderType, Value

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AwsSecretsManagerOptions:
    """Options of the aws-secrets-manager provider.

    Attributes:
        region: AWS region of the secrets.
        profile: Named profile (SSO profiles included). None uses the
            default credential chain.
        secrets: Names or ARNs to read. None reads every listed secret.
    """

    region: str = ""
    profile: Optional[str] = None
    secrets: Optional[Union[str, Sequence[str]]] = None

    @property
    def secret_ids(self) -> Optional[List[str]]:
        if self.secrets is None:
            return None
        if isinstance(self.secrets, str):
            return [self.secrets]
        return list(self.secrets)


def _create_client(opts: AwsSecretsManagerOptions) -> Any:
    import boto3

    session = boto3.session.Session(profile_name=opts.profile, region_name=opts.region)
    return session.client("secretsmanager")


def _read_secrets(opts: AwsSecretsManagerOptions) -> List[Dict[str, str]]:
    client = _create_client(opts)
    secret_ids = opts.secret_ids
    if secret_ids is None:
        secret_ids = []
        paginator = client.get_paginator("list_secrets")
        for page in paginator.paginate(PaginationConfig={"PageSize": 100}):
            secret_ids.extend(entry["ARN"] for entry in page.get("SecretList", []))

    secrets: List[Dict[str, str]] = []
    for secret_id in secret_ids:
        response = client.get_secret_value(SecretId=secret_id)
        secrets.append(
            {"name": response["Name"], "value": response.get("SecretString") or ""}
        )
    return secrets


async def fetch(options: Any = None) -> Dict[str, Value]:
    """Read secrets; boto3 is blocking so the calls run in a worker thread."""
    opts: AwsSecretsManagerOptions = coerce_options(options, AwsSecretsManagerOptions)
    if not opts.region:
        raise ValueError("aws-secrets-manager requires 'region'")

    logger.info("aws_secrets_manager_loading", region=opts.region, profile=opts.profile)
    secrets = await asyncio.to_thread(_read_secrets, opts)
    logger.info(
        "aws_secrets_manager_loaded",
        region=opts.region,
        names=[s["name"] for s in secrets],
    )

    source = (
        f"{ProviderType.AWS_SECRETS_MANAGER.value} "
        f"({opts.profile or 'default'}/{opts.region})"
    )
    return {
        s["name"]: Value(name=s["name"], value=s["value"], source=source, is_secret=True)
        for s in secrets
    }
