"""Azure Key Vault provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from ..core.provider import coerce_options
from ..core.types import ProviderType, Value

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AzureKeyVaultOptions:
    """Options of the azure-keyvault provider.

    Attributes:
        key_vault_name: Vault name, the ``<name>`` of
            ``https://<name>.vault.azure.net``.
        credential: Async token credential. Defaults to a chain of Azure CLI,
            environment and managed identity credentials.
    """

    key_vault_name: str = ""
    credential: Optional[Any] = None

    @property
    def url(self) -> str:
        return f"https://{self.key_vault_name}.vault.azure.net"


def _default_credential() -> Any:
    from azure.identity.aio import (
        AzureCliCredential,
        ChainedTokenCredential,
        EnvironmentCredential,
        ManagedIdentityCredential,
    )

    return ChainedTokenCredential(
        AzureCliCredential(), EnvironmentCredential(), ManagedIdentityCredential()
    )


def _create_client(url: str, credential: Any) -> Any:
    from azure.keyvault.secrets.aio import SecretClient

    return SecretClient(vault_url=url, credential=credential)


async def _read_secrets(client: Any) -> List[Dict[str, str]]:
    secrets: List[Dict[str, str]] = []
    async for properties in client.list_properties_of_secrets():
        if properties.enabled is False:
            continue
        secret = await client.get_secret(properties.name)
        secrets.append({"name": secret.name, "value": secret.value or ""})
    return secrets


async def fetch(options: Any = None) -> Dict[str, Value]:
    """Read every enabled secret of the vault."""
    opts: AzureKeyVaultOptions = coerce_options(options, AzureKeyVaultOptions)
    if not opts.key_vault_name:
        raise ValueError("azure-keyvault requires 'key_vault_name'")

    owns_credential = opts.credential is None
    credential = _default_credential() if owns_credential else opts.credential
    logger.info("azure_keyvault_loading", url=opts.url)
    try:
        async with _create_client(opts.url, credential) as client:
            secrets = await _read_secrets(client)
    finally:
        if owns_credential:
            await credential.close()

    source = f"{ProviderType.AZURE_KEYVAULT.value} ({opts.key_vault_name})"
    logger.info(
        "azure_keyvault_loaded",
        url=opts.url,
        names=[s["name"] for s in secrets],
    )
    return {
        s["name"]: Value(name=s["name"], value=s["value"], source=source, is_secret=True)
        for s in secrets
    }
