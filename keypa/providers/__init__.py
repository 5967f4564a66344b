"""Built-in providers.

Each module exposes a ``fetch`` callable and, where it takes options, an
options dataclass. File and process providers are synchronous; remote
stores are coroutine functions.
"""

__all__ = [
    "process_env",
    "env_file",
    "azure_keyvault",
    "aws_secrets_manager",
    "redis_kv",
    "github_env",
]
