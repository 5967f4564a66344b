from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..core.provider import coerce_options
from ..core.types import ProviderType, Value

PAGE_SIZE = 100


@dataclass(frozen=True)
class GitHubEnvOptions:
    """GitHub environment variables (secrets cannot be read back).

    URI format: github://owner/repo#environment
    Token: from env var GITHUB_TOKEN unless provided explicitly via `token`.
    """

    uri: str = ""
    token: Optional[str] = None
    base_url: str = "https://api.github.com"


@dataclass(frozen=True)
class _GitHubContext:
    owner: str
    repo: str
    environment: str
    token: str

    @property
    def label(self) -> str:
        return f"{self.owner}/{self.repo}#{self.environment}"


def _parse_uri(uri: str, token: Optional[str]) -> _GitHubContext:
    if not uri.startswith("github://"):
        raise ValueError("github-env requires a URI starting with github://")
    rest = uri[len("github://") :]
    if "#" not in rest:
        raise ValueError(
            "GitHub URI must include #environment suffix, e.g., github://owner/repo#production"
        )
    path, env = rest.split("#", 1)
    if "/" not in path:
        raise ValueError("GitHub URI path must be owner/repo")
    owner, repo = path.split("/", 1)
    token_val = token or os.getenv("GITHUB_TOKEN")
    if not token_val:
        raise EnvironmentError("GITHUB_TOKEN not set and token not provided for github-env")
    return _GitHubContext(owner=owner, repo=repo, environment=env, token=token_val)


async def _list_env_variables(client: httpx.AsyncClient, ctx: _GitHubContext) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    url = f"/repos/{ctx.owner}/{ctx.repo}/environments/{ctx.environment}/variables"
    page = 1
    while True:
        resp = await client.get(url, params={"per_page": PAGE_SIZE, "page": page})
        resp.raise_for_status()
        batch = resp.json().get("variables", [])
        for v in batch:
            variables[v["name"]] = v.get("value")
        if len(batch) < PAGE_SIZE:
            return variables
        page += 1


async def fetch(options: Any = None) -> Dict[str, Value]:
    opts: GitHubEnvOptions = coerce_options(options, GitHubEnvOptions)
    ctx = _parse_uri(opts.uri, opts.token)
    async with httpx.AsyncClient(
        base_url=opts.base_url,
        headers={
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {ctx.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        },
        timeout=20.0,
    ) as client:
        variables = await _list_env_variables(client, ctx)

    source = f"{ProviderType.GITHUB_ENV.value} ({ctx.label})"
    return {
        name: Value(name=name, value=value, source=source, is_secret=False)
        for name, value in variables.items()
    }
