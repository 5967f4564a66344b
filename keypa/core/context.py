"""Detection of the execution context the process runs in."""

from __future__ import annotations

import os
from enum import Enum
from typing import Callable, List, Mapping, Optional, Tuple


class ExecutionContext(str, Enum):
    AZURE_APP_SERVICE = "azure-app-service"
    AZURE_FUNCTIONS = "azure-functions"
    AWS_LAMBDA = "aws-lambda"
    AWS_ECS = "aws-ecs"
    GOOGLE_CLOUD_RUN = "google-cloud-run"
    KUBERNETES = "kubernetes"
    GITHUB_ACTIONS = "github-actions"
    GITLAB_CI = "gitlab-ci"
    AZURE_PIPELINES = "azure-pipelines"
    CIRCLECI = "circleci"
    JENKINS = "jenkins"
    UNKNOWN = "unknown"

    @property
    def is_ci(self) -> bool:
        return self in _CI_CONTEXTS

    @property
    def is_cloud(self) -> bool:
        return self in _CLOUD_CONTEXTS


_CI_CONTEXTS = frozenset(
    {
        ExecutionContext.GITHUB_ACTIONS,
        ExecutionContext.GITLAB_CI,
        ExecutionContext.AZURE_PIPELINES,
        ExecutionContext.CIRCLECI,
        ExecutionContext.JENKINS,
    }
)

_CLOUD_CONTEXTS = frozenset(
    {
        ExecutionContext.AZURE_APP_SERVICE,
        ExecutionContext.AZURE_FUNCTIONS,
        ExecutionContext.AWS_LAMBDA,
        ExecutionContext.AWS_ECS,
        ExecutionContext.GOOGLE_CLOUD_RUN,
        ExecutionContext.KUBERNETES,
    }
)

# CI systems first: hosted runners also look like cloud machines.
_MARKERS: List[Tuple[ExecutionContext, Tuple[str, ...]]] = [
    (ExecutionContext.GITHUB_ACTIONS, ("GITHUB_ACTIONS",)),
    (ExecutionContext.GITLAB_CI, ("GITLAB_CI",)),
    (ExecutionContext.AZURE_PIPELINES, ("TF_BUILD",)),
    (ExecutionContext.CIRCLECI, ("CIRCLECI",)),
    (ExecutionContext.JENKINS, ("JENKINS_URL", "JENKINS_HOME")),
    (ExecutionContext.AZURE_FUNCTIONS, ("FUNCTIONS_WORKER_RUNTIME",)),
    (ExecutionContext.AZURE_APP_SERVICE, ("WEBSITE_SITE_NAME", "WEBSITE_INSTANCE_ID")),
    (ExecutionContext.AWS_LAMBDA, ("AWS_LAMBDA_FUNCTION_NAME",)),
    (
        ExecutionContext.AWS_ECS,
        ("ECS_CONTAINER_METADATA_URI_V4", "ECS_CONTAINER_METADATA_URI"),
    ),
    (ExecutionContext.GOOGLE_CLOUD_RUN, ("K_SERVICE",)),
    (ExecutionContext.KUBERNETES, ("KUBERNETES_SERVICE_HOST",)),
]

ContextClassifier = Callable[[], ExecutionContext]


def current_execution_context(
    environ: Optional[Mapping[str, str]] = None,
) -> ExecutionContext:
    """Classify the runtime from well-known environment variables.

    Args:
        environ: Mapping to inspect. Defaults to ``os.environ``.

    Returns:
        The first matching context, or ``ExecutionContext.UNKNOWN``.
    """
    env = os.environ if environ is None else environ
    for context, markers in _MARKERS:
        for marker in markers:
            value = env.get(marker)
            if value and value.lower() not in ("0", "false"):
                return context
    return ExecutionContext.UNKNOWN
