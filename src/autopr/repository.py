from __future__ import annotations

from dataclasses import replace
import logging

from autopr.github_gateway import GitHubGateway, RepositoryNotFoundError
from autopr.models import RepositoryDescriptor
from autopr.observability import log_event


LOGGER = logging.getLogger("autopr.repository")


def resolve_repository(
    github: GitHubGateway,
    *,
    owner: str,
    name: str,
    source_branch: str | None = None,
    working_branch: str | None = None,
    target_parent: bool = False,
) -> RepositoryDescriptor:
    """Resolve the repository a pull request is reconciled against.

    Parent fields are kept only when `target_parent` is requested, so every
    lookup derived from the descriptor addresses the parent exactly in that mode.
    A missing parent is an error rather than a silent fallback to the fork.
    """
    descriptor = github.query_repository(
        owner,
        name,
        base_ref=source_branch,
        head_ref=working_branch,
    )

    if not target_parent:
        descriptor = replace(descriptor, parent_id=None, parent_owner=None, parent_name=None)
    elif not descriptor.targets_parent:
        raise RepositoryNotFoundError(
            f"GitHub repository {descriptor.full_name} is not a fork; no parent to target"
        )

    log_event(
        LOGGER,
        "repository_resolved",
        repo_full_name=descriptor.full_name,
        lookup_full_name=f"{descriptor.lookup_owner}/{descriptor.lookup_name}",
        status=descriptor.status,
    )
    return descriptor
