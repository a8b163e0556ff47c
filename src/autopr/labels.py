from __future__ import annotations

from collections.abc import Iterable
import logging

from autopr.github_gateway import GitHubGateway
from autopr.models import Label
from autopr.observability import log_event


LOGGER = logging.getLogger("autopr.labels")


def list_pull_request_labels(
    github: GitHubGateway, owner: str, name: str, number: int
) -> tuple[Label, ...]:
    collected: dict[str, Label] = {}
    for page in github.iter_pull_request_label_pages(owner, name, number):
        for label in page:
            collected.setdefault(label.id, label)
    return tuple(collected.values())


def compute_desired_label_set(
    desired_names: Iterable[str],
    catalog: Iterable[Label],
    attached: Iterable[Label],
) -> tuple[Label, ...]:
    """Union of catalog labels named in `desired_names` and labels already attached.

    Names missing from the catalog are dropped. Attached labels are always kept,
    so a run never removes labels added by someone else.
    """
    by_name: dict[str, Label] = {}
    for label in catalog:
        by_name.setdefault(label.name, label)

    selected: dict[str, Label] = {}
    for desired in desired_names:
        match = by_name.get(desired)
        if match is not None:
            selected.setdefault(match.id, match)
    for label in attached:
        selected.setdefault(label.id, label)
    return tuple(selected.values())


def resolve_pull_request_labels(
    github: GitHubGateway,
    *,
    owner: str,
    name: str,
    pr_number: int,
    desired_names: tuple[str, ...],
) -> tuple[Label, ...]:
    catalog = github.list_repository_labels(owner, name)
    attached = list_pull_request_labels(github, owner, name, pr_number)
    labels = compute_desired_label_set(desired_names, catalog, attached)

    known = {label.name for label in catalog}
    unknown = tuple(desired for desired in desired_names if desired not in known)
    log_event(
        LOGGER,
        "labels_resolved",
        pr_number=pr_number,
        desired_count=len(desired_names),
        attached_count=len(attached),
        label_count=len(labels),
        unknown_labels=unknown,
    )
    return labels
