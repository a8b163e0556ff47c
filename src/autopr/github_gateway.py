from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import logging
from typing import cast

from autopr.graphql_client import GitHubTransportError, GraphAPIClient, as_object_dict
from autopr.models import CompareCommitsStatus, Label, PullRequestRecord, RepositoryDescriptor
from autopr.observability import log_event
from autopr.queries import (
    ADD_COMMENT_MUTATION,
    AUTO_MERGE_ALLOWED_QUERY,
    CLOSE_PULL_REQUEST_MUTATION,
    CREATE_PULL_REQUEST_MUTATION,
    ENABLE_AUTO_MERGE_MUTATION,
    OPEN_PULL_REQUEST_QUERY,
    PULL_REQUEST_LABELS_QUERY,
    REPOSITORY_LABELS_QUERY,
    REPOSITORY_QUERY,
    REPOSITORY_WITH_COMPARISON_QUERY,
    UPDATE_PULL_REQUEST_MUTATION,
)


LOGGER = logging.getLogger("autopr.github_gateway")
_VALID_COMPARE_STATUSES = {"ahead", "identical", "behind", "diverged"}


class RepositoryNotFoundError(RuntimeError):
    """The repository, or the parent it should be redirected to, does not resolve."""


class AutoMergeError(RuntimeError):
    pass


class AutoMergeNotAllowedError(AutoMergeError):
    """The repository settings do not allow auto-merge."""


class CleanStatusAutoMergeError(AutoMergeError):
    """Auto-merge was rejected because the pull request is already mergeable."""


@dataclass(frozen=True)
class GitHubGateway:
    client: GraphAPIClient

    def query_repository(
        self,
        owner: str,
        name: str,
        *,
        base_ref: str | None = None,
        head_ref: str | None = None,
    ) -> RepositoryDescriptor:
        """Fetch repository identity, its fork parent, and optionally a branch comparison.

        The comparison is only requested when both refs are given; the status then
        describes `head_ref` relative to `base_ref`.
        """
        compare = bool(base_ref) and bool(head_ref)
        try:
            if compare:
                data = self.client.query(
                    REPOSITORY_WITH_COMPARISON_QUERY,
                    {
                        "owner": owner,
                        "name": name,
                        "baseRef": base_ref,
                        "headRef": head_ref,
                    },
                )
            else:
                data = self.client.query(REPOSITORY_QUERY, {"owner": owner, "name": name})
        except GitHubTransportError as exc:
            if "NOT_FOUND" in exc.error_types:
                raise RepositoryNotFoundError(
                    f"GitHub repository {owner}/{name} not found"
                ) from exc
            raise

        repo_obj = as_object_dict(data.get("repository"))
        if repo_obj is None:
            raise RepositoryNotFoundError(f"GitHub repository {owner}/{name} not found")

        parent_obj = as_object_dict(repo_obj.get("parent"))
        status: CompareCommitsStatus | None = None
        if compare:
            status = _parse_compare_status(repo_obj.get("ref"))

        descriptor = RepositoryDescriptor(
            id=_require_str(repo_obj, "id"),
            owner=_login(repo_obj.get("owner")),
            name=_require_str(repo_obj, "name"),
            parent_id=_require_str(parent_obj, "id") if parent_obj else None,
            parent_owner=_login(parent_obj.get("owner")) if parent_obj else None,
            parent_name=_require_str(parent_obj, "name") if parent_obj else None,
            status=status,
        )
        log_event(
            LOGGER,
            "github_read",
            endpoint="repository",
            repo_full_name=descriptor.full_name,
            has_parent=parent_obj is not None,
            base_ref=base_ref,
            head_ref=head_ref,
            status=status,
        )
        return descriptor

    def is_auto_merge_allowed(self, owner: str, name: str) -> bool:
        data = self.client.query(AUTO_MERGE_ALLOWED_QUERY, {"owner": owner, "name": name})
        repo_obj = as_object_dict(data.get("repository"))
        if repo_obj is None:
            raise RepositoryNotFoundError(f"GitHub repository {owner}/{name} not found")
        allowed = repo_obj.get("autoMergeAllowed")
        if not isinstance(allowed, bool):
            raise GitHubTransportError("Unexpected GitHub response type for autoMergeAllowed")
        log_event(
            LOGGER,
            "github_read",
            endpoint="auto_merge_allowed",
            repo_full_name=f"{owner}/{name}",
            allowed=allowed,
        )
        return allowed

    def list_repository_labels(self, owner: str, name: str) -> tuple[Label, ...]:
        data = self.client.query(REPOSITORY_LABELS_QUERY, {"owner": owner, "name": name})
        repo_obj = as_object_dict(data.get("repository"))
        if repo_obj is None:
            raise RepositoryNotFoundError(f"GitHub repository {owner}/{name} not found")
        labels_obj = as_object_dict(repo_obj.get("labels"))
        nodes = labels_obj.get("nodes") if labels_obj else None
        labels: list[Label] = []
        if isinstance(nodes, list):
            for node in nodes:
                label = _parse_label(node)
                if label is not None:
                    labels.append(label)
        log_event(
            LOGGER,
            "github_read",
            endpoint="repository_labels",
            repo_full_name=f"{owner}/{name}",
            count=len(labels),
        )
        return tuple(labels)

    def iter_pull_request_label_pages(
        self, owner: str, name: str, number: int
    ) -> Iterator[tuple[Label, ...]]:
        """Yield label pages of a pull request, most recent page first.

        Each following request uses the previous page's start cursor and the walk
        stops on the first page that reports no previous page.
        """
        before: str | None = None
        requested: set[str] = set()
        page_number = 0
        while True:
            data = self.client.query(
                PULL_REQUEST_LABELS_QUERY,
                {"owner": owner, "name": name, "number": number, "before": before},
            )
            page_number += 1
            _log_rate_limit(data.get("rateLimit"), endpoint="pull_request_labels")

            repo_obj = as_object_dict(data.get("repository"))
            if repo_obj is None:
                raise RepositoryNotFoundError(f"GitHub repository {owner}/{name} not found")
            pr_obj = as_object_dict(repo_obj.get("pullRequest"))
            if pr_obj is None:
                raise GitHubTransportError(
                    f"GitHub pull request {owner}/{name}#{number} not found"
                )
            labels_obj = as_object_dict(pr_obj.get("labels"))
            if labels_obj is None:
                raise GitHubTransportError("Unexpected GitHub response: missing labels")

            page: list[Label] = []
            edges = labels_obj.get("edges")
            if isinstance(edges, list):
                for edge in edges:
                    edge_obj = as_object_dict(edge)
                    if edge_obj is None:
                        continue
                    label = _parse_label(edge_obj.get("node"))
                    if label is not None:
                        page.append(label)
            log_event(
                LOGGER,
                "github_read",
                endpoint="pull_request_labels",
                pr_number=number,
                page=page_number,
                count=len(page),
            )
            yield tuple(page)

            page_info = as_object_dict(labels_obj.get("pageInfo")) or {}
            if page_info.get("hasPreviousPage") is not True:
                return
            cursor = page_info.get("startCursor")
            if not isinstance(cursor, str) or not cursor:
                raise GitHubTransportError(
                    "Unexpected GitHub response: previous label page without start cursor"
                )
            if cursor in requested:
                raise GitHubTransportError(
                    f"Unexpected GitHub response: label page cursor {cursor!r} repeated"
                )
            requested.add(cursor)
            before = cursor

    def find_open_pull_request(
        self, owner: str, name: str, *, base: str, head: str
    ) -> PullRequestRecord:
        data = self.client.query(
            OPEN_PULL_REQUEST_QUERY,
            {"owner": owner, "name": name, "baseRefName": base, "headRefName": head},
        )
        repo_obj = as_object_dict(data.get("repository"))
        if repo_obj is None:
            raise RepositoryNotFoundError(f"GitHub repository {owner}/{name} not found")
        prs_obj = as_object_dict(repo_obj.get("pullRequests"))
        nodes = prs_obj.get("nodes") if prs_obj else None
        candidates = [
            node_obj
            for node in (nodes if isinstance(nodes, list) else [])
            if (node_obj := as_object_dict(node)) is not None
        ]
        if not candidates:
            log_event(
                LOGGER,
                "github_read",
                endpoint="open_pull_request",
                repo_full_name=f"{owner}/{name}",
                base=base,
                head=head,
                found=False,
            )
            return PullRequestRecord.empty()

        # `last: 1` already limits the result; the final node is the most recent.
        record = _parse_pull_request(candidates[-1])
        log_event(
            LOGGER,
            "github_read",
            endpoint="open_pull_request",
            repo_full_name=f"{owner}/{name}",
            base=base,
            head=head,
            found=True,
            pr_number=record.number,
        )
        return record

    def create_pull_request(
        self,
        *,
        repository_id: str,
        base: str,
        head: str,
        title: str,
        body: str,
        draft: bool,
        maintainer_can_modify: bool,
        head_repository_id: str | None = None,
    ) -> PullRequestRecord:
        mutation_input: dict[str, object] = {
            "repositoryId": repository_id,
            "baseRefName": base,
            "headRefName": head,
            "title": title,
            "body": body,
            "draft": draft,
            "maintainerCanModify": maintainer_can_modify,
        }
        if head_repository_id is not None:
            mutation_input["headRepositoryId"] = head_repository_id
        try:
            data = self.client.mutate(CREATE_PULL_REQUEST_MUTATION, mutation_input)
            record = _mutation_pull_request(data, "createPullRequest")
        except GitHubTransportError as exc:
            log_event(
                LOGGER,
                "github_pr_create_failed",
                base=base,
                head=head,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        log_event(
            LOGGER,
            "github_pr_created",
            pr_number=record.number,
            pr_url=record.url,
            base=base,
            head=head,
            draft=draft,
        )
        return record

    def update_pull_request(
        self,
        pr_id: str,
        *,
        title: str,
        body: str,
        label_ids: tuple[str, ...] | None = None,
    ) -> PullRequestRecord:
        mutation_input: dict[str, object] = {
            "pullRequestId": pr_id,
            "title": title,
            "body": body,
        }
        if label_ids is not None:
            mutation_input["labelIds"] = list(label_ids)
        try:
            data = self.client.mutate(UPDATE_PULL_REQUEST_MUTATION, mutation_input)
            record = _mutation_pull_request(data, "updatePullRequest")
        except GitHubTransportError as exc:
            log_event(
                LOGGER,
                "github_pr_update_failed",
                pr_id=pr_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        log_event(
            LOGGER,
            "github_pr_updated",
            pr_number=record.number,
            pr_url=record.url,
            label_count=len(label_ids) if label_ids is not None else None,
        )
        return record

    def close_pull_request(self, pr_id: str) -> PullRequestRecord:
        data = self.client.mutate(CLOSE_PULL_REQUEST_MUTATION, {"pullRequestId": pr_id})
        record = _mutation_pull_request(data, "closePullRequest")
        log_event(LOGGER, "github_pr_closed", pr_number=record.number, pr_url=record.url)
        return record

    def add_comment(self, subject_id: str, body: str) -> str:
        data = self.client.mutate(ADD_COMMENT_MUTATION, {"subjectId": subject_id, "body": body})
        comment_obj = as_object_dict(data.get("addComment"))
        edge_obj = as_object_dict(comment_obj.get("commentEdge")) if comment_obj else None
        node_obj = as_object_dict(edge_obj.get("node")) if edge_obj else None
        url = _as_string(node_obj.get("url")) if node_obj else ""
        log_event(LOGGER, "github_comment_posted", subject_id=subject_id, comment_url=url)
        return url

    def enable_auto_merge(
        self,
        pr_id: str,
        *,
        merge_method: str | None = None,
        commit_headline: str | None = None,
    ) -> PullRequestRecord:
        mutation_input: dict[str, object] = {"pullRequestId": pr_id}
        if merge_method is not None:
            mutation_input["mergeMethod"] = merge_method
        if commit_headline is not None:
            mutation_input["commitHeadline"] = commit_headline
        try:
            data = self.client.mutate(ENABLE_AUTO_MERGE_MUTATION, mutation_input)
        except GitHubTransportError as exc:
            if _is_clean_status_error(str(exc)):
                raise CleanStatusAutoMergeError(
                    f"Pull request {pr_id} is in clean status: {exc}"
                ) from exc
            raise
        record = _mutation_pull_request(data, "enablePullRequestAutoMerge")
        log_event(
            LOGGER,
            "github_pr_automerge_enabled",
            pr_number=record.number,
            merge_method=merge_method,
            has_commit_headline=commit_headline is not None,
        )
        return record


def _is_clean_status_error(message: str) -> bool:
    return "clean status" in message.lower()


def _log_rate_limit(value: object, *, endpoint: str) -> None:
    rate_obj = as_object_dict(value)
    if rate_obj is None:
        return
    log_event(
        LOGGER,
        "github_rate_limit",
        endpoint=endpoint,
        cost=_as_optional_int(rate_obj.get("cost")),
        remaining=_as_optional_int(rate_obj.get("remaining")),
        reset_at=_as_string(rate_obj.get("resetAt")),
    )


def _parse_compare_status(value: object) -> CompareCommitsStatus | None:
    ref_obj = as_object_dict(value)
    if ref_obj is None:
        return None
    compare_obj = as_object_dict(ref_obj.get("compare"))
    if compare_obj is None:
        return None
    status_raw = _as_string(compare_obj.get("status")).strip().lower()
    if status_raw not in _VALID_COMPARE_STATUSES:
        raise GitHubTransportError(f"Unexpected GitHub compare status: {status_raw!r}")
    return cast(CompareCommitsStatus, status_raw)


def _mutation_pull_request(data: dict[str, object], field: str) -> PullRequestRecord:
    payload_obj = as_object_dict(data.get(field))
    pr_obj = as_object_dict(payload_obj.get("pullRequest")) if payload_obj else None
    if pr_obj is None:
        raise GitHubTransportError(f"Unexpected GitHub response: {field} returned no pull request")
    return _parse_pull_request(pr_obj)


def _parse_pull_request(pr_obj: dict[str, object]) -> PullRequestRecord:
    return PullRequestRecord(
        id=_require_str(pr_obj, "id"),
        number=_as_int(pr_obj.get("number"), field="number"),
        state=_as_string(pr_obj.get("state")),
        title=_as_string(pr_obj.get("title")),
        body=_as_string(pr_obj.get("body")),
        base_branch=_as_string(pr_obj.get("baseRefName")),
        head_branch=_as_string(pr_obj.get("headRefName")),
        changed_files=_as_int(pr_obj.get("changedFiles"), field="changedFiles"),
        url=_as_string(pr_obj.get("url")),
    )


def _parse_label(value: object) -> Label | None:
    node_obj = as_object_dict(value)
    if node_obj is None:
        return None
    label_id = node_obj.get("id")
    name = node_obj.get("name")
    if not isinstance(label_id, str) or not isinstance(name, str):
        return None
    return Label(id=label_id, name=name, description=_as_string(node_obj.get("description")))


def _login(value: object) -> str:
    owner_obj = as_object_dict(value)
    if owner_obj is None:
        raise GitHubTransportError("Unexpected GitHub response: missing owner")
    return _require_str(owner_obj, "login")


def _require_str(obj: dict[str, object], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value:
        raise GitHubTransportError(f"Unexpected GitHub response: missing {key}")
    return value


def _as_string(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_int(value: object, *, field: str) -> int:
    if isinstance(value, bool):
        raise GitHubTransportError(f"Unexpected GitHub response type for {field}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as exc:
            raise GitHubTransportError(
                f"Unexpected GitHub response value for {field}: {value}"
            ) from exc
    raise GitHubTransportError(f"Unexpected GitHub response type for {field}")


def _as_optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None
