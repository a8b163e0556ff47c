from __future__ import annotations

import logging
from typing import Final

from autopr.body import BodyRenderer
from autopr.config import ActionConfig, ScmConfig
from autopr.git_ops import VersionControl
from autopr.github_gateway import (
    AutoMergeNotAllowedError,
    CleanStatusAutoMergeError,
    GitHubGateway,
)
from autopr.graphql_client import GitHubTransportError
from autopr.labels import resolve_pull_request_labels
from autopr.models import BranchSet, PullRequestRecord, RepositoryDescriptor
from autopr.observability import log_error_event, log_event
from autopr.reports import ActionReport
from autopr.repository import resolve_repository


LOGGER = logging.getLogger("autopr.pull_request")
CLOSE_COMMENT: Final[str] = "Pull request closed as no changed file detected"


def commit_headline(
    *,
    merge_method: str,
    use_title: bool,
    title: str,
    pr_number: int,
) -> str | None:
    if not use_title:
        return None
    method = merge_method.strip().lower()
    if method == "squash":
        return f"{title} (#{pr_number})"
    if method == "rebase":
        return title
    return None


class PullRequestAction:
    """Keeps one automation pull request in sync with the latest report.

    `create_action` converges the remote pull request for the configured branch
    pair; `clean_action` only closes a pull request left without changed files.
    Nothing is cached between calls: every call resolves the repository and the
    pull request again.
    """

    def __init__(
        self,
        settings: ActionConfig,
        *,
        scm: ScmConfig,
        github: GitHubGateway,
        vcs: VersionControl,
        renderer: BodyRenderer,
    ) -> None:
        self.settings = settings
        self.scm = scm
        self.github = github
        self.vcs = vcs
        self.renderer = renderer

    def clean_action(self, report: ActionReport | None = None) -> None:
        _ = report
        branches = self.vcs.get_branches()
        repository = resolve_repository(
            self.github,
            owner=self.scm.owner,
            name=self.scm.repository,
            target_parent=self.settings.parent,
        )
        remote = self.find_open_pull_request(repository, branches)

        if not remote.exists:
            log_event(LOGGER, "clean_nothing_to_do", head=branches.working)
            return

        if remote.changed_files == 0:
            self.close_pull_request(remote)

    def create_action(self, report: ActionReport, reset_description: bool = False) -> None:
        title = self.settings.title or report.title
        report_text = report.to_actions_string()
        branches = self.vcs.get_branches()

        repository = resolve_repository(
            self.github,
            owner=self.scm.owner,
            name=self.scm.repository,
            source_branch=branches.source,
            working_branch=branches.working,
            target_parent=self.settings.parent,
        )

        remote = self.find_open_pull_request(repository, branches)
        if remote.exists and not reset_description:
            report_text = self.renderer.merge(remote.body, report_text)
        body = self.renderer.generate(self.settings.description, report_text)

        if not remote.exists:
            remote = self.open_pull_request(repository, branches, title=title, body=body)

        # Update right after creation too: labels need an existing pull request.
        if remote.exists:
            remote = self.update_pull_request(repository, remote, title=title, body=body)

        if not repository.is_ahead:
            log_event(
                LOGGER,
                "pull_request_not_needed",
                working=branches.working,
                source=branches.source,
                status=repository.status,
            )
            return

        if remote.changed_files == 0:
            self.close_pull_request(remote)
            return

        if not self.settings.automerge:
            return

        try:
            self.enable_auto_merge(repository, remote, title=title)
        except AutoMergeNotAllowedError:
            log_error_event(
                LOGGER,
                "automerge_not_allowed",
                pr_url=remote.url,
                hint="Auto-merge can't be enabled. Allow auto-merge in the repository settings.",
            )
            raise
        except CleanStatusAutoMergeError:
            log_error_event(
                LOGGER,
                "automerge_clean_status",
                pr_url=remote.url,
                hint=(
                    "Auto-merge can't be enabled. "
                    "Enable branch protection rules on the target branch."
                ),
            )
            raise
        except GitHubTransportError as exc:
            log_error_event(
                LOGGER,
                "automerge_failed",
                pr_url=remote.url,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

    def find_open_pull_request(
        self, repository: RepositoryDescriptor, branches: BranchSet
    ) -> PullRequestRecord:
        remote = self.github.find_open_pull_request(
            repository.lookup_owner,
            repository.lookup_name,
            base=branches.target,
            head=branches.working,
        )
        if remote.exists:
            log_event(LOGGER, "github_pr_found", pr_number=remote.number, pr_url=remote.url)
        return remote

    def open_pull_request(
        self,
        repository: RepositoryDescriptor,
        branches: BranchSet,
        *,
        title: str,
        body: str,
    ) -> PullRequestRecord:
        if not repository.is_ahead:
            log_event(
                LOGGER,
                "pull_request_not_needed",
                working=branches.working,
                source=branches.source,
                status=repository.status,
            )
            return PullRequestRecord.empty()

        head_repository_id = repository.id if repository.targets_parent else None
        log_event(
            LOGGER,
            "github_pr_opening",
            repo_full_name=f"{repository.lookup_owner}/{repository.lookup_name}",
            base=branches.target,
            head=branches.working,
        )
        return self.github.create_pull_request(
            repository_id=repository.base_repository_id,
            base=branches.target,
            head=branches.working,
            title=title,
            body=body,
            draft=self.settings.draft,
            maintainer_can_modify=self.settings.maintainer_can_modify,
            head_repository_id=head_repository_id,
        )

    def update_pull_request(
        self,
        repository: RepositoryDescriptor,
        remote: PullRequestRecord,
        *,
        title: str,
        body: str,
    ) -> PullRequestRecord:
        label_ids: tuple[str, ...] | None = None
        # An empty labelIds list would clear every label, so it is only sent
        # when labels are configured.
        if self.settings.labels:
            labels = resolve_pull_request_labels(
                self.github,
                owner=repository.lookup_owner,
                name=repository.lookup_name,
                pr_number=remote.number,
                desired_names=self.settings.labels,
            )
            label_ids = tuple(label.id for label in labels)
        return self.github.update_pull_request(
            remote.id,
            title=title,
            body=body,
            label_ids=label_ids,
        )

    def close_pull_request(self, remote: PullRequestRecord) -> PullRequestRecord:
        log_event(
            LOGGER,
            "pull_request_without_changes",
            pr_number=remote.number,
            pr_url=remote.url,
        )
        closed = self.github.close_pull_request(remote.id)
        try:
            self.github.add_comment(remote.id, CLOSE_COMMENT)
        except GitHubTransportError as exc:
            log_error_event(
                LOGGER,
                "github_close_comment_failed",
                pr_number=remote.number,
                error_type=type(exc).__name__,
                error=str(exc),
            )
        return closed

    def enable_auto_merge(
        self,
        repository: RepositoryDescriptor,
        remote: PullRequestRecord,
        *,
        title: str,
    ) -> PullRequestRecord:
        if not self.github.is_auto_merge_allowed(repository.lookup_owner, repository.lookup_name):
            raise AutoMergeNotAllowedError(
                f"automerge is not allowed on repository "
                f"{repository.lookup_owner}/{repository.lookup_name}"
            )
        return self.github.enable_auto_merge(
            remote.id,
            merge_method=self.settings.graphql_merge_method,
            commit_headline=commit_headline(
                merge_method=self.settings.merge_method,
                use_title=self.settings.use_title_for_automerge,
                title=title,
                pr_number=remote.number,
            ),
        )
