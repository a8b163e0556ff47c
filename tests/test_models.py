from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from autopr.models import (
    CompareCommitsStatus,
    Label,
    PullRequestRecord,
    RepositoryDescriptor,
)


def test_repository_without_parent_addresses_itself() -> None:
    repo = RepositoryDescriptor(id="R_1", owner="acme", name="widgets", status="ahead")

    assert repo.full_name == "acme/widgets"
    assert not repo.targets_parent
    assert repo.lookup_owner == "acme"
    assert repo.lookup_name == "widgets"
    assert repo.base_repository_id == "R_1"
    assert repo.is_ahead


def test_repository_with_parent_addresses_parent() -> None:
    repo = RepositoryDescriptor(
        id="R_fork",
        owner="me",
        name="widgets-fork",
        parent_id="R_parent",
        parent_owner="acme",
        parent_name="widgets",
        status="identical",
    )

    assert repo.full_name == "me/widgets-fork"
    assert repo.targets_parent
    assert repo.lookup_owner == "acme"
    assert repo.lookup_name == "widgets"
    assert repo.base_repository_id == "R_parent"
    assert not repo.is_ahead


@pytest.mark.parametrize("status", [None, "behind", "diverged", "identical"])
def test_only_ahead_counts_as_ahead(status: CompareCommitsStatus | None) -> None:
    repo = RepositoryDescriptor(id="R", owner="o", name="n", status=status)
    assert not repo.is_ahead


def test_empty_pull_request_record_does_not_exist() -> None:
    empty = PullRequestRecord.empty()
    assert not empty.exists
    assert empty.number == 0
    assert empty.changed_files == 0

    found = PullRequestRecord(
        id="PR_1",
        number=3,
        state="OPEN",
        title="t",
        body="",
        base_branch="main",
        head_branch="work",
        changed_files=0,
        url="https://example/pull/3",
    )
    assert found.exists


def test_models_are_frozen() -> None:
    label = Label(id="L_1", name="deps")
    with pytest.raises(FrozenInstanceError):
        label.name = "other"  # type: ignore[misc]
