from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


CompareCommitsStatus = Literal["ahead", "identical", "behind", "diverged"]
PullRequestState = Literal["OPEN", "CLOSED", "MERGED"]


@dataclass(frozen=True)
class Label:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class BranchSet:
    source: str
    working: str
    target: str


@dataclass(frozen=True)
class RepositoryDescriptor:
    id: str
    owner: str
    name: str
    parent_id: str | None = None
    parent_owner: str | None = None
    parent_name: str | None = None
    status: CompareCommitsStatus | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def targets_parent(self) -> bool:
        return self.parent_id is not None

    @property
    def lookup_owner(self) -> str:
        if self.parent_owner is not None:
            return self.parent_owner
        return self.owner

    @property
    def lookup_name(self) -> str:
        if self.parent_name is not None:
            return self.parent_name
        return self.name

    @property
    def base_repository_id(self) -> str:
        if self.parent_id is not None:
            return self.parent_id
        return self.id

    @property
    def is_ahead(self) -> bool:
        return self.status == "ahead"


@dataclass(frozen=True)
class PullRequestRecord:
    id: str
    number: int
    state: str
    title: str
    body: str
    base_branch: str
    head_branch: str
    changed_files: int
    url: str

    @classmethod
    def empty(cls) -> PullRequestRecord:
        return cls(
            id="",
            number=0,
            state="",
            title="",
            body="",
            base_branch="",
            head_branch="",
            changed_files=0,
            url="",
        )

    @property
    def exists(self) -> bool:
        return bool(self.id)
