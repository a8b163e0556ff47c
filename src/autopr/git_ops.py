from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path
import re
from typing import Final

from autopr.config import ScmConfig
from autopr.models import BranchSet
from autopr.observability import log_event
from autopr.shell import run


LOGGER = logging.getLogger("autopr.git_ops")
_MAX_BRANCH_NAME_LEN: Final[int] = 255
_INVALID_REF_CHARS = re.compile(r"[^A-Za-z0-9._/-]+")


class VersionControl(ABC):
    @abstractmethod
    def get_branches(self) -> BranchSet:
        """Return the source, working and target branch for this run."""


def sanitize_branch_name(name: str) -> str:
    """Turn an arbitrary string into a name git accepts as a branch."""
    sanitized = _INVALID_REF_CHARS.sub("_", name.strip())
    sanitized = re.sub(r"\.{2,}", ".", sanitized)
    parts = (part.lstrip(".") for part in sanitized.split("/"))
    sanitized = "/".join(part for part in parts if part)
    while sanitized.endswith(".lock") or sanitized.endswith("."):
        sanitized = sanitized.removesuffix(".lock").rstrip(".")
    sanitized = sanitized[:_MAX_BRANCH_NAME_LEN].rstrip("/.")
    if not sanitized:
        raise ValueError(f"Cannot derive a branch name from {name!r}")
    return sanitized


class GitBranches(VersionControl):
    """Branch triple for one action run.

    The source and target branch are the configured branch. The working branch
    equals it unless a dedicated working branch is requested for the pipeline.
    """

    def __init__(self, scm: ScmConfig) -> None:
        self.scm = scm

    def get_branches(self) -> BranchSet:
        target = self.scm.branch or self.current_branch()
        working = target
        if self.scm.working_branch and self.scm.pipeline_id:
            working = sanitize_branch_name(
                f"{self.scm.working_branch_prefix}_{target}_{self.scm.pipeline_id}"
            )
        branches = BranchSet(source=target, working=working, target=target)
        log_event(
            LOGGER,
            "git_branches_resolved",
            source=branches.source,
            working=branches.working,
            target=branches.target,
        )
        return branches

    def current_branch(self) -> str:
        checkout_path = self.scm.directory or Path(".")
        branch = run(["git", "-C", str(checkout_path), "rev-parse", "--abbrev-ref", "HEAD"])
        branch = branch.strip()
        if not branch or branch == "HEAD":
            raise RuntimeError(f"Checkout {checkout_path} is not on a branch")
        return branch
