from __future__ import annotations

from pathlib import Path

import pytest

from autopr.config import (
    ActionConfig,
    ConfigError,
    ValidationError,
    load_config,
    validate_merge_method,
)


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_load_config_full(tmp_path: Path) -> None:
    cfg_path = _write(
        tmp_path / "autopr.toml",
        """
[scm]
owner = "acme"
repository = "widgets"
branch = "main"
directory = "~/src/widgets"
hostname = "github.example.com"
working_branch = true
working_branch_prefix = "bot"
pipeline_id = "1234"

[action]
title = "Weekly bumps"
description = "Automated dependency updates."
labels = ["deps", "bot", "deps"]
automerge = true
draft = true
maintainer_can_modify = false
merge_method = "Squash"
use_title_for_automerge = true
parent = true
""",
    )

    cfg = load_config(cfg_path)

    assert (cfg.scm.owner, cfg.scm.repository) == ("acme", "widgets")
    assert cfg.scm.branch == "main"
    assert cfg.scm.directory == Path("~/src/widgets").expanduser()
    assert cfg.scm.hostname == "github.example.com"
    assert cfg.scm.working_branch is True
    assert cfg.scm.working_branch_prefix == "bot"
    assert cfg.scm.pipeline_id == "1234"

    assert cfg.action.title == "Weekly bumps"
    assert cfg.action.labels == ("deps", "bot")
    assert cfg.action.automerge is True
    assert cfg.action.draft is True
    assert cfg.action.maintainer_can_modify is False
    assert cfg.action.normalized_merge_method == "squash"
    assert cfg.action.graphql_merge_method == "SQUASH"
    assert cfg.action.use_title_for_automerge is True
    assert cfg.action.parent is True


def test_load_config_defaults(tmp_path: Path) -> None:
    cfg = load_config(
        _write(
            tmp_path / "autopr.toml",
            """
[scm]
owner = "acme"
repository = "widgets"
branch = "main"
""",
        )
    )

    assert cfg.scm.directory is None
    assert cfg.scm.working_branch is False
    assert cfg.scm.working_branch_prefix == "autopr"
    assert cfg.action == ActionConfig()
    assert cfg.action.maintainer_can_modify is True
    assert cfg.action.graphql_merge_method is None


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("[action]\ntitle = 'x'\n", r"\[scm\] is required"),
        ("[scm]\nrepository = 'w'\nbranch = 'main'\n", "owner is required"),
        ("[scm]\nowner = 'a'\nrepository = 'w'\n", "scm.branch or scm.directory"),
        (
            "[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'main'\nworking_branch = true\n",
            "pipeline_id is required",
        ),
        (
            "[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'main'\nworking_branch = 'yes'\n",
            "working_branch must be a boolean",
        ),
        ("[scm]\nowner = 'a'\nrepository = 'w'\nbranch = ''\n", "branch must be a non-empty"),
        (
            "[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'm'\n[action]\nlabels = 'deps'\n",
            "labels must be a list",
        ),
        (
            "[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'm'\n[action]\nlabels = [' ']\n",
            "non-empty strings",
        ),
        (
            "[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'm'\n[action]\nmerge_method = 1\n",
            "merge_method must be a string",
        ),
        ("scm = 1\n", r"\[scm\] is required"),
    ],
)
def test_load_config_rejects_invalid_values(
    tmp_path: Path, content: str, message: str
) -> None:
    with pytest.raises(ConfigError, match=message):
        load_config(_write(tmp_path / "autopr.toml", content))


def test_load_config_rejects_non_table_action(tmp_path: Path) -> None:
    content = "action = 3\n[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'm'\n"
    with pytest.raises(ConfigError, match=r"\[action\] must be a TOML table"):
        load_config(_write(tmp_path / "autopr.toml", content))


def test_load_config_rejects_unknown_merge_method(tmp_path: Path) -> None:
    content = "[scm]\nowner = 'a'\nrepository = 'w'\nbranch = 'm'\n[action]\nmerge_method = 'ff'\n"
    with pytest.raises(ValidationError, match="wrong merge method 'ff'"):
        load_config(_write(tmp_path / "autopr.toml", content))


@pytest.mark.parametrize(
    ("method", "expected"),
    [("", ""), ("squash", "squash"), (" MERGE ", "merge"), ("Rebase", "rebase")],
)
def test_validate_merge_method_accepts_known_methods(method: str, expected: str) -> None:
    assert validate_merge_method(method) == expected


def test_validate_merge_method_rejects_others() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_merge_method("fast-forward")
    assert isinstance(exc_info.value, ValueError)
    assert "accepting one of 'squash', 'merge', 'rebase', or ''" in str(exc_info.value)


def test_action_config_validates_on_construction() -> None:
    with pytest.raises(ValidationError):
        ActionConfig(merge_method="octopus")
