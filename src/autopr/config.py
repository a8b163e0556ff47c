from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import tomllib
from typing import Final, Literal, cast


MergeMethod = Literal["", "squash", "merge", "rebase"]
_MERGE_METHODS: Final[frozenset[str]] = frozenset({"", "squash", "merge", "rebase"})


class ConfigError(ValueError):
    pass


class ValidationError(ConfigError):
    pass


def validate_merge_method(method: str) -> MergeMethod:
    normalized = method.strip().lower()
    if normalized not in _MERGE_METHODS:
        raise ValidationError(
            f"wrong merge method {method!r}, accepting one of 'squash', 'merge', 'rebase', or ''"
        )
    return cast(MergeMethod, normalized)


@dataclass(frozen=True)
class ScmConfig:
    owner: str
    repository: str
    branch: str | None = None
    directory: Path | None = None
    hostname: str | None = None
    working_branch: bool = False
    working_branch_prefix: str = "autopr"
    pipeline_id: str | None = None


@dataclass(frozen=True)
class ActionConfig:
    title: str = ""
    description: str = ""
    labels: tuple[str, ...] = ()
    automerge: bool = False
    draft: bool = False
    maintainer_can_modify: bool = True
    merge_method: str = ""
    use_title_for_automerge: bool = False
    parent: bool = False

    def __post_init__(self) -> None:
        validate_merge_method(self.merge_method)

    @property
    def normalized_merge_method(self) -> MergeMethod:
        return validate_merge_method(self.merge_method)

    @property
    def graphql_merge_method(self) -> str | None:
        # GitHub expects the upper-case enum and rejects an empty value.
        method = self.normalized_merge_method
        return method.upper() if method else None


@dataclass(frozen=True)
class AppConfig:
    scm: ScmConfig
    action: ActionConfig


def load_config(path: Path) -> AppConfig:
    with path.open("rb") as fh:
        data = tomllib.load(fh)

    scm_data = _require_table(data, "scm")
    action_data = _optional_table(data, "action") or {}

    scm = ScmConfig(
        owner=_require_str(scm_data, "owner"),
        repository=_require_str(scm_data, "repository"),
        branch=_optional_str(scm_data, "branch"),
        directory=_optional_path(scm_data, "directory"),
        hostname=_optional_str(scm_data, "hostname"),
        working_branch=_bool_with_default(scm_data, "working_branch", False),
        working_branch_prefix=_str_with_default(scm_data, "working_branch_prefix", "autopr"),
        pipeline_id=_optional_str(scm_data, "pipeline_id"),
    )
    if scm.working_branch and scm.pipeline_id is None:
        raise ConfigError("scm.pipeline_id is required when scm.working_branch is true")
    if scm.branch is None and scm.directory is None:
        raise ConfigError("scm.branch or scm.directory must be set")

    merge_method = action_data.get("merge_method", "")
    if not isinstance(merge_method, str):
        raise ConfigError("merge_method must be a string")

    action = ActionConfig(
        title=_text_with_default(action_data, "title"),
        description=_text_with_default(action_data, "description"),
        labels=_unique_tuple_of_str(action_data, "labels"),
        automerge=_bool_with_default(action_data, "automerge", False),
        draft=_bool_with_default(action_data, "draft", False),
        maintainer_can_modify=_bool_with_default(action_data, "maintainer_can_modify", True),
        merge_method=merge_method,
        use_title_for_automerge=_bool_with_default(action_data, "use_title_for_automerge", False),
        parent=_bool_with_default(action_data, "parent", False),
    )
    return AppConfig(scm=scm, action=action)


def _require_table(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] is required and must be a TOML table")
    return cast(dict[str, object], value)


def _optional_table(data: dict[str, object], key: str) -> dict[str, object] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a TOML table when provided")
    return cast(dict[str, object], value)


def _require_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} is required and must be a non-empty string")
    return value


def _optional_str(data: dict[str, object], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} must be a non-empty string if provided")
    return value


def _text_with_default(data: dict[str, object], key: str) -> str:
    value = data.get(key, "")
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value


def _bool_with_default(data: dict[str, object], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be a boolean")
    return value


def _str_with_default(data: dict[str, object], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} must be a non-empty string")
    return value


def _unique_tuple_of_str(data: dict[str, object], key: str) -> tuple[str, ...]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"{key} must be a list of non-empty strings")
        if item not in out:
            out.append(item)
    return tuple(out)


def _optional_path(data: dict[str, object], key: str) -> Path | None:
    value = _optional_str(data, key)
    if value is None:
        return None
    return Path(value).expanduser()
