from __future__ import annotations

from dataclasses import dataclass
import html
import json
from pathlib import Path
import re


_ACTION_RE = re.compile(r'<Action id="(?P<id>[^"]*)">(?P<inner>.*?)</Action>', re.DOTALL)
_TITLE_RE = re.compile(r"<h3>(?P<title>.*?)</h3>", re.DOTALL)
_TARGET_RE = re.compile(r'<details id="(?P<id>[^"]*)">.*?</details>', re.DOTALL)


@dataclass(frozen=True)
class ReportTarget:
    id: str
    title: str
    description: str = ""

    def render(self) -> str:
        lines = [
            f'<details id="{html.escape(self.id)}">',
            f"    <summary>{html.escape(self.title, quote=False)}</summary>",
        ]
        if self.description.strip():
            lines.append(f"    <p>{html.escape(self.description.strip(), quote=False)}</p>")
        lines.append("</details>")
        return "\n".join(lines)


@dataclass(frozen=True)
class ActionReport:
    id: str
    title: str
    targets: tuple[ReportTarget, ...] = ()

    def to_actions_string(self) -> str:
        return _render_action(
            action_id=html.escape(self.id),
            title=html.escape(self.title, quote=False),
            target_blocks=[target.render() for target in self.targets],
        )

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ActionReport:
        raw_targets = data.get("targets", [])
        if not isinstance(raw_targets, list):
            raise ValueError("report.targets must be a list")
        targets: list[ReportTarget] = []
        for index, raw_target in enumerate(raw_targets):
            if not isinstance(raw_target, dict):
                raise ValueError(f"report.targets[{index}] must be an object")
            targets.append(
                ReportTarget(
                    id=_require_str(raw_target, "id", where=f"report.targets[{index}]"),
                    title=_require_str(raw_target, "title", where=f"report.targets[{index}]"),
                    description=_optional_str(raw_target, "description"),
                )
            )
        return cls(
            id=_require_str(data, "id", where="report"),
            title=_require_str(data, "title", where="report"),
            targets=tuple(targets),
        )


def load_report(path: Path) -> ActionReport:
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: report must be a JSON object")
    return ActionReport.from_dict(data)


@dataclass
class _ParsedAction:
    id: str
    title: str
    targets: dict[str, str]


def merge_reports(existing: str, new_report: str) -> str:
    """Merge the action reports found in `new_report` into those of `existing`.

    Actions and their targets are keyed by id. A target present in both keeps
    its position and takes the new content; unseen actions and targets are
    appended. Text outside of action blocks is dropped.
    """
    old_actions = _parse_actions(existing)
    new_actions = _parse_actions(new_report)
    if not old_actions:
        return new_report
    if not new_actions:
        return _render_parsed(old_actions)

    merged: dict[str, _ParsedAction] = {action.id: action for action in old_actions}
    for action in new_actions:
        current = merged.get(action.id)
        if current is None:
            merged[action.id] = action
            continue
        targets = dict(current.targets)
        targets.update(action.targets)
        merged[action.id] = _ParsedAction(id=action.id, title=action.title, targets=targets)
    return _render_parsed(list(merged.values()))


def _parse_actions(text: str) -> list[_ParsedAction]:
    actions: list[_ParsedAction] = []
    for match in _ACTION_RE.finditer(text):
        inner = match.group("inner")
        title_match = _TITLE_RE.search(inner)
        targets = {
            target.group("id"): target.group(0) for target in _TARGET_RE.finditer(inner)
        }
        actions.append(
            _ParsedAction(
                id=match.group("id"),
                title=title_match.group("title").strip() if title_match else "",
                targets=targets,
            )
        )
    return actions


def _render_parsed(actions: list[_ParsedAction]) -> str:
    return "\n\n".join(
        _render_action(
            action_id=action.id,
            title=action.title,
            target_blocks=list(action.targets.values()),
        )
        for action in actions
    )


def _render_action(*, action_id: str, title: str, target_blocks: list[str]) -> str:
    lines = [f'<Action id="{action_id}">', f"    <h3>{title}</h3>"]
    for block in target_blocks:
        lines.extend(f"    {line}" for line in _normalize_block(block))
    lines.append("</Action>")
    return "\n".join(lines)


def _normalize_block(block: str) -> list[str]:
    # Re-indent from scratch so repeated merges render identically.
    normalized: list[str] = []
    for line in block.strip().splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("<details") or stripped == "</details>":
            normalized.append(stripped)
        else:
            normalized.append(f"    {stripped}")
    return normalized


def _require_str(data: dict[object, object], key: str, *, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{where}.{key} must be a non-empty string")
    return value


def _optional_str(data: dict[object, object], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"report target {key} must be a string")
    return value
