from __future__ import annotations

from collections.abc import Mapping
import json
import logging
import sys
from typing import Final, Literal, TextIO, cast


_ROOT_LOGGER: Final[str] = "autopr"
_FIELD_PREVIEW_LEN: Final[int] = 120
_STDERR_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Kept by `--verbose low`; warnings and errors always pass.
LIFECYCLE_EVENTS: Final[frozenset[str]] = frozenset(
    {
        "github_pr_found",
        "github_pr_created",
        "github_pr_updated",
        "github_pr_closed",
        "github_pr_automerge_enabled",
        "pull_request_not_needed",
    }
)


Verbosity = Literal["low", "high"]


def configure_logging(verbose: bool | str | None, *, stream: TextIO | None = None) -> None:
    """Route the `autopr` logger hierarchy to stderr, or silence it.

    Safe to call repeatedly: previously installed handlers are closed and replaced.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    root.propagate = False
    while root.handlers:
        root.handlers.pop().close()

    verbosity = _parse_verbosity(verbose)
    if verbosity is None:
        root.addHandler(logging.NullHandler())
        root.setLevel(logging.CRITICAL + 1)
        return

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(_STDERR_FORMAT))
    if verbosity == "low":
        handler.addFilter(_LifecycleFilter())
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def log_event(logger: logging.Logger, event: str, **fields: object) -> None:
    logger.info(format_event(event, fields), extra={"event": event})


def log_error_event(logger: logging.Logger, event: str, **fields: object) -> None:
    logger.error(format_event(event, fields), extra={"event": event})


def format_event(event: str, fields: Mapping[str, object]) -> str:
    rendered = [f"event={_render_value(event)}"]
    rendered.extend(f"{key}={_render_value(fields[key])}" for key in sorted(fields))
    return " ".join(rendered)


def _render_value(value: object) -> str:
    text = _as_text(value)
    if "=" in text or any(ch.isspace() for ch in text):
        return json.dumps(text)
    return text


def _as_text(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, str):
        compact = " ".join(value.split())
        if not compact:
            return "<empty>"
        if len(compact) > _FIELD_PREVIEW_LEN:
            return f"{compact[:_FIELD_PREVIEW_LEN]}..."
        return compact
    if isinstance(value, tuple | list | frozenset | set):
        return ",".join(_as_text(item) for item in value) or "<empty>"
    return f"<{type(value).__name__}>"


def _parse_verbosity(verbose: bool | str | None) -> Verbosity | None:
    if verbose is None or verbose is False:
        return None
    if verbose is True:
        return "high"
    mode = verbose.strip().lower()
    if mode not in ("low", "high"):
        raise ValueError(f"Unsupported verbose mode: {verbose!r}")
    return cast(Verbosity, mode)


class _LifecycleFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True
        return getattr(record, "event", None) in LIFECYCLE_EVENTS
