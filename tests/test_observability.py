from __future__ import annotations

import io
import logging
import sys

import pytest

from autopr import observability
from autopr.observability import configure_logging, log_error_event, log_event


@pytest.fixture(autouse=True)
def restore_autopr_logger_state() -> None:
    logger = logging.getLogger("autopr")
    original_handlers = list(logger.handlers)
    original_level = logger.level
    original_propagate = logger.propagate
    try:
        yield
    finally:
        for handler in logger.handlers:
            if handler not in original_handlers:
                handler.close()
        logger.handlers.clear()
        for handler in original_handlers:
            logger.addHandler(handler)
        logger.setLevel(original_level)
        logger.propagate = original_propagate


def test_configure_logging_quiet_mode_is_idempotent() -> None:
    configure_logging(verbose=False)
    logger = logging.getLogger("autopr")
    assert logger.propagate is False
    assert logger.level > logging.CRITICAL
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.NullHandler)

    configure_logging(verbose=None)
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.NullHandler)


def test_configure_logging_verbose_mode_is_idempotent() -> None:
    configure_logging(verbose=True)
    logger = logging.getLogger("autopr")
    assert logger.propagate is False
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    handler = logger.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stderr

    configure_logging(verbose="high")
    assert len(logger.handlers) == 1


def test_configure_logging_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError, match="Unsupported verbose mode"):
        configure_logging(verbose="loud")


def test_log_event_formats_sorted_fields() -> None:
    stream = io.StringIO()
    configure_logging(verbose="high", stream=stream)

    log_event(
        logging.getLogger("autopr.tests"),
        "github_pr_updated",
        pr_url="https://github.com/acme/widgets/pull/1",
        label_count=None,
        draft=False,
        labels=("deps", "bot"),
        title="Bump two deps",
        extra=object(),
    )

    line = stream.getvalue().strip()
    message = line.split(" autopr.tests ", 1)[1]
    assert message == (
        "event=github_pr_updated draft=false extra=<object> label_count=null "
        'labels=deps,bot pr_url=https://github.com/acme/widgets/pull/1 title="Bump two deps"'
    )


def test_low_verbosity_keeps_lifecycle_events_and_errors() -> None:
    stream = io.StringIO()
    configure_logging(verbose="low", stream=stream)
    logger = logging.getLogger("autopr.tests")

    log_event(logger, "github_read", endpoint="repository")
    log_event(logger, "github_pr_created", pr_number=7)
    log_event(logger, "pull_request_not_needed", status="identical")
    log_error_event(logger, "automerge_failed", error="boom")
    logger.info("free form text")

    output = stream.getvalue()
    assert "event=github_read" not in output
    assert "event=github_pr_created pr_number=7" in output
    assert "event=pull_request_not_needed status=identical" in output
    assert "ERROR autopr.tests event=automerge_failed error=boom" in output
    assert "free form text" not in output


def test_render_value_truncates_and_quotes() -> None:
    rendered = observability._render_value("x" * 200)
    assert rendered.endswith("...")
    assert len(rendered) == observability._FIELD_PREVIEW_LEN + 3

    assert observability._render_value("") == "<empty>"
    assert observability._render_value(()) == "<empty>"
    assert observability._render_value("a=b") == '"a=b"'
    assert observability._render_value(["a b", "c"]) == '"a b,c"'
    assert observability._render_value(1.5) == "1.5"


def test_low_verbosity_ignores_plain_messages_that_look_like_events() -> None:
    stream = io.StringIO()
    configure_logging(verbose="low", stream=stream)
    logger = logging.getLogger("autopr.tests")

    logger.info("event=github_pr_created pr_number=1")
    logger.warning("event=unexpected_shape")

    output = stream.getvalue()
    assert "github_pr_created" not in output
    assert "WARNING autopr.tests event=unexpected_shape" in output


def test_format_event_without_fields() -> None:
    assert observability.format_event("clean_nothing_to_do", {}) == "event=clean_nothing_to_do"
