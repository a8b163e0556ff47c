from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import json
import logging
from typing import cast

from autopr.observability import log_event
from autopr.shell import CommandError, preview, run_command


LOGGER = logging.getLogger("autopr.graphql_client")


class GitHubTransportError(RuntimeError):
    """A GraphQL query or mutation could not be completed."""

    def __init__(self, message: str, *, error_types: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.error_types = error_types


class GraphAPIClient(ABC):
    @abstractmethod
    def query(self, document: str, variables: dict[str, object]) -> dict[str, object]:
        """Run a GraphQL query and return its `data` object."""

    @abstractmethod
    def mutate(self, document: str, mutation_input: dict[str, object]) -> dict[str, object]:
        """Run a mutation with `mutation_input` bound to `$input`."""


@dataclass(frozen=True)
class GhGraphQLClient(GraphAPIClient):
    """GraphQL transport backed by `gh api graphql`.

    Authentication, rate limiting and host selection are left to the gh CLI.
    """

    hostname: str | None = None

    def query(self, document: str, variables: dict[str, object]) -> dict[str, object]:
        return self._execute(document, variables)

    def mutate(self, document: str, mutation_input: dict[str, object]) -> dict[str, object]:
        return self._execute(document, {"input": mutation_input})

    def _execute(self, document: str, variables: dict[str, object]) -> dict[str, object]:
        cmd = ["gh", "api", "graphql"]
        if self.hostname:
            cmd.extend(["--hostname", self.hostname])
        cmd.extend(["--input", "-"])
        request = json.dumps({"query": document, "variables": variables})
        operation = _operation_name(document)

        try:
            result = run_command(cmd, input_text=request)
        except CommandError as exc:
            raise GitHubTransportError(str(exc)) from exc

        try:
            payload = json.loads(result.stdout) if result.stdout.strip() else None
        except json.JSONDecodeError:
            payload = None

        payload_obj = as_object_dict(payload)
        if payload_obj is None:
            log_event(
                LOGGER,
                "github_graphql_failed",
                operation=operation,
                exit_code=result.returncode,
                stderr=preview(result.stderr),
            )
            raise GitHubTransportError(
                f"GitHub GraphQL request {operation} failed with exit code "
                f"{result.returncode}: {result.stderr.strip() or '<empty>'}"
            )

        errors = _parse_errors(payload_obj.get("errors"))
        if errors:
            messages = "; ".join(message for message, _ in errors)
            error_types = tuple(error_type for _, error_type in errors if error_type)
            log_event(
                LOGGER,
                "github_graphql_failed",
                operation=operation,
                error_types=error_types,
                error=messages,
            )
            raise GitHubTransportError(
                f"GitHub GraphQL request {operation} failed: {messages}",
                error_types=error_types,
            )

        if not result.ok:
            raise GitHubTransportError(
                f"GitHub GraphQL request {operation} failed with exit code "
                f"{result.returncode}: {result.stderr.strip() or '<empty>'}"
            )

        data = as_object_dict(payload_obj.get("data"))
        if data is None:
            raise GitHubTransportError(
                f"Unexpected GitHub GraphQL response for {operation}: missing data"
            )
        return data


def _operation_name(document: str) -> str:
    tokens = document.split()
    for index, token in enumerate(tokens[:-1]):
        if token in {"query", "mutation"}:
            return tokens[index + 1].split("(", 1)[0]
    return "<anonymous>"


def _parse_errors(value: object) -> list[tuple[str, str]]:
    if not isinstance(value, list):
        return []
    errors: list[tuple[str, str]] = []
    for item in value:
        item_obj = as_object_dict(item)
        if item_obj is None:
            continue
        message = item_obj.get("message")
        error_type = item_obj.get("type")
        errors.append(
            (
                message if isinstance(message, str) else "<no message>",
                error_type if isinstance(error_type, str) else "",
            )
        )
    return errors


def as_object_dict(value: object) -> dict[str, object] | None:
    if not isinstance(value, dict):
        return None
    if not all(isinstance(key, str) for key in value.keys()):
        return None
    return cast(dict[str, object], value)
