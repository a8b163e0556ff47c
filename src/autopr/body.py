from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Final

from autopr.reports import merge_reports


_FOOTER: Final[str] = """<table>
  <tr>
    <td>
      <p>Created automatically by autopr.</p>
    </td>
  </tr>
</table>"""


class BodyRenderer(ABC):
    @abstractmethod
    def generate(self, description: str, report: str) -> str:
        """Build a full pull request body from a description and report text."""

    @abstractmethod
    def merge(self, existing_body: str, new_report: str) -> str:
        """Fold a new report into the reports found in an existing body."""


class MarkdownBodyRenderer(BodyRenderer):
    """Pull request body: free-form description, action reports, then a footer."""

    def __init__(self, *, footer: str = _FOOTER) -> None:
        self.footer = footer

    def generate(self, description: str, report: str) -> str:
        sections = [text.strip() for text in (description, report) if text.strip()]
        if self.footer:
            sections.append(self.footer)
        return "\n\n".join(sections) + "\n"

    def merge(self, existing_body: str, new_report: str) -> str:
        return merge_reports(existing_body, new_report)
