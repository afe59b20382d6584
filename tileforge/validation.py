"""Tool payload feedback.

A rejected payload is reported to the agent as one line per pydantic issue,
so a single retry can fix every bad field::

    Error: invalid arguments for box.
    - width: Input should be a valid integer [type=int_parsing] | received='wide'
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ValidationError

PREVIEW_LIMIT = 80


class ValidationFeedback(BaseModel):
    """Issues found in one tool payload."""

    tool_name: str
    issues: List[str]

    @property
    def text(self) -> str:
        header = f"Error: invalid arguments for {self.tool_name}."
        return "\n".join([header] + [f"- {issue}" for issue in self.issues])


def preview_input(value: Any, *, limit: int = PREVIEW_LIMIT) -> str:
    """``repr`` of a rejected value, cut to ``limit`` characters."""

    if value is None:
        return "null"
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


def describe_issue(issue: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in issue["loc"]) or "root"
    line = f"{location}: {issue['msg']} [type={issue['type']}]"
    if "input" in issue:
        line += f" | received={preview_input(issue['input'])}"
    return line


def validation_feedback(error: ValidationError, *, tool_name: str = "tool") -> ValidationFeedback:
    issues = [describe_issue(issue) for issue in error.errors(include_url=False)]
    return ValidationFeedback(
        tool_name=tool_name,
        issues=issues or ["root: arguments did not match the expected schema"],
    )
