"""Models for normalized test results."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

Outcome = Literal["success", "failed", "not_executed", "in_progress"]


@dataclass(frozen=True, kw_only=True)
class TestResult:
    """Outcome of one test invocation, keyed by the Jira issue it belongs to.

    The key is already normalized (``PROJ-123``); results whose test name did not
    carry a key never become a TestResult.
    """

    __test__ = False

    key: str
    outcome: Outcome
    message: str | None = None
    duration: timedelta | None = None
