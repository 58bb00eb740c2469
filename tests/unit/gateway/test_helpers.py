"""Tests for the request building and response picking helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from zephyr_upload.gateway.connection import (
    basic_authorization,
    component_query,
    cycle_day,
    cycle_name,
    epic_query,
    find_option_value,
    first_execution,
    linked_test_keys,
    remove_trailing_slash,
)
from zephyr_upload.gateway.models import Issue, LabeledOption
from zephyr_upload.testing import payloads


def test_basic_authorization() -> None:
    """Encodes username and password as Basic credentials."""
    assert basic_authorization("user", "secret") == "Basic dXNlcjpzZWNyZXQ="


def test_cycle_name_uses_utc_with_milliseconds() -> None:
    """Names are ISO timestamps in UTC with millisecond precision."""
    now = datetime(2024, 1, 5, 12, 11, 12, 345678, tzinfo=timezone(timedelta(hours=2)))

    assert cycle_name(now) == "2024-01-05T10:11:12.345Z"


def test_cycle_day() -> None:
    """Days are not zero padded, months are abbreviated."""
    assert cycle_day(datetime(2024, 1, 5, tzinfo=timezone.utc)) == "5/Jan/24"
    assert cycle_day(datetime(2023, 11, 25, tzinfo=timezone.utc)) == "25/Nov/23"


def test_component_query_sorts_names() -> None:
    """Component names are listed in a stable order."""
    assert (
        component_query({"billing", "auth"})
        == "component in (auth,billing) AND type = Test"
    )


def test_epic_query_selects_stories() -> None:
    """Epic queries select the stories of the epics."""
    assert (
        epic_query({"PROJ-200", "PROJ-100"})
        == '"epic link" in (PROJ-100,PROJ-200) AND type = Story'
    )


@pytest.mark.parametrize(
    ("label", "expected"),
    [("Project", "1"), ("project", None), ("Other", "3"), ("Missing", None)],
)
def test_find_option_value(label: str, expected: str | None) -> None:
    """Labels match exactly and the first match wins."""
    options = [
        LabeledOption(label="Project", value="1"),
        LabeledOption(label="Project", value="2"),
        LabeledOption(label="Other", value="3"),
    ]

    assert find_option_value(options, label) == expected


def test_first_execution() -> None:
    """Picks the execution out of a creation response keyed by id."""
    execution = first_execution(payloads.created_execution(execution_id=1001))

    assert execution is not None
    assert execution.id == 1001


@pytest.mark.parametrize(
    "executions",
    [{}, {"1001": "not an object"}, {"1001": {"issueKey": "PROJ-1"}}],
)
def test_first_execution_without_usable_entry(executions: dict) -> None:
    """Responses without an execution carrying an id yield nothing."""
    assert first_execution(executions) is None


def test_linked_test_keys() -> None:
    """Only outward links to Test issues count."""
    story = Issue.model_validate(
        payloads.search_stories(
            {
                "PROJ-10": [
                    payloads.issue_link("PROJ-1"),
                    payloads.issue_link("PROJ-2", issue_type_name="Bug"),
                    {"id": "20001", "inwardIssue": {"key": "PROJ-3"}},
                ]
            }
        )["issues"][0]
    )

    assert linked_test_keys(story) == {"PROJ-1"}


@pytest.mark.parametrize(
    ("endpoint", "expected"),
    [
        ("http://jira.test/rest/api/2/", "http://jira.test/rest/api/2"),
        ("http://jira.test/rest/api/2", "http://jira.test/rest/api/2"),
    ],
)
def test_remove_trailing_slash(endpoint: str, expected: str) -> None:
    """Strips a trailing slash so paths can be appended."""
    assert remove_trailing_slash(endpoint) == expected
