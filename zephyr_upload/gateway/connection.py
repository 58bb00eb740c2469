"""Jira and Zephyr Squad REST operations used by the uploader."""

import base64
import logging
from collections.abc import AsyncGenerator, Callable, Collection, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

import aiohttp
from pydantic import TypeAdapter, ValidationError

from zephyr_upload.config import UploadConfig
from zephyr_upload.gateway.models import (
    CreatedCycle,
    Execution,
    ExecutionStatus,
    Issue,
    LabeledOption,
    ProjectList,
    SearchResults,
    TestIssueType,
    VersionBoard,
)
from zephyr_upload.http import request_json
from zephyr_upload.models.cycle import UNSCHEDULED_VERSION_ID, Cycle
from zephyr_upload.models.result import Outcome, TestResult

log = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_TO_OUTCOME: Mapping[str, Outcome] = {
    "PASS": "success",
    "FAIL": "failed",
    "UNEXECUTED": "not_executed",
    "WIP": "in_progress",
}

TEST_ISSUE_TYPE_NAME = "Test"

_EXECUTION_STATUSES = TypeAdapter(list[ExecutionStatus])
_CREATED_EXECUTIONS = TypeAdapter(dict[str, Any])


def basic_authorization(username: str, password: str) -> str:
    """Build the value of a Basic Authorization header."""
    credentials = f"{username}:{password}".encode()
    return f"Basic {base64.b64encode(credentials).decode('ascii')}"


def cycle_name(now: datetime) -> str:
    """Name a cycle after its creation instant, e.g. 2024-01-05T10:11:12.345Z."""
    utc = now.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def cycle_day(now: datetime) -> str:
    """Format a cycle start or end date the way Zephyr expects, e.g. 5/Jan/24."""
    return f"{now.day}/{now.strftime('%b')}/{now.strftime('%y')}"


def component_query(components: Collection[str]) -> str:
    """JQL selecting the Test issues of the given components."""
    return f"component in ({','.join(sorted(components))}) AND type = Test"


def epic_query(epics: Collection[str]) -> str:
    """JQL selecting the stories of the given epics."""
    return f'"epic link" in ({",".join(sorted(epics))}) AND type = Story'


def find_option_value(options: Collection[LabeledOption], label: str) -> str | None:
    """Return the value of the first option with exactly the given label."""
    return next(
        (
            option.value
            for option in options
            if option.label == label and option.value is not None
        ),
        None,
    )


def first_execution(executions: Mapping[str, Any]) -> Execution | None:
    """Pick the execution object out of an execution creation response.

    Zephyr answers with an object keyed by execution id; only the first entry is
    used and it must carry an id.
    """
    first = next(iter(executions.values()), None)
    if not isinstance(first, dict):
        return None
    try:
        return Execution.model_validate(first)
    except ValidationError:
        return None


def linked_test_keys(story: Issue) -> set[str]:
    """Keys of the Test issues a story links to outward."""
    return {
        link.outward_issue.key
        for link in story.fields.issuelinks
        if link.outward_issue is not None
        and link.outward_issue.key is not None
        and link.outward_issue.type_name == TEST_ISSUE_TYPE_NAME
    }


def remove_trailing_slash(endpoint: str) -> str:
    """Strip one trailing slash from an endpoint URL."""
    return endpoint.removesuffix("/")


def utcnow() -> datetime:
    """Return the current time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class JiraConnection:
    """Typed operations against Jira and the Zephyr Squad API.

    No operation raises on a remote failure. A failed request, a status other
    than 200 or a body that does not have the expected shape all come back as
    None, and callers decide whether that aborts the upload or skips one result.
    """

    jira_endpoint: str
    zephyr_endpoint: str
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: UploadConfig
    ) -> AsyncGenerator["JiraConnection", None]:
        """Create connection with managed session lifecycle."""
        headers = {
            "Authorization": basic_authorization(
                config.username, config.password.get_secret_value()
            ),
        }
        async with aiohttp.ClientSession(headers=headers) as session:
            yield cls(
                jira_endpoint=remove_trailing_slash(config.jira_endpoint),
                zephyr_endpoint=remove_trailing_slash(config.zephyr_endpoint),
                session=session,
            )

    async def _fetch(
        self,
        validate: Callable[[Any], T],
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Any = None,
    ) -> T | None:
        response = await request_json(
            self.session, method, url, params=params, payload=payload
        )
        if not response.ok or response.json is None:
            return None

        try:
            return validate(response.json)
        except ValidationError as e:
            log.warning("Unexpected response from %s %s: %s", method, url, e)
            return None

    def _jira(self, path: str) -> str:
        return f"{self.jira_endpoint}{path}"

    def _zephyr(self, path: str) -> str:
        return f"{self.zephyr_endpoint}{path}"

    async def get_execution_statuses(self) -> Mapping[Outcome, int] | None:
        """Fetch the execution status vocabulary and map it to outcomes.

        Statuses other than PASS, FAIL, UNEXECUTED and WIP are ignored. When one
        of those four is missing the vocabulary is unusable and None is returned.
        """
        statuses = await self._fetch(
            _EXECUTION_STATUSES.validate_python,
            "GET",
            self._zephyr("/util/testExecutionStatus"),
        )
        if statuses is None:
            return None

        mapping: dict[Outcome, int] = {
            STATUS_TO_OUTCOME[status.name]: status.id
            for status in statuses
            if status.name in STATUS_TO_OUTCOME
        }
        if len(mapping) != len(STATUS_TO_OUTCOME):
            missing = sorted(
                name
                for name, outcome in STATUS_TO_OUTCOME.items()
                if outcome not in mapping
            )
            log.warning("Execution statuses missing from Zephyr: %s", missing)
            return None

        return mapping

    async def get_project_id(self, name: str) -> str | None:
        """Find the id of the project labeled ``name``."""
        projects = await self._fetch(
            ProjectList.model_validate, "GET", self._zephyr("/util/project-list")
        )
        if projects is None:
            return None

        return find_option_value(projects.options, name)

    async def get_version_id(self, project_id: str, name: str | None) -> str | None:
        """Find the id of a project version by name.

        Released versions are searched before unreleased ones. Without a name the
        unscheduled version id is returned and nothing is requested.
        """
        if name is None:
            return UNSCHEDULED_VERSION_ID

        versions = await self._fetch(
            VersionBoard.model_validate,
            "GET",
            self._zephyr("/util/versionBoard-list"),
            params={"projectId": project_id},
        )
        if versions is None:
            return None

        return find_option_value(
            [*versions.released_versions, *versions.unreleased_versions], name
        )

    async def create_cycle(
        self, project_id: str, version_id: str, now: datetime | None = None
    ) -> str | None:
        """Create a test cycle named after the current time and return its id.

        The name is in UTC, the start and end dates are the local day.
        """
        now = now or utcnow()
        today = cycle_day(now.astimezone())
        payload = {
            "name": cycle_name(now),
            "projectId": project_id,
            "versionId": version_id,
            "startDate": today,
            "endDate": today,
        }

        cycle = await self._fetch(
            CreatedCycle.model_validate,
            "POST",
            self._zephyr("/cycle"),
            payload=payload,
        )
        return cycle.id if cycle else None

    async def create_cycle_from_names(
        self, project: str, version: str | None
    ) -> Cycle | None:
        """Resolve everything a cycle needs and create it.

        The steps run in order and each one only when the previous succeeded:
        execution statuses, project id, version id, cycle creation.
        """
        statuses = await self.get_execution_statuses()
        if statuses is None:
            log.error("Could not load the Zephyr execution statuses")
            return None

        project_id = await self.get_project_id(project)
        if project_id is None:
            log.error("Project %s not found", project)
            return None

        version_id = await self.get_version_id(project_id, version)
        if version_id is None:
            log.error("Version %s not found in project %s", version, project)
            return None

        cycle_id = await self.create_cycle(project_id, version_id)
        if cycle_id is None:
            log.error("Could not create a test cycle in project %s", project)
            return None

        return Cycle(
            project_id=project_id,
            version_id=version_id,
            cycle_id=cycle_id,
            execution_statuses=statuses,
        )

    async def get_issue(self, key: str) -> Issue | None:
        """Fetch an issue with only its id, key and type."""
        return await self._fetch(
            Issue.model_validate,
            "GET",
            self._jira(f"/issue/{key}"),
            params={"fields": "id,key,issuetype"},
        )

    async def get_test_issue_type(self) -> str | None:
        """Fetch the id of the issue type Zephyr uses for tests."""
        issue_type = await self._fetch(
            TestIssueType.model_validate,
            "GET",
            self._zephyr("/util/zephyrTestIssueType"),
        )
        return issue_type.testcase_issue_type_id if issue_type else None

    async def get_test_issue(self, key: str) -> Issue | None:
        """Fetch an issue for uploading, provided Zephyr also has a test issue type.

        The issue's own type is not checked.
        """
        issue = await self.get_issue(key)
        if issue is None:
            return None

        if await self.get_test_issue_type() is None:
            return None

        return issue

    async def create_execution(
        self, cycle: Cycle, issue_id: str, result: TestResult
    ) -> int | None:
        """Add an execution for an issue to a cycle and record the result in it.

        This takes two calls: one creating the execution and one executing it with
        the status for the result's outcome and the result message as comment.
        """
        created = await self._fetch(
            _CREATED_EXECUTIONS.validate_python,
            "POST",
            self._zephyr("/execution"),
            payload={
                "projectId": cycle.project_id,
                "versionId": cycle.version_id,
                "issueId": issue_id,
                "cycleId": cycle.cycle_id,
            },
        )
        execution = first_execution(created) if created else None
        if execution is None:
            return None

        payload = execution.model_dump(mode="json") | {
            "status": str(cycle.execution_statuses[result.outcome]),
        }
        if result.message is not None:
            payload["comment"] = result.message

        executed = await self._fetch(
            Execution.model_validate,
            "PUT",
            self._zephyr(f"/execution/{execution.id}/execute"),
            payload=payload,
        )
        return executed.id if executed else None

    async def get_test_issue_keys_for_components(
        self, components: Collection[str]
    ) -> set[str] | None:
        """Fetch the keys of all Test issues of the given components."""
        results = await self._fetch(
            SearchResults.model_validate,
            "GET",
            self._jira("/search"),
            params={"fields": "key", "jql": component_query(components)},
        )
        if results is None:
            return None

        return {issue.key for issue in results.issues if issue.key is not None}

    async def get_test_issue_keys_for_epics(
        self, epics: Collection[str]
    ) -> set[str] | None:
        """Fetch the keys of all Test issues linked from the stories of the epics.

        Jira records epic membership on stories, so tests are found through the
        outward links of each story in the epics.
        """
        results = await self._fetch(
            SearchResults.model_validate,
            "GET",
            self._jira("/search"),
            params={"fields": "issuelinks", "jql": epic_query(epics)},
        )
        if results is None:
            return None

        return {key for story in results.issues for key in linked_test_keys(story)}
