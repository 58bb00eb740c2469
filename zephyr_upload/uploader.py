"""Upload of test results into a new Zephyr Squad test cycle."""

import logging
from collections.abc import Iterable, Set
from dataclasses import dataclass

from zephyr_upload.config import UploadConfig
from zephyr_upload.gateway.connection import JiraConnection
from zephyr_upload.models.cycle import Cycle
from zephyr_upload.models.result import TestResult

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class Uploader:
    """Uploads test results to Zephyr Squad in a generated test cycle.

    Results whose key is not a Jira issue are not uploaded, and each key is
    uploaded at most once per run. When epics or components are configured, the
    Test issues belonging to them that received no result are added to the cycle
    as unexecuted. Epics take precedence: with epics set, components are ignored.
    """

    connection: JiraConnection
    project: str
    version: str | None = None
    components: frozenset[str] | None = None
    epics: frozenset[str] | None = None

    @classmethod
    def from_config(
        cls, config: UploadConfig, connection: JiraConnection
    ) -> "Uploader":
        """Create an uploader for the project and filters in the configuration."""
        return cls(
            connection=connection,
            project=config.project,
            version=config.version,
            components=config.components,
            epics=config.epics,
        )

    async def upload(self, results: Iterable[TestResult]) -> bool:
        """Create a test cycle and put the results in it as test executions.

        Args:
            results: Normalized test results, dispatched in iteration order

        Returns:
            False if the test cycle could not be created, True otherwise. Results
            that could not be uploaded do not make the upload fail.

        """
        cycle = await self.connection.create_cycle_from_names(
            self.project, self.version
        )
        if cycle is None:
            log.error("Upload aborted, no test cycle for project %s", self.project)
            return False

        log.info(
            "Created test cycle %s (project=%s, version=%s)",
            cycle.cycle_id,
            cycle.project_id,
            cycle.version_id,
        )

        executed = await self.send_executions(cycle, results)
        log.info("Uploaded %d test result(s)", len(executed))

        await self.add_not_executed(cycle, executed)
        return True

    async def send_execution(self, cycle: Cycle, result: TestResult) -> str | None:
        """Upload one result and return its key if an execution was recorded."""
        issue = await self.connection.get_test_issue(result.key)
        if issue is None or issue.id is None:
            log.info("Skipping %s, no such test issue", result.key)
            return None

        execution_id = await self.connection.create_execution(cycle, issue.id, result)
        if execution_id is None:
            log.warning("Could not record execution for %s", result.key)
            return None

        log.debug(
            "Recorded %s for %s as execution %d",
            result.outcome,
            result.key,
            execution_id,
        )
        return result.key

    async def send_executions(
        self, cycle: Cycle, results: Iterable[TestResult]
    ) -> set[str]:
        """Upload results one after the other and return the keys recorded.

        Zephyr creates a new execution for every request, so executions are never
        created concurrently and a key that already got one is skipped.
        """
        executed: set[str] = set()

        for result in results:
            if result.key in executed:
                log.info("Skipping %s, already uploaded in this run", result.key)
                continue
            if (key := await self.send_execution(cycle, result)) is not None:
                executed.add(key)

        return executed

    async def candidate_keys(self) -> set[str] | None:
        """Fetch the keys of the Test issues covered by the epics or components."""
        if self.epics is not None:
            return await self.connection.get_test_issue_keys_for_epics(self.epics)

        if self.components is not None:
            return await self.connection.get_test_issue_keys_for_components(
                self.components
            )

        return None

    async def add_not_executed(self, cycle: Cycle, executed: Set[str]) -> None:
        """Add the Test issues that got no result to the cycle as unexecuted."""
        if self.epics is None and self.components is None:
            return

        keys = await self.candidate_keys()
        if keys is None:
            log.warning("Could not fetch the test issues to mark as unexecuted")
            return

        residual = sorted(keys - executed)
        log.info("Marking %d test issue(s) as unexecuted", len(residual))

        await self.send_executions(
            cycle, (TestResult(key=key, outcome="not_executed") for key in residual)
        )
