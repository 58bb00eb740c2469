"""Model for the test cycle an upload writes into."""

from collections.abc import Mapping
from dataclasses import dataclass

from zephyr_upload.models.result import Outcome

# Zephyr files cycles without a version under "Unscheduled".
UNSCHEDULED_VERSION_ID = "-1"


@dataclass(frozen=True, kw_only=True)
class Cycle:
    """A created Zephyr test cycle and the context needed to add executions."""

    project_id: str
    version_id: str
    cycle_id: str
    execution_statuses: Mapping[Outcome, int]
