"""Configuration for an upload run."""

from pydantic import Field, SecretStr

from zephyr_upload.models.base import Model


class UploadConfig(Model):
    """Configuration for uploading test results to Zephyr Squad."""

    jira_endpoint: str = Field(..., description="URL of the Jira REST API")
    zephyr_endpoint: str = Field(
        ..., description="URL of the Zephyr Squad REST API on the Jira server"
    )
    project: str = Field(..., description="Jira project name")
    username: str = Field(..., description="Jira username")
    password: SecretStr = Field(..., description="Jira password or API token")
    version: str | None = Field(
        default=None,
        description="Project version name (None files the cycle as Unscheduled)",
    )
    components: frozenset[str] | None = Field(
        default=None,
        description="Components whose Test issues without a result are marked "
        "unexecuted",
    )
    epics: frozenset[str] | None = Field(
        default=None,
        description="Epics whose Test issues without a result are marked unexecuted "
        "(takes precedence over components)",
    )
