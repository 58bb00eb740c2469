"""Pydantic models for Jira and Zephyr Squad API responses."""

from collections.abc import Sequence

from pydantic import ConfigDict, Field

from zephyr_upload.models.base import ApiModel


class ExecutionStatus(ApiModel):
    """An entry of the Zephyr execution status vocabulary."""

    id: int
    name: str


class LabeledOption(ApiModel):
    """A project or version option as listed by the Zephyr util endpoints."""

    label: str | None = None
    value: str | None = None


class ProjectList(ApiModel):
    """Response from the project list endpoint."""

    options: Sequence[LabeledOption] = ()


class VersionBoard(ApiModel):
    """Response from the version board endpoint."""

    released_versions: Sequence[LabeledOption] = Field(
        default=(), alias="releasedVersions"
    )
    unreleased_versions: Sequence[LabeledOption] = Field(
        default=(), alias="unreleasedVersions"
    )


class CreatedCycle(ApiModel):
    """Response from cycle creation."""

    id: str


class TestIssueType(ApiModel):
    """Response from the Zephyr test issue type endpoint."""

    __test__ = False

    testcase_issue_type_id: str | None = Field(
        default=None, alias="testcaseIssueTypeId"
    )


class Execution(ApiModel):
    """An execution as returned by Zephyr.

    Unknown fields are kept because the execute call sends the object back.
    """

    model_config = ConfigDict(extra="allow")

    id: int


class IssueType(ApiModel):
    """The type of a Jira issue."""

    id: str | None = None
    name: str | None = None


class IssueLink(ApiModel):
    """A link from one Jira issue to another."""

    outward_issue: "Issue | None" = Field(default=None, alias="outwardIssue")


class IssueFields(ApiModel):
    """The subset of Jira issue fields this tool requests."""

    issuetype: IssueType | None = None
    issuelinks: Sequence[IssueLink] = ()


class Issue(ApiModel):
    """A Jira issue."""

    id: str | None = None
    key: str | None = None
    fields: IssueFields = Field(default_factory=IssueFields)

    @property
    def type_id(self) -> str | None:
        """Id of the issue type, if it was returned."""
        return self.fields.issuetype.id if self.fields.issuetype else None

    @property
    def type_name(self) -> str | None:
        """Name of the issue type, if it was returned."""
        return self.fields.issuetype.name if self.fields.issuetype else None


class SearchResults(ApiModel):
    """Response from a Jira JQL search."""

    issues: Sequence[Issue] = ()


IssueLink.model_rebuild()
IssueFields.model_rebuild()
Issue.model_rebuild()
SearchResults.model_rebuild()
