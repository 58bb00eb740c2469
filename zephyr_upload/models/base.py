"""Base model configuration for all data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(frozen=True)


class ApiModel(BaseModel):
    """Base model for Jira and Zephyr response bodies.

    Both APIs mix numeric and string identifiers for the same fields depending on
    the endpoint, so numbers are accepted wherever a string id is expected.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)
