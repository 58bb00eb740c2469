"""Jira and Zephyr Squad gateway module."""

from zephyr_upload.gateway.connection import JiraConnection
from zephyr_upload.gateway.models import Issue

__all__ = ["Issue", "JiraConnection"]
