"""
JTL-Wawi REST API client package.
"""

from .client import JtlApiClient, WorkflowEvent

__all__ = ["JtlApiClient", "WorkflowEvent"]
