"""Exception types raised by topic-workflow-sync.

Each error kind is terminal for the unit of work it occurs in: configuration
errors abort a run before discovery, fetch errors abort discovery (or the
current file's reconciliation) and write errors abort the remaining files of
the current repository.
"""

from __future__ import annotations

from typing import Optional


class WorkflowSyncError(RuntimeError):
    """Base class for all topic-workflow-sync errors."""


class ConfigurationError(WorkflowSyncError):
    """Raised when the run configuration is missing or inconsistent."""


class RemoteError(WorkflowSyncError):
    """Raised when the GitHub API returns a non-success response."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class RemoteFetchError(RemoteError):
    """Raised when listing repositories, topics or file contents fails."""


class RemoteWriteError(RemoteError):
    """Raised when creating or updating a file fails."""
