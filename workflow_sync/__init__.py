"""Topic Workflow Sync - propagate workflow files across a repository fleet.

This package discovers the repositories of a user or organization tagged with
a topic and syncs a local directory of workflow files into each of them.
"""

from .config import OwnerIdentity, SyncConfig, build_config, load_config_file
from .discovery import RepositoryDiscoverer
from .errors import (
    ConfigurationError,
    RemoteFetchError,
    RemoteWriteError,
    WorkflowSyncError,
)
from .github import GitHubClient
from .sync import (
    RepositorySyncResult,
    RunResult,
    SyncOutcome,
    TopicWorkflowSync,
    WorkflowSyncer,
)

__version__ = "1.0.0"

__all__ = [
    "OwnerIdentity",
    "SyncConfig",
    "build_config",
    "load_config_file",
    "RepositoryDiscoverer",
    "ConfigurationError",
    "RemoteFetchError",
    "RemoteWriteError",
    "WorkflowSyncError",
    "GitHubClient",
    "RepositorySyncResult",
    "RunResult",
    "SyncOutcome",
    "TopicWorkflowSync",
    "WorkflowSyncer",
]
