"""Workflow file synchronization logic for topic-workflow-sync.

This module reconciles a local directory of workflow files into the
``.github/workflows`` directory of every repository discovered by topic,
creating or updating files only when their content differs.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import SyncConfig
from .discovery import RepositoryDiscoverer
from .errors import WorkflowSyncError
from .github import GitHubClient

logger = logging.getLogger(__name__)

WORKFLOWS_PATH = ".github/workflows"


class SyncOutcome(Enum):
    """What happened to a single file in a single repository."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


def build_permalink(
    server_url: str,
    repository: str,
    file_path: str,
    commit_sha: Optional[str] = None,
) -> str:
    """Build a link to the local workflow file at the current revision.

    Args:
        server_url: GitHub server URL, e.g. https://github.com
        repository: Repository in format 'owner/repo'
        file_path: Path of the file within that repository
        commit_sha: Commit to pin the link to; HEAD when not available

    Returns:
        Blob URL for the file
    """
    ref = commit_sha or "HEAD"
    return f"{server_url.rstrip('/')}/{repository}/blob/{ref}/{file_path.lstrip('/')}"


def build_commit_message(prefix: str, action: str, filename: str, permalink: str) -> str:
    """Build the commit message for a create or update.

    >>> build_commit_message("[Sync]", "Create", "ci.yml", "https://x")
    '[Sync] Create ci.yml.\\n\\nSynced from https://x'
    """
    return f"{prefix.strip()} {action} {filename}.\n\nSynced from {permalink}".strip()


class RepositorySyncResult:
    """Result of reconciling the workflow directory into one repository.

    Files are processed in order and processing stops at the first error, so
    ``outcomes`` holds every file handled before the failure.
    """

    def __init__(self, repository: str, dry_run: bool = False):
        """Initialize empty repository result."""
        self.repository = repository
        self.dry_run = dry_run
        self.outcomes: list[tuple[str, SyncOutcome]] = []
        self.error: Optional[WorkflowSyncError] = None
        self.failed_file: Optional[str] = None

    def add_outcome(self, filename: str, outcome: SyncOutcome) -> None:
        """Record the outcome of one file."""
        self.outcomes.append((filename, outcome))

    def add_failure(self, filename: str, error: WorkflowSyncError) -> None:
        """Record the error that aborted this repository."""
        self.failed_file = filename
        self.error = error

    def count(self, outcome: SyncOutcome) -> int:
        """Number of files with the given outcome."""
        return sum(1 for _, o in self.outcomes if o is outcome)

    @property
    def is_success(self) -> bool:
        """True if every file was reconciled."""
        return self.error is None

    def __str__(self) -> str:
        """String representation of repository results."""
        status = "ok" if self.is_success else f"failed at {self.failed_file}"
        return (
            f"{self.repository}: {self.count(SyncOutcome.CREATED)} created, "
            f"{self.count(SyncOutcome.UPDATED)} updated, "
            f"{self.count(SyncOutcome.SKIPPED)} skipped ({status})"
        )


class RunResult:
    """Result of a complete run across all discovered repositories."""

    def __init__(self, dry_run: bool = False):
        """Initialize empty run result."""
        self.dry_run = dry_run
        self.repositories: list[str] = []
        self.repository_results: list[RepositorySyncResult] = []
        self.discovery_error: Optional[WorkflowSyncError] = None

    def add_repository_result(self, result: RepositorySyncResult) -> None:
        """Record the result of one repository."""
        self.repository_results.append(result)

    @property
    def failed_repositories(self) -> list[RepositorySyncResult]:
        """Repository results that ended in an error."""
        return [r for r in self.repository_results if not r.is_success]

    @property
    def error(self) -> Optional[WorkflowSyncError]:
        """The last error observed during the run, if any."""
        if self.discovery_error is not None:
            return self.discovery_error
        failed = self.failed_repositories
        return failed[-1].error if failed else None

    @property
    def is_success(self) -> bool:
        """True if discovery and every repository sync succeeded."""
        return self.error is None

    def count(self, outcome: SyncOutcome) -> int:
        """Number of files with the given outcome across repositories."""
        return sum(r.count(outcome) for r in self.repository_results)

    @property
    def changed_count(self) -> int:
        """Number of files created or updated."""
        return self.count(SyncOutcome.CREATED) + self.count(SyncOutcome.UPDATED)

    def __str__(self) -> str:
        """String representation of run results."""
        return (
            f"{len(self.repository_results)}/{len(self.repositories)} repositories processed, "
            f"{self.count(SyncOutcome.CREATED)} created, "
            f"{self.count(SyncOutcome.UPDATED)} updated, "
            f"{self.count(SyncOutcome.SKIPPED)} skipped, "
            f"{len(self.failed_repositories)} failed"
        )


class WorkflowSyncer:
    """Reconciles a local workflow directory into a single repository."""

    def __init__(
        self,
        github_client: GitHubClient,
        server_url: str = "https://github.com",
        commit_sha: Optional[str] = None,
        source_repository: Optional[str] = None,
        workspace: Optional[Path] = None,
    ):
        """Initialize the workflow syncer.

        Args:
            github_client: Client used for every remote call
            server_url: GitHub server URL used in permalinks
            commit_sha: Commit the local files were taken from, if known
            source_repository: Repository the local files live in, in format
                'owner/repo'; the target repository is linked when unset
            workspace: Root the local file paths in permalinks are made
                relative to (default: current working directory)
        """
        self.github_client = github_client
        self.server_url = server_url
        self.commit_sha = commit_sha
        self.source_repository = source_repository
        self.workspace = workspace

    def sync(
        self,
        repository: str,
        owner: str,
        directory: Path,
        prefix: str = "",
        dry_run: bool = False,
    ) -> RepositorySyncResult:
        """Reconcile every file of ``directory`` into one repository.

        Files are handled in directory-listing order. The first file that
        cannot be looked up or written stops the repository; the error is kept
        on the returned result with its original type.

        Args:
            repository: Name of the target repository
            owner: Login of the repository owner
            directory: Local directory holding the workflow files
            prefix: Optional commit message prefix
            dry_run: If True, look up remote files but do not write

        Returns:
            Per-file outcomes for this repository
        """
        result = RepositorySyncResult(repository, dry_run=dry_run)
        full_name = f"{owner}/{repository}"

        logger.info(f"Syncing workflows from {directory} to {full_name}")

        for local_path in directory.iterdir():
            if not local_path.is_file():
                continue
            filename = local_path.name

            try:
                outcome = self._sync_file(
                    local_path, repository, owner, prefix, dry_run
                )
            except WorkflowSyncError as e:
                logger.error(f"✗ Error syncing {filename} to {repository}: {e}")
                result.add_failure(filename, e)
                break

            result.add_outcome(filename, outcome)

        return result

    def _source_path(self, local_path: Path) -> str:
        """Path of a local file as it appears in the source repository."""
        root = (self.workspace or Path.cwd()).resolve()
        try:
            return local_path.resolve().relative_to(root).as_posix()
        except ValueError:
            # Outside the workspace; keep the path as given
            return local_path.as_posix()

    def _sync_file(
        self,
        local_path: Path,
        repository: str,
        owner: str,
        prefix: str,
        dry_run: bool,
    ) -> SyncOutcome:
        filename = local_path.name
        content = local_path.read_bytes()
        remote_path = f"{WORKFLOWS_PATH}/{filename}"
        permalink = build_permalink(
            self.server_url,
            self.source_repository or f"{owner}/{repository}",
            self._source_path(local_path),
            self.commit_sha,
        )

        existing = self.github_client.get_file(owner, repository, remote_path)

        if existing is None:
            action, outcome, sha = "Create", SyncOutcome.CREATED, None
        elif existing.content == content:
            logger.info(f"✓ Skipped syncing {filename} to {repository} as content matches.")
            return SyncOutcome.SKIPPED
        else:
            action, outcome, sha = "Update", SyncOutcome.UPDATED, existing.sha

        if dry_run:
            logger.info(f"Would {action.lower()} {remote_path} in {owner}/{repository}")
            return outcome

        message = build_commit_message(prefix, action, filename, permalink)
        self.github_client.put_file(
            owner, repository, remote_path, message, content, sha=sha
        )

        logger.info(f"✓ Successfully synced {filename} to {repository} ({outcome.value})")
        return outcome


class TopicWorkflowSync:
    """Main synchronization orchestrator.

    Discovers the repositories tagged with the configured topic and syncs the
    workflow directory into each of them, one repository at a time.
    """

    def __init__(
        self,
        config: SyncConfig,
        github_client: Optional[GitHubClient] = None,
        timeout: int = 30,
    ):
        """Initialize the orchestrator.

        Args:
            config: Resolved run configuration
            github_client: Optional GitHub client instance
            timeout: Request timeout in seconds
        """
        self.config = config
        self.github_client = github_client or GitHubClient(
            token=config["token"], timeout=timeout, api_url=config["api_url"]
        )
        self._owns_client = github_client is None
        self.discoverer = RepositoryDiscoverer(self.github_client)
        self.syncer = WorkflowSyncer(
            self.github_client,
            server_url=config["server_url"],
            commit_sha=config["commit_sha"],
            source_repository=config["source_repository"],
            workspace=config["workspace"],
        )

    def run(self, dry_run: bool = False) -> RunResult:
        """Discover repositories and sync workflow files into each.

        Discovery failures end the run before any file is synced. A failed
        repository ends the run too, unless ``continue_on_error`` is set, in
        which case the remaining repositories are still processed.

        Args:
            dry_run: If True, only log what would be written

        Returns:
            Result object covering discovery and every repository processed
        """
        config = self.config
        result = RunResult(dry_run=dry_run)

        if dry_run:
            logger.info("DRY RUN MODE - No files will be written")

        try:
            result.repositories = self.discoverer.discover(
                config["owner"], config["topic"]
            )
        except WorkflowSyncError as e:
            result.discovery_error = e
            return result

        login = config["owner"]["login"]
        for repository in result.repositories:
            repo_result = self.syncer.sync(
                repository,
                login,
                config["directory"],
                config["prefix"],
                dry_run=dry_run,
            )
            result.add_repository_result(repo_result)
            logger.info(str(repo_result))

            if not repo_result.is_success and not config["continue_on_error"]:
                logger.error(f"Stopping after failure in {login}/{repository}")
                break

        logger.info(str(result))
        return result

    def close(self) -> None:
        """Clean up resources.

        Should be called when done using the orchestrator.
        """
        if self._owns_client:
            self.github_client.close()

    def __enter__(self) -> TopicWorkflowSync:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
