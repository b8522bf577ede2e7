"""Tests for sync module."""

import base64
import json
from pathlib import Path
from unittest.mock import Mock

import responses

from workflow_sync.config import SyncConfig
from workflow_sync.errors import RemoteFetchError, RemoteWriteError
from workflow_sync.github import GitHubClient
from workflow_sync.sync import (
    RepositorySyncResult,
    SyncOutcome,
    TopicWorkflowSync,
    WorkflowSyncer,
    build_commit_message,
    build_permalink,
)

API_URL = "https://api.github.com"


def contents_url(filename: str, repo: str = "service") -> str:
    return f"{API_URL}/repos/acme/{repo}/contents/.github/workflows/{filename}"


def put_bodies() -> list:
    return [json.loads(c.request.body) for c in responses.calls if c.request.method == "PUT"]


class TestCommitMessage:
    """Test cases for commit message and permalink construction."""

    def test_message_with_prefix(self) -> None:
        """Test a create message with a prefix."""
        message = build_commit_message("[Sync]", "Create", "ci.yml", "https://link")
        assert message == "[Sync] Create ci.yml.\n\nSynced from https://link"

    def test_message_without_prefix(self) -> None:
        """Test that an empty prefix leaves no leading space."""
        message = build_commit_message("", "Update", "ci.yml", "https://link")
        assert message == "Update ci.yml.\n\nSynced from https://link"

    def test_message_prefix_whitespace_trimmed(self) -> None:
        """Test that surrounding whitespace of the prefix is dropped."""
        message = build_commit_message("  chore:  ", "Create", "ci.yml", "https://link")
        assert message == "chore: Create ci.yml.\n\nSynced from https://link"

    def test_permalink_with_commit(self) -> None:
        """Test a permalink pinned to a commit."""
        link = build_permalink("https://github.com", "acme/workflows", "workflows/ci.yml", "abc123")
        assert link == "https://github.com/acme/workflows/blob/abc123/workflows/ci.yml"

    def test_permalink_falls_back_to_head(self) -> None:
        """Test a permalink without a commit identifier."""
        link = build_permalink("https://github.com/", "acme/workflows", "workflows/ci.yml")
        assert link == "https://github.com/acme/workflows/blob/HEAD/workflows/ci.yml"


class TestWorkflowSyncer:
    """Test cases for WorkflowSyncer."""

    @responses.activate
    def test_create_when_absent(self, workflow_dir: Path, ci_workflow_content: bytes) -> None:
        """Test that a missing remote file is created without a sha."""
        responses.add(responses.GET, contents_url("ci.yml"), status=404)
        responses.add(responses.PUT, contents_url("ci.yml"), json={"content": {}}, status=201)

        syncer = WorkflowSyncer(
            GitHubClient(token="t"), commit_sha="abc123", source_repository="acme/workflows"
        )
        result = syncer.sync("service", "acme", workflow_dir, "[Sync]")

        assert result.is_success
        assert result.outcomes == [("ci.yml", SyncOutcome.CREATED)]

        (body,) = put_bodies()
        assert "sha" not in body
        assert base64.b64decode(body["content"]) == ci_workflow_content
        permalink = (
            "https://github.com/acme/workflows/blob/abc123/"
            f"{(workflow_dir / 'ci.yml').as_posix().lstrip('/')}"
        )
        assert body["message"] == f"[Sync] Create ci.yml.\n\nSynced from {permalink}"

    @responses.activate
    def test_permalink_relative_to_workspace(self, workflow_dir: Path, tmp_path: Path) -> None:
        """Test that an absolute directory is linked relative to the workspace."""
        responses.add(responses.GET, contents_url("ci.yml"), status=404)
        responses.add(responses.PUT, contents_url("ci.yml"), json={"content": {}}, status=201)

        syncer = WorkflowSyncer(
            GitHubClient(token="t"),
            commit_sha="abc123",
            source_repository="acme/workflows",
            workspace=tmp_path,
        )
        syncer.sync("service", "acme", workflow_dir.resolve(), "[Sync]")

        (body,) = put_bodies()
        assert body["message"].endswith(
            "Synced from https://github.com/acme/workflows/blob/abc123/workflows/ci.yml"
        )

    @responses.activate
    def test_skip_when_content_matches(self, workflow_dir: Path, ci_workflow_content: bytes) -> None:
        """Test that identical remote content is skipped without a write."""
        responses.add(
            responses.GET,
            contents_url("ci.yml"),
            json={
                "content": base64.b64encode(ci_workflow_content).decode("ascii"),
                "encoding": "base64",
                "sha": "deadbeef",
            },
            status=200,
        )

        syncer = WorkflowSyncer(GitHubClient(token="t"))
        result = syncer.sync("service", "acme", workflow_dir)

        assert result.outcomes == [("ci.yml", SyncOutcome.SKIPPED)]
        assert put_bodies() == []

    @responses.activate
    def test_update_when_content_differs(self, workflow_dir: Path) -> None:
        """Test that differing content is updated with the fetched sha."""
        responses.add(
            responses.GET,
            contents_url("ci.yml"),
            json={
                "content": base64.b64encode(b"name: Old CI\n").decode("ascii"),
                "encoding": "base64",
                "sha": "deadbeef",
            },
            status=200,
        )
        responses.add(responses.PUT, contents_url("ci.yml"), json={"content": {}}, status=200)

        syncer = WorkflowSyncer(GitHubClient(token="t"))
        result = syncer.sync("service", "acme", workflow_dir, "")

        assert result.outcomes == [("ci.yml", SyncOutcome.UPDATED)]
        (body,) = put_bodies()
        assert body["sha"] == "deadbeef"
        # Without a source repository the target repository is linked at HEAD
        assert body["message"].startswith(
            "Update ci.yml.\n\nSynced from https://github.com/acme/service/blob/HEAD/"
        )

    @responses.activate
    def test_lookup_failure_stops_without_write(self, workflow_dir: Path) -> None:
        """Test that a failing lookup is fatal and no write is attempted."""
        responses.add(responses.GET, contents_url("ci.yml"), status=500)

        syncer = WorkflowSyncer(GitHubClient(token="t"))
        result = syncer.sync("service", "acme", workflow_dir)

        assert not result.is_success
        assert result.failed_file == "ci.yml"
        assert isinstance(result.error, RemoteFetchError)
        assert result.error.status_code == 500
        assert put_bodies() == []

    @responses.activate
    def test_write_failure_aborts_remaining_files(self, workflow_dir: Path) -> None:
        """Test that a failed write stops the rest of the repository."""
        (workflow_dir / "lint.yml").write_bytes(b"name: Lint\n")
        first, second = [p.name for p in workflow_dir.iterdir()]

        responses.add(responses.GET, contents_url(first), status=404)
        responses.add(responses.PUT, contents_url(first), status=422)

        syncer = WorkflowSyncer(GitHubClient(token="t"))
        result = syncer.sync("service", "acme", workflow_dir)

        assert result.outcomes == []
        assert result.failed_file == first
        assert isinstance(result.error, RemoteWriteError)
        assert contents_url(second) not in [c.request.url for c in responses.calls]

    @responses.activate
    def test_subdirectories_ignored(self, workflow_dir: Path) -> None:
        """Test that only regular files of the directory are synced."""
        (workflow_dir / "nested").mkdir()
        (workflow_dir / "nested" / "deep.yml").write_bytes(b"x")
        responses.add(responses.GET, contents_url("ci.yml"), status=404)
        responses.add(responses.PUT, contents_url("ci.yml"), json={"content": {}}, status=201)

        syncer = WorkflowSyncer(GitHubClient(token="t"))
        result = syncer.sync("service", "acme", workflow_dir)

        assert result.outcomes == [("ci.yml", SyncOutcome.CREATED)]

    @responses.activate
    def test_dry_run_does_not_write(self, workflow_dir: Path) -> None:
        """Test that dry run reports the would-be outcome without writing."""
        responses.add(responses.GET, contents_url("ci.yml"), status=404)

        syncer = WorkflowSyncer(GitHubClient(token="t"))
        result = syncer.sync("service", "acme", workflow_dir, dry_run=True)

        assert result.dry_run is True
        assert result.outcomes == [("ci.yml", SyncOutcome.CREATED)]
        assert put_bodies() == []


def make_repo_result(name: str, error=None) -> RepositorySyncResult:
    result = RepositorySyncResult(name)
    if error is None:
        result.add_outcome("ci.yml", SyncOutcome.UPDATED)
    else:
        result.add_failure("ci.yml", error)
    return result


class TestTopicWorkflowSync:
    """Test cases for the orchestrator."""

    def _orchestrator(self, config: SyncConfig, repos: list) -> TopicWorkflowSync:
        sync = TopicWorkflowSync(config, github_client=Mock())
        sync.discoverer = Mock()
        sync.discoverer.discover.return_value = repos
        sync.syncer = Mock()
        return sync

    def test_run_syncs_every_repository(self, sync_config: SyncConfig) -> None:
        """Test that every discovered repository is synced in order."""
        sync = self._orchestrator(sync_config, ["api", "web"])
        sync.syncer.sync.side_effect = [make_repo_result("api"), make_repo_result("web")]

        result = sync.run()

        assert result.is_success
        assert result.repositories == ["api", "web"]
        assert result.changed_count == 2
        sync.discoverer.discover.assert_called_once_with(
            {"kind": "org", "login": "acme"}, "ci-managed"
        )
        repos = [c.args[0] for c in sync.syncer.sync.call_args_list]
        assert repos == ["api", "web"]
        assert sync.syncer.sync.call_args_list[0].args[1:] == (
            "acme",
            sync_config["directory"],
            "[Sync]",
        )

    def test_discovery_failure_skips_sync(self, sync_config: SyncConfig) -> None:
        """Test that a failed discovery syncs nothing."""
        sync = self._orchestrator(sync_config, [])
        error = RemoteFetchError("Failed to fetch repositories: Forbidden")
        sync.discoverer.discover.side_effect = error

        result = sync.run()

        assert not result.is_success
        assert result.error is error
        sync.syncer.sync.assert_not_called()

    def test_repository_failure_halts_run(self, sync_config: SyncConfig) -> None:
        """Test that a failed repository stops the run by default."""
        sync = self._orchestrator(sync_config, ["api", "web"])
        error = RemoteWriteError("Failed to create/update ci.yml: Conflict")
        sync.syncer.sync.side_effect = [make_repo_result("api", error), make_repo_result("web")]

        result = sync.run()

        assert not result.is_success
        assert str(result.error) == "Failed to create/update ci.yml: Conflict"
        assert sync.syncer.sync.call_count == 1

    def test_continue_on_error(self, sync_config: SyncConfig) -> None:
        """Test that continue_on_error processes remaining repositories."""
        sync_config["continue_on_error"] = True
        sync = self._orchestrator(sync_config, ["api", "web", "docs"])
        first = RemoteWriteError("first")
        last = RemoteWriteError("last")
        sync.syncer.sync.side_effect = [
            make_repo_result("api", first),
            make_repo_result("web"),
            make_repo_result("docs", last),
        ]

        result = sync.run()

        assert sync.syncer.sync.call_count == 3
        assert [r.repository for r in result.failed_repositories] == ["api", "docs"]
        assert result.error is last
        assert result.changed_count == 1

    def test_owned_client_closed(self, sync_config: SyncConfig) -> None:
        """Test that the orchestrator builds and owns an authenticated client."""
        with TopicWorkflowSync(sync_config) as sync:
            client = sync.github_client
            assert client.session.headers["Authorization"] == "token ghp_test_token"
        assert sync._owns_client is True

