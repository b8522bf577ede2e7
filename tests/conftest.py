"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from workflow_sync.config import SyncConfig

API_URL = "https://api.github.com"


@pytest.fixture
def ci_workflow_content() -> bytes:
    """Return sample workflow content for testing."""
    return b"""name: CI

on:
  push:
    branches: [main]

jobs:
  test:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: make test
"""


@pytest.fixture
def workflow_dir(tmp_path: Path, ci_workflow_content: bytes) -> Path:
    """Return a directory holding a single ci.yml workflow."""
    directory = tmp_path / "workflows"
    directory.mkdir()
    (directory / "ci.yml").write_bytes(ci_workflow_content)
    return directory


@pytest.fixture
def sync_config(workflow_dir: Path) -> SyncConfig:
    """Return a resolved configuration for organization 'acme'."""
    return {
        "owner": {"kind": "org", "login": "acme"},
        "topic": "ci-managed",
        "directory": workflow_dir,
        "prefix": "[Sync]",
        "token": "ghp_test_token",
        "commit_sha": "abc123",
        "source_repository": "acme/workflows",
        "workspace": None,
        "server_url": "https://github.com",
        "api_url": API_URL,
        "continue_on_error": False,
    }
