"""Configuration parsing and validation for topic-workflow-sync.

This module resolves the run configuration from command-line / action inputs,
an optional YAML configuration file and the GitHub Actions environment.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from typing_extensions import Literal, TypedDict

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(".github/topic-workflow-sync.yaml")
DEFAULT_SERVER_URL = "https://github.com"
DEFAULT_API_URL = "https://api.github.com"

FILE_KEYS = ("user", "org", "topic", "directory", "prefix", "continue_on_error")


class OwnerIdentity(TypedDict):
    """Owner of the repositories to discover.

    Exactly one of a user or an organization; ``kind`` selects which.
    """

    kind: Literal["user", "org"]
    login: str


class SyncConfig(TypedDict):
    """Resolved, read-only configuration for a single run."""

    owner: OwnerIdentity
    topic: str
    directory: Path
    prefix: str
    token: str
    commit_sha: Optional[str]
    source_repository: Optional[str]
    workspace: Optional[Path]
    server_url: str
    api_url: str
    continue_on_error: bool


def resolve_owner(user: Optional[str], org: Optional[str]) -> OwnerIdentity:
    """Build the owner identity from user and organization inputs.

    Args:
        user: GitHub user name, or empty/None
        org: GitHub organization name, or empty/None

    Returns:
        Owner identity for exactly one of the two

    Raises:
        ConfigurationError: If both or neither are provided
    """
    user = (user or "").strip()
    org = (org or "").strip()

    if user and org:
        raise ConfigurationError(
            "Both user and org cannot be provided simultaneously."
        )
    if org:
        return {"kind": "org", "login": org}
    if user:
        return {"kind": "user", "login": user}
    raise ConfigurationError("Either user or org must be provided.")


def load_config_file(config_path: Path, required: bool = False) -> dict[str, Any]:
    """Load optional settings from a YAML configuration file.

    Args:
        config_path: Path to the YAML configuration file
        required: Raise if the file does not exist instead of returning {}

    Returns:
        Validated mapping of the keys present in the file

    Raises:
        ConfigurationError: If the file is missing (when required), is not
            valid YAML, or contains unknown keys or wrongly typed values

    Example:
        >>> values = load_config_file(Path(".github/topic-workflow-sync.yaml"))
        >>> values["topic"]
        'ci-managed'
    """
    if not config_path.exists():
        if required:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        logger.debug(f"No configuration file at {config_path}, using inputs only")
        return {}

    logger.info(f"Loading configuration from {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a dictionary")

    unknown = sorted(set(data) - set(FILE_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    for key, value in data.items():
        if value is None:
            continue
        if key == "continue_on_error":
            if not isinstance(value, bool):
                raise ConfigurationError("'continue_on_error' must be a boolean")
        elif not isinstance(value, str):
            raise ConfigurationError(f"'{key}' must be a string")

    return {key: value for key, value in data.items() if value is not None}


def build_config(
    inputs: Mapping[str, Any],
    file_values: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SyncConfig:
    """Resolve the run configuration.

    Explicit inputs take precedence over configuration file values. The
    token falls back to ``GITHUB_TOKEN`` and the permalink context is read
    from the GitHub Actions environment.

    Args:
        inputs: Values from the command line or action inputs
        file_values: Values loaded from the configuration file
        environ: Environment to read ambient values from (default os.environ)

    Returns:
        Validated run configuration

    Raises:
        ConfigurationError: If the owner identity is ambiguous or missing, a
            required value is absent, or the directory does not exist
    """
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = dict(file_values or {})
    for key, value in inputs.items():
        if value not in (None, ""):
            merged[key] = value

    owner = resolve_owner(merged.get("user"), merged.get("org"))

    topic = str(merged.get("topic") or "").strip()
    if not topic:
        raise ConfigurationError("Input required and not supplied: topic")

    directory_value = merged.get("directory")
    if not directory_value:
        raise ConfigurationError("Input required and not supplied: directory")
    directory = Path(directory_value)
    if not directory.is_dir():
        raise ConfigurationError(f"Workflow directory not found: {directory}")

    token = merged.get("token") or env.get("GITHUB_TOKEN")
    if not token:
        raise ConfigurationError("Input required and not supplied: token")

    config: SyncConfig = {
        "owner": owner,
        "topic": topic,
        "directory": directory,
        "prefix": str(merged.get("prefix") or "").strip(),
        "token": token,
        "commit_sha": env.get("GITHUB_SHA") or None,
        "source_repository": env.get("GITHUB_REPOSITORY") or None,
        "workspace": Path(env["GITHUB_WORKSPACE"]) if env.get("GITHUB_WORKSPACE") else None,
        "server_url": (env.get("GITHUB_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
        "api_url": (env.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        "continue_on_error": bool(merged.get("continue_on_error", False)),
    }

    logger.info(
        f"Resolved configuration: {owner['kind']} '{owner['login']}', "
        f"topic '{topic}', directory {directory}"
    )
    return config
