"""GitHub API client for repository discovery and workflow file updates.

This module wraps the REST endpoints topic-workflow-sync needs: repository
listing, repository topics and the contents API used to read and write files.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, NamedTuple, Optional
from urllib.parse import quote

import requests

from .config import DEFAULT_API_URL, OwnerIdentity
from .errors import RemoteFetchError, RemoteWriteError

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
PER_PAGE = 100


class RepositoryPage(NamedTuple):
    """One page of the repository listing."""

    repositories: list[dict[str, Any]]
    has_next: bool


class RemoteFile(NamedTuple):
    """Existing file content as stored in a repository."""

    content: bytes
    sha: str


class GitHubClient:
    """Client for the GitHub REST API.

    Authentication and API version headers are set once on the session and
    sent with every request made through this client.
    """

    def __init__(
        self,
        token: str,
        timeout: int = 30,
        api_url: str = DEFAULT_API_URL,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub token used for every request
            timeout: Request timeout in seconds
            api_url: Base URL of the GitHub REST API
        """
        self.token = token
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")
        self.session = requests.Session()

        # Set user agent for proper API usage
        self.session.headers.update(
            {
                "User-Agent": "topic-workflow-sync/1.0.0",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "Authorization": f"token {self.token}",
            }
        )

    def list_repositories(self, owner: OwnerIdentity, page: int) -> RepositoryPage:
        """Fetch one page of repositories for a user or organization.

        Args:
            owner: Owner identity selecting the users/ or orgs/ endpoint
            page: 1-indexed page number

        Returns:
            The page's repository records and whether a next page exists

        Raises:
            RemoteFetchError: If the request fails or returns non-success
        """
        collection = "orgs" if owner["kind"] == "org" else "users"
        url = f"{self.api_url}/{collection}/{quote(owner['login'])}/repos"
        params = {"page": page, "per_page": PER_PAGE}

        logger.debug(f"Listing repositories: {url} page={page}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(f"Failed to fetch repositories: {e}") from e

        if not response.ok:
            raise RemoteFetchError(
                f"Failed to fetch repositories: {response.reason}",
                status_code=response.status_code,
                reason=response.reason,
            )

        # requests parses the Link header; no header means no further pages
        has_next = "next" in response.links
        return RepositoryPage(response.json(), has_next)

    def get_topics(self, owner: str, repo: str) -> list[str]:
        """Fetch the topics attached to a repository.

        Args:
            owner: Repository owner login
            repo: Repository name

        Returns:
            Topic names, in the order GitHub returns them

        Raises:
            RemoteFetchError: If the request fails or returns non-success
        """
        url = f"{self.api_url}/repos/{quote(owner)}/{quote(repo)}/topics"

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(f"Failed to fetch topics for {repo}: {e}") from e

        if not response.ok:
            raise RemoteFetchError(
                f"Failed to fetch topics for {repo}: {response.reason}",
                status_code=response.status_code,
                reason=response.reason,
            )

        return response.json().get("names") or []

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        # URL encode the file path to handle spaces and special characters
        encoded_path = quote(path, safe="/")
        return f"{self.api_url}/repos/{quote(owner)}/{quote(repo)}/contents/{encoded_path}"

    def get_file(self, owner: str, repo: str, path: str) -> Optional[RemoteFile]:
        """Fetch a file through the contents API.

        Args:
            owner: Repository owner login
            repo: Repository name
            path: Path of the file within the repository

        Returns:
            Decoded content and blob sha, or None if the file does not exist

        Raises:
            RemoteFetchError: If the request fails with anything but 404
        """
        url = self._contents_url(owner, repo, path)

        logger.debug(f"Probing {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(f"Failed to fetch {path} from {repo}: {e}") from e

        if response.status_code == 404:
            return None
        if not response.ok:
            raise RemoteFetchError(
                f"Failed to fetch {path} from {repo}: {response.reason}",
                status_code=response.status_code,
                reason=response.reason,
            )

        data = response.json()
        # GitHub API returns base64-encoded content wrapped with newlines
        content = base64.b64decode(data.get("content") or "")
        return RemoteFile(content, data["sha"])

    def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        message: str,
        content: bytes,
        sha: Optional[str] = None,
    ) -> dict[str, Any]:
        """Create or update a file through the contents API.

        Args:
            owner: Repository owner login
            repo: Repository name
            path: Path of the file within the repository
            message: Commit message
            content: Raw file content; encoded to base64 for transport
            sha: Blob sha of the file being replaced, omitted on create

        Returns:
            The decoded API response

        Raises:
            RemoteWriteError: If the request fails or returns non-success
        """
        url = self._contents_url(owner, repo, path)
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
        }
        if sha is not None:
            payload["sha"] = sha

        try:
            response = self.session.put(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteWriteError(f"Failed to create/update {path}: {e}") from e

        if not response.ok:
            raise RemoteWriteError(
                f"Failed to create/update {path}: {response.reason}",
                status_code=response.status_code,
                reason=response.reason,
            )

        return response.json() if response.content else {}

    def test_connection(self) -> bool:
        """Test authenticated connectivity to the GitHub API.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            response = self.session.get(
                f"{self.api_url}/rate_limit", timeout=self.timeout
            )
            return response.status_code == 200
        except requests.RequestException:
            return False

    def close(self) -> None:
        """Close the HTTP session.

        Should be called when done using the client to clean up resources.
        """
        self.session.close()

    def __enter__(self) -> GitHubClient:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
