"""Repository discovery by topic.

Pages through every repository owned by a user or organization and keeps the
non-archived ones tagged with the configured topic.
"""

from __future__ import annotations

import logging

from .config import OwnerIdentity
from .errors import RemoteFetchError
from .github import GitHubClient

logger = logging.getLogger(__name__)


class RepositoryDiscoverer:
    """Finds the repositories of an owner that carry a given topic.

    The listing endpoint does not include topics, so every non-archived
    repository costs one additional topics request.
    """

    def __init__(self, github_client: GitHubClient):
        self.github_client = github_client

    def discover(self, owner: OwnerIdentity, topic: str) -> list[str]:
        """Return the names of non-archived repositories tagged with topic.

        Args:
            owner: User or organization whose repositories are listed
            topic: Topic that must be present on a repository

        Returns:
            Repository names in listing order

        Raises:
            RemoteFetchError: If the listing or any topics request fails;
                no partial result is returned
        """
        login = owner["login"]
        repositories: list[str] = []
        page = 1

        logger.info(f"Discovering repositories of {login} with topic '{topic}'")

        try:
            while True:
                result = self.github_client.list_repositories(owner, page)

                for repo in result.repositories:
                    name = repo["name"]
                    if repo.get("archived"):
                        logger.debug(f"Ignoring archived repository {login}/{name}")
                        continue

                    topics = self._get_topics(login, name)
                    if topic in topics:
                        logger.debug(f"Repository {login}/{name} has topic '{topic}'")
                        repositories.append(name)

                if not result.has_next:
                    break
                page += 1
        except RemoteFetchError as e:
            logger.error(f"Error fetching repositories: {e}")
            raise

        logger.info(
            f"Found {len(repositories)} repositories with topic '{topic}' "
            f"across {page} page(s)"
        )
        return repositories

    def _get_topics(self, login: str, name: str) -> list[str]:
        try:
            return self.github_client.get_topics(login, name)
        except RemoteFetchError as e:
            logger.error(f"Error fetching topics for {name}: {e}")
            raise
