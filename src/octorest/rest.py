"""GitHub REST API endpoints built on the shared client plumbing.

Each method builds a path, sends it through ``GitHubClient`` and returns the
decoded value together with the response metadata. List endpoints come in
two forms: ``list_*`` fetches one page, ``iter_*`` walks every page lazily.
"""

import logging
from collections.abc import AsyncIterator
from typing import IO

from pydantic import BaseModel

from octorest.http import GitHubClient
from octorest.models import (
    CopilotSeatDetails,
    ListCopilotSeats,
    RateLimits,
    Repository,
    RepositoryListOptions,
    User,
)
from octorest.pagination import ListOptions, scan
from octorest.response import Response
from octorest.urls import add_options, build_path

logger = logging.getLogger(__name__)


class _RateLimitEnvelope(BaseModel):
    resources: RateLimits | None = None


class RestClient:
    """GitHub REST API client exposing a small set of endpoints.

    Wraps GitHubClient; holds no state of its own beyond that reference.
    """

    def __init__(self, http_client: GitHubClient) -> None:
        """Initialize REST API client.

        Args:
            http_client: GitHubClient instance for HTTP requests.
        """
        self._http = http_client

    async def get_rate_limits(self) -> tuple[RateLimits, Response]:
        """Get current rate limit status for every API category.

        Returns:
            Tuple of (rate limits, response metadata).
        """
        envelope, response = await self._http.get("rate_limit", _RateLimitEnvelope)
        if envelope is None or envelope.resources is None:
            return RateLimits(), response
        return envelope.resources, response

    async def get_user(self, username: str | None = None) -> tuple[User, Response]:
        """Get a user, or the authenticated user when ``username`` is None.

        Args:
            username: GitHub login.

        Returns:
            Tuple of (user, response metadata).
        """
        path = "user" if username is None else build_path("users/{}", username)
        user, response = await self._http.get(path, User)
        return user or User(), response

    async def is_starred(self, owner: str, repo: str) -> tuple[bool, Response]:
        """Check whether the authenticated user has starred a repository.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            Tuple of (starred, response metadata).
        """
        request = self._http.new_request("GET", build_path("user/starred/{}/{}", owner, repo))
        return await self._http.do_bool(request)

    async def list_user_repos(
        self,
        username: str,
        options: RepositoryListOptions | None = None,
    ) -> tuple[list[Repository], Response]:
        """List one page of a user's repositories.

        Args:
            username: GitHub login.
            options: Filters, sorting and page selection.

        Returns:
            Tuple of (repositories, response metadata).
        """
        path = add_options(build_path("users/{}/repos", username), options)
        repos, response = await self._http.get(path, list[Repository])
        return repos or [], response

    def iter_user_repos(
        self,
        username: str,
        options: RepositoryListOptions | None = None,
    ) -> AsyncIterator[Repository]:
        """Iterate over all of a user's repositories.

        Args:
            username: GitHub login.
            options: Filters and sorting; the page fields are managed here.

        Returns:
            Async iterator of repositories across all pages.
        """
        logger.info("Fetching repositories for user: %s", username)

        async def fetch(opts: RepositoryListOptions) -> tuple[list[Repository], Response]:
            return await self.list_user_repos(username, opts)

        return scan(fetch, options or RepositoryListOptions())

    async def list_copilot_seats(
        self,
        org: str,
        options: ListOptions | None = None,
    ) -> tuple[ListCopilotSeats, Response]:
        """List one page of Copilot seat assignments for an organization.

        Args:
            org: Organization login.
            options: Page selection.

        Returns:
            Tuple of (seats envelope, response metadata).

        Raises:
            UnsupportedAssigneeType: If a seat names an unknown assignee type.
        """
        path = add_options(build_path("orgs/{}/copilot/billing/seats", org), options)
        page, response = await self._http.get(path, ListCopilotSeats)
        return page or ListCopilotSeats(), response

    def iter_copilot_seats(
        self,
        org: str,
        options: ListOptions | None = None,
    ) -> AsyncIterator[CopilotSeatDetails]:
        """Iterate over all Copilot seats of an organization."""
        logger.info("Fetching Copilot seats for org: %s", org)

        async def fetch(opts: ListOptions) -> tuple[list[CopilotSeatDetails], Response]:
            page, response = await self.list_copilot_seats(org, opts)
            return page.seats, response

        return scan(fetch, options)

    async def download_artifact(
        self,
        owner: str,
        repo: str,
        artifact_id: int,
        writer: IO[bytes],
    ) -> Response:
        """Download a workflow artifact archive.

        The API answers with a redirect to the archive, which is followed and
        streamed into ``writer`` without decoding.

        Args:
            owner: Repository owner.
            repo: Repository name.
            artifact_id: Artifact ID.
            writer: Binary file-like object receiving the zip archive.

        Returns:
            Response metadata of the final response.
        """
        path = build_path("repos/{}/{}/actions/artifacts/{}/zip", owner, repo, artifact_id)
        logger.debug("Downloading artifact %s/%s#%d", owner, repo, artifact_id)
        _, response = await self._http.get(path, writer)
        return response
