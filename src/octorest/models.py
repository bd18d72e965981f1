"""Typed GitHub resources and discriminated union decoding.

A few API fields hold one of several object types and say which through a
``type`` key, e.g. a Copilot seat assignee that is a user, a team or an
organization. ``decode_discriminated`` resolves such a payload into exactly
one concrete model or fails.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from octorest.exceptions import UnsupportedAssigneeType, UnsupportedVariant
from octorest.pagination import ListOptions
from octorest.response import Rate


def decode_discriminated(
    payload: Any,
    variants: Mapping[str, type[BaseModel]],
    *,
    key: str = "type",
    error: type[UnsupportedVariant] = UnsupportedVariant,
) -> BaseModel:
    """Decode a JSON object into the model named by its discriminator.

    Args:
        payload: Decoded JSON value, expected to be an object.
        variants: Discriminator value to model class.
        key: Name of the discriminator key.
        error: Exception class raised for unsupported payloads.

    Returns:
        Instance of the model selected by ``payload[key]``.

    Raises:
        UnsupportedVariant: (or ``error``) If ``payload`` is not an object,
            lacks the key, or names an unknown variant.
    """
    if not isinstance(payload, dict):
        raise error(type(payload).__name__)

    if key not in payload:
        raise error(None, f"{key} field is not set")

    discriminator = payload[key]
    if not isinstance(discriminator, str) or discriminator not in variants:
        raise error(discriminator)

    return variants[discriminator].model_validate(payload)


class User(BaseModel):
    """A GitHub user account."""

    login: str | None = None
    id: int | None = None
    node_id: str | None = None
    avatar_url: str | None = None
    html_url: str | None = None
    url: str | None = None
    name: str | None = None
    company: str | None = None
    blog: str | None = None
    location: str | None = None
    email: str | None = None
    bio: str | None = None
    type: str | None = None
    site_admin: bool | None = None
    public_repos: int | None = None
    followers: int | None = None
    following: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Team(BaseModel):
    """A team within an organization."""

    id: int | None = None
    node_id: str | None = None
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    privacy: str | None = None
    permission: str | None = None
    url: str | None = None
    html_url: str | None = None
    members_url: str | None = None
    repositories_url: str | None = None
    members_count: int | None = None
    repos_count: int | None = None


class Organization(BaseModel):
    """A GitHub organization."""

    login: str | None = None
    id: int | None = None
    node_id: str | None = None
    name: str | None = None
    description: str | None = None
    company: str | None = None
    blog: str | None = None
    location: str | None = None
    email: str | None = None
    url: str | None = None
    html_url: str | None = None
    avatar_url: str | None = None
    type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


ASSIGNEE_TYPES: dict[str, type[BaseModel]] = {
    "User": User,
    "Team": Team,
    "Organization": Organization,
}


class CopilotSeatDetails(BaseModel):
    """A Copilot seat and who it is assigned to."""

    assignee: User | Team | Organization | None = None
    assigning_team: Team | None = None
    pending_cancellation_date: str | None = None
    last_activity_at: datetime | None = None
    last_activity_editor: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    plan_type: str | None = None

    @field_validator("assignee", mode="before")
    @classmethod
    def _decode_assignee(cls, value: Any) -> Any:
        if isinstance(value, User | Team | Organization):
            return value
        return decode_discriminated(value, ASSIGNEE_TYPES, error=UnsupportedAssigneeType)

    @property
    def assignee_type(self) -> str | None:
        """Name of the concrete assignee type, e.g. ``"Team"``."""
        return type(self.assignee).__name__ if self.assignee is not None else None


class ListCopilotSeats(BaseModel):
    """Envelope of one page of Copilot seats."""

    total_seats: int = 0
    seats: list[CopilotSeatDetails] = Field(default_factory=list)


class RateLimits(BaseModel):
    """Rate limits per API category, as returned by ``GET /rate_limit``."""

    core: Rate | None = None
    search: Rate | None = None
    graphql: Rate | None = None
    integration_manifest: Rate | None = None
    source_import: Rate | None = None
    code_scanning_upload: Rate | None = None
    actions_runner_registration: Rate | None = None
    scim: Rate | None = None


class Repository(BaseModel):
    """A GitHub repository."""

    id: int | None = None
    node_id: str | None = None
    name: str | None = None
    full_name: str | None = None
    owner: User | None = None
    private: bool | None = None
    description: str | None = None
    fork: bool | None = None
    html_url: str | None = None
    default_branch: str | None = None
    language: str | None = None
    stargazers_count: int | None = None
    archived: bool | None = None
    pushed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RepositoryListOptions(ListOptions):
    """Query options for listing a user's repositories."""

    type: str = ""
    sort: str = ""
    direction: str = ""
