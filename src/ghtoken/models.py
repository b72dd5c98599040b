"""Canonical Pydantic models shared across all ghtoken modules.

Every other module imports its data shapes from here. The models fall into
two groups:

**Request models** -- built once per run and never mutated:
    :class:`PromptMessages`, :class:`RequestDescriptor`, :class:`Credentials`,
    and :class:`Token`.

**Configuration and API models**:
    :class:`ClientSettings`, :class:`GlobalConfig`, and
    :class:`AuthorizationRecord`.

Request models are frozen so that a validated descriptor cannot drift while
the orchestrator walks through its steps.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ghtoken import __version__


OTP_HEADER = "X-GitHub-OTP"
"""Request header carrying the one-time code."""

DEFAULT_API_URL = "https://api.github.com"


class PromptKind(str, enum.Enum):
    """The three values ghtoken may ask the user for."""

    USERNAME = "username"
    PASSWORD = "password"
    CODE = "code"


# --- Request models ---


class PromptMessages(BaseModel):
    """Optional override text for each interactive prompt.

    A ``None`` entry means the prompt label defaults to the prompt kind
    (``"username"``, ``"password"`` or ``"code"``).
    """

    model_config = ConfigDict(frozen=True)

    username: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None

    def for_kind(self, kind: PromptKind) -> str:
        """Return the message to show for *kind*, falling back to its name."""
        value = getattr(self, kind.value)
        return value if isinstance(value, str) else kind.value


class RequestDescriptor(BaseModel):
    """Validated, immutable description of one token request.

    Produced by :func:`ghtoken.config.build_descriptor`. ``name`` doubles as
    the authorization ``note`` and is the key used to recover an existing
    token when creation reports a duplicate.

    Example::

        RequestDescriptor(name="ci-token", scopes=("repo",))
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Token note, used as idempotency key")
    scopes: tuple[str, ...] = Field(default=(), description="OAuth scopes to request")
    url: str = Field(default="", description="note_url metadata for the token")
    prompt: PromptMessages = Field(default_factory=PromptMessages)
    username: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None


class Credentials(BaseModel):
    """A resolved username/password pair. Lives only for one run."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)


class Token(BaseModel):
    """A provisioned token.

    ``created`` is ``False`` when the value was recovered from an existing
    authorization with the same note.
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(repr=False)
    created: bool = True


class AuthorizationRecord(BaseModel):
    """One entry of ``GET /authorizations``. Only ``note`` and ``token`` are read."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    note: Optional[str] = None
    note_url: Optional[str] = None
    token: Optional[str] = Field(default=None, repr=False)
    scopes: list[str] = Field(default_factory=list)


# --- Configuration ---


class ClientSettings(BaseModel):
    """Connection settings for :class:`~ghtoken.client.GitHubClient`."""

    api_url: str = Field(default=DEFAULT_API_URL, description="GitHub REST API root")
    timeout: float = Field(default=30.0, gt=0, description="Transport timeout in seconds")
    verify_ssl: bool = Field(default=True)
    user_agent: str = Field(default=f"ghtoken/{__version__}")


class GlobalConfig(BaseModel):
    """Contents of the global ``config.json`` file."""

    model_config = ConfigDict(extra="allow")

    client: ClientSettings = Field(default_factory=ClientSettings)
    default_scopes: list[str] = Field(
        default_factory=list,
        description="Scopes used by `ghtoken create` when none are passed",
    )
