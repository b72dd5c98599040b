"""Shared test fixtures for ghtoken.

Provides an in-memory GitHub ``/authorizations`` API served through
:class:`httpx.MockTransport`, a scripted prompter, config isolation and
output management. These fixtures are discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from ghtoken.client import GitHubClient
from ghtoken.exceptions import PromptAborted
from ghtoken.models import ClientSettings, PromptKind
from ghtoken.output import OutputFormat, OutputManager, reset_output, set_output
from ghtoken.prompt import Prompter

OTP_MESSAGE = "Must specify two-factor authentication OTP code."


# ---------------------------------------------------------------------------
# Fake GitHub API
# ---------------------------------------------------------------------------


class FakeGitHubAPI:
    """Minimal stand-in for GitHub's ``/authorizations`` endpoints.

    Checks Basic credentials, demands ``X-GitHub-OTP`` when *otp* is set,
    and answers 422 when a note is created twice.
    """

    def __init__(
        self,
        username: str = "alice",
        password: str = "secret",
        otp: Optional[str] = None,
        authorizations: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self.username = username
        self.password = password
        self.otp = otp
        self.authorizations: list[dict[str, Any]] = list(authorizations or [])
        self.requests: list[httpx.Request] = []
        self._next_id = 1

    @property
    def created_notes(self) -> list[str]:
        return [a["note"] for a in self.authorizations]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        expected = "Basic " + base64.b64encode(
            f"{self.username}:{self.password}".encode()
        ).decode()
        if request.headers.get("Authorization") != expected:
            return httpx.Response(401, json={"message": "Bad credentials"})
        if self.otp is not None and request.headers.get("X-GitHub-OTP") != self.otp:
            return httpx.Response(401, json={"message": OTP_MESSAGE})

        if not request.url.path.endswith("/authorizations"):
            return httpx.Response(404, json={"message": "Not Found"})

        if request.method == "GET":
            return httpx.Response(200, json=self.authorizations)

        body = json.loads(request.content)
        if any(a["note"] == body["note"] for a in self.authorizations):
            return httpx.Response(
                422,
                json={
                    "message": "Validation Failed",
                    "errors": [{"resource": "OauthAccess", "code": "already_exists", "field": "description"}],
                },
            )
        record = {
            "id": self._next_id,
            "note": body["note"],
            "note_url": body.get("note_url"),
            "scopes": body.get("scopes", []),
            "token": f"token-{self._next_id}",
        }
        self._next_id += 1
        self.authorizations.append(record)
        return httpx.Response(201, json=record)

    def requests_for(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]


@pytest.fixture
def fake_api() -> FakeGitHubAPI:
    """A fake API for user ``alice`` / ``secret`` without 2FA."""
    return FakeGitHubAPI()


@pytest.fixture
def client(fake_api: FakeGitHubAPI) -> GitHubClient:
    """A :class:`GitHubClient` talking to :func:`fake_api`."""
    gh = GitHubClient(
        ClientSettings(api_url="https://api.github.test"),
        transport=httpx.MockTransport(fake_api),
    )
    yield gh
    gh.close()


# ---------------------------------------------------------------------------
# Scripted prompter
# ---------------------------------------------------------------------------


class ScriptedPrompter(Prompter):
    """Answers prompts from per-kind queues and records every prompt shown.

    Raises :class:`PromptAborted` once a queue runs dry, which stands in for
    the user closing the prompt.
    """

    def __init__(self, **answers: list[str]) -> None:
        self.answers = {kind: list(values) for kind, values in answers.items()}
        self.calls: list[tuple[PromptKind, str]] = []

    def prompt_line(self, kind: PromptKind, message: str) -> str:
        self.calls.append((kind, message))
        queue = self.answers.get(kind.value, [])
        if not queue:
            raise PromptAborted(f"Prompt for {kind.value} cancelled")
        return queue.pop(0)

    def kinds(self) -> list[str]:
        return [kind.value for kind, _ in self.calls]


# ---------------------------------------------------------------------------
# Output and config isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams the
    cached references go stale, so a fresh manager is created on next use.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of tmp_path
    and clears the GHTOKEN_* and GITHUB_* variables the CLI reads.
    """
    monkeypatch.setattr("ghtoken.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "GHTOKEN_API_URL",
        "GHTOKEN_TIMEOUT",
        "GITHUB_USERNAME",
        "GITHUB_PASSWORD",
        "GITHUB_OTP",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_api():
    """Factory for :class:`FakeGitHubAPI` instances with custom users/state."""
    return FakeGitHubAPI


@pytest.fixture
def make_client():
    """Factory building a :class:`GitHubClient` on top of any handler."""
    clients: list[GitHubClient] = []

    def _make(handler) -> GitHubClient:
        gh = GitHubClient(
            ClientSettings(api_url="https://api.github.test"),
            transport=httpx.MockTransport(handler),
        )
        clients.append(gh)
        return gh

    yield _make
    for gh in clients:
        gh.close()


@pytest.fixture
def make_prompter():
    """Factory for :class:`ScriptedPrompter`, e.g. ``make_prompter(username=["alice"])``."""
    return ScriptedPrompter
