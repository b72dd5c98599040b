"""End-to-end token acquisition.

:class:`AuthenticationOrchestrator` runs the steps of a token request in a
fixed order::

    Idle -> CredentialsResolved -> ProbeDone -> HeadersReady -> TokenReady -> Done
                     \\______________\\______________\\______________\\-> Failed

Any failing step moves straight to ``Failed`` and skips the rest. On
reaching ``Done`` or ``Failed`` the Basic credentials set on the client are
cleared, exactly once, before the result or the error reaches the caller.

:func:`request_token` and :func:`requires_code` are the public entry
points. Option errors raise :class:`~ghtoken.exceptions.InvalidConfig`
before any prompt or request. With a *callback*, every later outcome is
delivered as ``callback(error, result)``; without one, the result is
returned and errors are raised.

Example::

    from ghtoken import request_token

    token = request_token({"name": "ci-token", "scopes": ["repo"]})
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

from ghtoken.auth.credentials import CredentialResolver
from ghtoken.auth.provisioner import TokenProvisioner
from ghtoken.auth.session import AuthSession
from ghtoken.auth.twofactor import CodeResolver, TwoFactorProbe
from ghtoken.client import GitHubClient
from ghtoken.config import build_descriptor
from ghtoken.exceptions import InvalidConfig
from ghtoken.models import ClientSettings, Credentials, RequestDescriptor, Token
from ghtoken.output import get_output
from ghtoken.prompt import Prompter, TerminalPrompter

T = TypeVar("T")

Callback = Callable[[Optional[BaseException], Any], None]


class OrchestratorState(str, enum.Enum):
    """Where an :class:`AuthenticationOrchestrator` run currently stands."""

    IDLE = "idle"
    CREDENTIALS_RESOLVED = "credentials_resolved"
    PROBE_DONE = "probe_done"
    HEADERS_READY = "headers_ready"
    TOKEN_READY = "token_ready"
    DONE = "done"
    FAILED = "failed"


class AuthenticationOrchestrator:
    """Sequence credential resolution, 2FA probing and provisioning.

    One orchestrator may be reused for several runs; runs on the same
    client are serialized by :class:`~ghtoken.auth.session.AuthSession`.

    Args:
        client: REST client to authenticate and call.
        prompter: Source of interactive input. Defaults to a
            :class:`~ghtoken.prompt.TerminalPrompter`.
    """

    def __init__(self, client: GitHubClient, prompter: Optional[Prompter] = None) -> None:
        self._client = client
        self._prompter = prompter or TerminalPrompter()
        self.state = OrchestratorState.IDLE

    def run(self, descriptor: RequestDescriptor) -> Token:
        """Acquire a token for *descriptor*.

        Returns:
            The provisioned :class:`~ghtoken.models.Token`. The credentials
            used to get it are not part of the result.

        Raises:
            PromptAborted: If the user cancels a prompt.
            ProbeFailed: If the 2FA probe fails (including bad credentials).
            TokenNotFound: If a duplicate note could not be recovered.
            ProvisionFailed: If creating or listing authorizations fails.
        """
        self._enter(OrchestratorState.IDLE)
        with AuthSession(self._client) as session:
            try:
                credentials = CredentialResolver(self._prompter).resolve(descriptor)
                session.authenticate(credentials)
                self._enter(OrchestratorState.CREDENTIALS_RESOLVED)

                required = TwoFactorProbe(self._client).probe()
                self._enter(OrchestratorState.PROBE_DONE)

                headers = CodeResolver(self._prompter).resolve_headers(
                    required, descriptor.code, descriptor.prompt.code
                )
                self._enter(OrchestratorState.HEADERS_READY)

                token = TokenProvisioner(self._client).provision(headers, descriptor)
                self._enter(OrchestratorState.TOKEN_READY)
            except BaseException:
                session.clear()
                self._enter(OrchestratorState.FAILED)
                raise
            session.clear()
            self._enter(OrchestratorState.DONE)
        return token

    def check_requires_code(self, credentials: Credentials) -> bool:
        """Authenticate with *credentials* and only run the 2FA probe.

        Raises:
            ProbeFailed: If the probe fails.
        """
        self._enter(OrchestratorState.IDLE)
        with AuthSession(self._client) as session:
            try:
                session.authenticate(credentials)
                self._enter(OrchestratorState.CREDENTIALS_RESOLVED)
                required = TwoFactorProbe(self._client).probe()
                self._enter(OrchestratorState.PROBE_DONE)
            except BaseException:
                session.clear()
                self._enter(OrchestratorState.FAILED)
                raise
            session.clear()
            self._enter(OrchestratorState.DONE)
        return required

    def _enter(self, state: OrchestratorState) -> None:
        self.state = state
        get_output().debug(f"state: {state.value}")


# ------------------------------------------------------------------ #
# Public entry points
# ------------------------------------------------------------------ #


def request_token(
    options: Any,
    callback: Optional[Callback] = None,
    *,
    client: Optional[GitHubClient] = None,
    prompter: Optional[Prompter] = None,
    settings: Optional[ClientSettings] = None,
) -> Optional[str]:
    """Acquire a personal access token named ``options["name"]``.

    Args:
        options: Mapping with ``name`` (required), ``scopes``, ``url``,
            ``prompt`` (``{"username", "password", "code"}`` override
            texts), ``username``, ``password`` and ``code``.
        callback: Optional ``callback(error, token)`` receiving the outcome.
        client: Client to use. A temporary one built from *settings* is
            opened and closed otherwise.
        prompter: Source of interactive input.
        settings: Client settings used when no *client* is given.

    Returns:
        The token string when no *callback* is given, else ``None``.

    Raises:
        InvalidConfig: Immediately, for malformed *options* or a
            non-callable *callback*.
    """
    descriptor = build_descriptor(options)
    _check_callback(callback)
    return _deliver(
        callback,
        lambda c: AuthenticationOrchestrator(c, prompter).run(descriptor).value,
        client,
        settings,
    )


def requires_code(
    auth: Any,
    callback: Optional[Callback] = None,
    *,
    client: Optional[GitHubClient] = None,
    settings: Optional[ClientSettings] = None,
) -> Optional[bool]:
    """Report whether the account behind *auth* needs a one-time code.

    Args:
        auth: Mapping with non-empty ``username`` and ``password`` strings.
        callback: Optional ``callback(error, required)`` receiving the outcome.
        client: Client to use; a temporary one is built otherwise.
        settings: Client settings used when no *client* is given.

    Returns:
        The answer when no *callback* is given, else ``None``.

    Raises:
        InvalidConfig: Immediately, if *auth* lacks a username or password.
    """
    if not isinstance(auth, Mapping) or not all(
        isinstance(auth.get(key), str) and auth.get(key) for key in ("username", "password")
    ):
        raise InvalidConfig("username and password required")
    _check_callback(callback)
    credentials = Credentials(username=auth["username"], password=auth["password"])
    return _deliver(
        callback,
        lambda c: AuthenticationOrchestrator(c).check_requires_code(credentials),
        client,
        settings,
    )


def _check_callback(callback: Optional[Callback]) -> None:
    if callback is not None and not callable(callback):
        raise InvalidConfig("callback must be callable")


def _deliver(
    callback: Optional[Callback],
    work: Callable[[GitHubClient], T],
    client: Optional[GitHubClient],
    settings: Optional[ClientSettings],
) -> Optional[T]:
    if callback is None:
        return _with_client(work, client, settings)
    try:
        result = _with_client(work, client, settings)
    except Exception as exc:
        callback(exc, None)
        return None
    callback(None, result)
    return None


def _with_client(
    work: Callable[[GitHubClient], T],
    client: Optional[GitHubClient],
    settings: Optional[ClientSettings],
) -> T:
    if client is not None:
        return work(client)
    with GitHubClient(settings) as owned:
        return work(owned)
