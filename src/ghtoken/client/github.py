"""Synchronous GitHub REST client for the authorizations API.

This module provides :class:`GitHubClient`, which wraps
:class:`httpx.Client` and layers on:

- **Switchable Basic auth** -- :meth:`~GitHubClient.set_basic_auth` and
  :meth:`~GitHubClient.clear_auth` control the credentials attached to
  every subsequent request. :class:`~ghtoken.auth.session.AuthSession`
  drives them for the length of one run.
- **Error mapping** -- non-2xx responses raise
  :class:`~ghtoken.exceptions.APIError` carrying the status code and the
  decoded body; network failures raise
  :class:`~ghtoken.exceptions.ConnectionError_`.
- **Pagination** -- :meth:`~GitHubClient.list_authorizations` follows
  ``Link: rel="next"`` headers and returns one complete list.

There is no retry or backoff here; a failed call is reported as-is.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ghtoken.exceptions import APIError, ConnectionError_, GhtokenError
from ghtoken.models import AuthorizationRecord, ClientSettings
from ghtoken.output import get_output

AUTHORIZATIONS_PATH = "/authorizations"
_PAGE_SIZE = 100


class GitHubClient:
    """Blocking client for ``/authorizations``.

    Can be used as a context manager; otherwise the underlying
    :class:`httpx.Client` is opened on first use and released by
    :meth:`close`.

    Args:
        settings: API root, timeout and TLS settings. Defaults to
            :class:`~ghtoken.models.ClientSettings` defaults.
        transport: Optional custom httpx transport (tests pass an
            :class:`httpx.MockTransport`).

    Attributes:
        lock: Held by an :class:`~ghtoken.auth.session.AuthSession` for the
            whole of a run so that two runs never share the auth slot.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._transport = transport
        self._auth: Optional[httpx.BasicAuth] = None
        self._username: Optional[str] = None
        self._client: Optional[httpx.Client] = None
        self.lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> GitHubClient:
        self._http()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying transport. The client may be reopened later."""
        if self._client:
            self._client.close()
            self._client = None

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._settings.api_url,
                timeout=self._settings.timeout,
                verify=self._settings.verify_ssl,
                transport=self._transport,
                headers={
                    "Accept": "application/vnd.github+json",
                    "User-Agent": self._settings.user_agent,
                },
            )
        return self._client

    # ------------------------------------------------------------------ #
    # Auth state
    # ------------------------------------------------------------------ #

    def set_basic_auth(self, username: str, password: str) -> None:
        """Attach Basic credentials to every following request."""
        self._auth = httpx.BasicAuth(username, password)
        self._username = username

    def clear_auth(self) -> None:
        """Drop any Basic credentials."""
        self._auth = None
        self._username = None

    @property
    def has_auth(self) -> bool:
        """Whether Basic credentials are currently attached."""
        return self._auth is not None

    @property
    def auth_username(self) -> Optional[str]:
        """Username of the attached credentials, or ``None``."""
        return self._username

    # ------------------------------------------------------------------ #
    # Authorizations API
    # ------------------------------------------------------------------ #

    def list_authorizations(
        self,
        headers: Optional[dict[str, str]] = None,
        all_pages: bool = True,
    ) -> list[AuthorizationRecord]:
        """Return the authorizations of the authenticated user.

        Follows ``Link: rel="next"`` until the last page, in the order the
        API returns them.

        Args:
            headers: Extra request headers (e.g. ``X-GitHub-OTP``).
            all_pages: When False, stop after the first page.

        Raises:
            APIError: On any non-2xx page.
            ConnectionError_: On network errors.
            GhtokenError: If a page is not a JSON list of records.
        """
        records: list[AuthorizationRecord] = []
        url: Optional[str] = AUTHORIZATIONS_PATH
        params: Optional[dict[str, Any]] = {"per_page": _PAGE_SIZE}
        while url:
            response = self._request("GET", url, headers=headers, params=params)
            body = _decode(response)
            if not isinstance(body, list):
                raise GhtokenError(
                    f"Unexpected response from GET {AUTHORIZATIONS_PATH}: expected a list"
                )
            try:
                records.extend(AuthorizationRecord.model_validate(item) for item in body)
            except ValidationError as exc:
                raise GhtokenError(
                    f"Unexpected authorization record from GET {AUTHORIZATIONS_PATH}: {exc}"
                ) from exc
            if not all_pages:
                break
            url = response.links.get("next", {}).get("url")
            # The next link already carries its own query string.
            params = None
        return records

    def create_authorization(
        self,
        payload: dict[str, Any],
        headers: Optional[dict[str, str]] = None,
    ) -> AuthorizationRecord:
        """Create an authorization and return the new record.

        Args:
            payload: JSON body, normally ``{"scopes", "note", "note_url"}``.
            headers: Extra request headers (e.g. ``X-GitHub-OTP``).

        Raises:
            APIError: On any non-2xx response (422 when the note is taken).
            ConnectionError_: On network errors.
        """
        response = self._request("POST", AUTHORIZATIONS_PATH, headers=headers, json_body=payload)
        try:
            return AuthorizationRecord.model_validate(_decode(response))
        except ValidationError as exc:
            raise GhtokenError(
                f"Unexpected response from POST {AUTHORIZATIONS_PATH}: {exc}"
            ) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        output = get_output()
        output.debug(f"{method} {url}")
        kwargs: dict[str, Any] = {"headers": headers or {}, "params": params}
        if json_body is not None:
            kwargs["json"] = json_body
        if self._auth is not None:
            kwargs["auth"] = self._auth

        try:
            response = self._http().request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

        output.debug(f"HTTP {response.status_code} {response.reason_phrase or ''}")
        if response.status_code >= 400:
            raise APIError(response.status_code, _decode(response))
        return response


def _decode(response: httpx.Response) -> Any:
    """Return the JSON body, the raw text if it is not JSON, or ``None`` if empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
