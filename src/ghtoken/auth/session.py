"""Per-run ownership of the client's Basic-auth slot.

:class:`GitHubClient <ghtoken.client.GitHubClient>` keeps a single set of
Basic credentials. :class:`AuthSession` scopes them to one run: entering
the session takes the client's lock and installs the credentials, leaving
it clears them and releases the lock, whatever happened in between.
"""

from __future__ import annotations

from typing import Optional

from ghtoken.client import GitHubClient
from ghtoken.models import Credentials
from ghtoken.output import get_output


class AuthSession:
    """Context manager owning the Basic-auth state for one run.

    The client's lock is held from :meth:`__enter__` to :meth:`__exit__`,
    so a second run on the same client waits instead of overwriting the
    first run's credentials.

    Example::

        with AuthSession(client) as session:
            session.authenticate(credentials)
            client.list_authorizations()
        assert not client.has_auth
    """

    def __init__(self, client: GitHubClient) -> None:
        self._client = client
        self._active = False
        self._username: Optional[str] = None

    def __enter__(self) -> AuthSession:
        self._client.lock.acquire()
        self._active = True
        # A previous owner always clears on exit; this guards against a
        # caller that set auth on the client directly.
        self._client.clear_auth()
        return self

    def __exit__(self, *args: object) -> None:
        self.clear()

    @property
    def is_authenticated(self) -> bool:
        return self._username is not None

    def authenticate(self, credentials: Credentials) -> None:
        """Install *credentials* on the client for the rest of the session."""
        if not self._active:
            raise RuntimeError("AuthSession.authenticate() called outside 'with'")
        self._client.set_basic_auth(credentials.username, credentials.password)
        self._username = credentials.username
        get_output().debug(f"Basic auth set for '{credentials.username}'")

    def clear(self) -> None:
        """Clear the credentials and release the client. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        try:
            self._client.clear_auth()
            if self._username is not None:
                get_output().debug("Basic auth cleared")
            self._username = None
        finally:
            self._client.lock.release()
