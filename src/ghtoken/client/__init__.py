"""HTTP client module for ghtoken.

Provides :class:`GitHubClient`, a thin wrapper around :class:`httpx.Client`
exposing the handful of GitHub REST calls the token flow needs, with
switchable Basic auth and typed error mapping.

Example::

    from ghtoken.client import GitHubClient

    with GitHubClient() as client:
        client.set_basic_auth("alice", "secret")
        records = client.list_authorizations()
"""

from ghtoken.client.github import GitHubClient

__all__ = ["GitHubClient"]
