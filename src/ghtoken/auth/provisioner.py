"""Create-or-recover provisioning of a named token.

An authorization's ``note`` is unique per user but is not its id, so when
``POST /authorizations`` answers 422 (note already taken) the only way back
to the existing token is to list every authorization and search for the
note. :class:`TokenProvisioner` does exactly that, which makes provisioning
the same name twice return the same token.
"""

from __future__ import annotations

from typing import Any

from ghtoken.client import GitHubClient
from ghtoken.exceptions import APIError, GhtokenError, ProvisionFailed, TokenNotFound
from ghtoken.models import RequestDescriptor, Token
from ghtoken.output import get_output

DUPLICATE_STATUS = 422


def authorization_payload(descriptor: RequestDescriptor) -> dict[str, Any]:
    """Return the ``POST /authorizations`` body for *descriptor*."""
    return {
        "scopes": list(descriptor.scopes),
        "note": descriptor.name,
        "note_url": descriptor.url,
    }


class TokenProvisioner:
    """Create an authorization, or recover the one with the same note.

    Args:
        client: Client whose Basic auth is already set.
    """

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    def provision(self, headers: dict[str, str], descriptor: RequestDescriptor) -> Token:
        """Return a token for ``descriptor.name``.

        Args:
            headers: Extra request headers, including ``X-GitHub-OTP`` when
                the account needs it. Reused for the lookup.
            descriptor: The validated request.

        Raises:
            TokenNotFound: If creation reported a duplicate but no
                authorization carries the note.
            ProvisionFailed: For any other creation or lookup failure.
        """
        output = get_output()
        try:
            record = self._client.create_authorization(
                authorization_payload(descriptor), headers=headers
            )
        except APIError as exc:
            if exc.status_code != DUPLICATE_STATUS:
                raise ProvisionFailed(exc) from exc
            output.debug(f"Note '{descriptor.name}' already exists, looking it up")
            return Token(value=self.find_existing(descriptor.name, headers), created=False)
        except GhtokenError as exc:
            raise ProvisionFailed(exc) from exc

        if not record.token:
            raise ProvisionFailed(GhtokenError("Created authorization has no token"))
        output.info("Token created!")
        return Token(value=record.token, created=True)

    def find_existing(self, name: str, headers: dict[str, str]) -> str:
        """Return the token of the first authorization whose note is *name*.

        Raises:
            TokenNotFound: If no authorization matches.
            ProvisionFailed: If listing fails.
        """
        try:
            records = self._client.list_authorizations(headers=headers)
        except GhtokenError as exc:
            raise ProvisionFailed(exc) from exc

        for record in records:
            if record.note == name:
                if not record.token:
                    break
                get_output().info("Existing token found!")
                return record.token
        raise TokenNotFound(name)


def create_authorization(
    client: GitHubClient, headers: dict[str, str], descriptor: RequestDescriptor
) -> Token:
    """Shortcut for ``TokenProvisioner(client).provision(headers, descriptor)``."""
    return TokenProvisioner(client).provision(headers, descriptor)


def get_existing_token(client: GitHubClient, name: str, headers: dict[str, str]) -> str:
    """Shortcut for ``TokenProvisioner(client).find_existing(name, headers)``."""
    return TokenProvisioner(client).find_existing(name, headers)
