"""Token acquisition flow for ghtoken.

The package splits a token request into small steps, each in its own
module, and an orchestrator that runs them in order:

- :class:`CredentialResolver` -- username and password, supplied or prompted.
- :class:`AuthSession` -- scopes the client's Basic auth to one run.
- :class:`TwoFactorProbe` -- does the account need a one-time code?
- :class:`CodeResolver` -- the ``X-GitHub-OTP`` header, prompting if needed.
- :class:`TokenProvisioner` -- create the authorization or recover it by note.
- :class:`AuthenticationOrchestrator` -- runs the above and always clears auth.

Typical usage::

    from ghtoken.auth import request_token

    token = request_token({"name": "ci-token"})
"""

from ghtoken.auth.credentials import CredentialResolver
from ghtoken.auth.orchestrator import (
    AuthenticationOrchestrator,
    OrchestratorState,
    request_token,
    requires_code,
)
from ghtoken.auth.provisioner import TokenProvisioner, create_authorization, get_existing_token
from ghtoken.auth.session import AuthSession
from ghtoken.auth.twofactor import (
    OTP_REQUIRED_MESSAGE,
    CodeResolver,
    TwoFactorProbe,
    create_request_headers,
    user_requires_code,
)

__all__ = [
    "AuthSession",
    "AuthenticationOrchestrator",
    "CodeResolver",
    "CredentialResolver",
    "OTP_REQUIRED_MESSAGE",
    "OrchestratorState",
    "TokenProvisioner",
    "TwoFactorProbe",
    "create_authorization",
    "create_request_headers",
    "get_existing_token",
    "request_token",
    "requires_code",
    "user_requires_code",
]
