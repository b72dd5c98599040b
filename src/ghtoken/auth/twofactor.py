"""Two-factor detection and one-time code headers.

GitHub has no endpoint that says whether an account uses 2FA. The
:class:`TwoFactorProbe` asks indirectly: it requests one page of authorizations
with Basic auth only, and an account that needs a one-time code answers with a
401 whose body message is exactly :data:`OTP_REQUIRED_MESSAGE`. Any other
outcome that is not a success is a real failure.

:class:`CodeResolver` then turns "a code is required" into the
``X-GitHub-OTP`` request header, prompting for the code if the caller did
not supply one.
"""

from __future__ import annotations

from typing import Optional

from ghtoken.client import GitHubClient
from ghtoken.exceptions import APIError, CodeRequiredError, ProbeFailed
from ghtoken.models import OTP_HEADER, PromptKind
from ghtoken.output import get_output
from ghtoken.prompt import Prompter, prompt_value

OTP_REQUIRED_MESSAGE = "Must specify two-factor authentication OTP code."


def is_otp_required_error(exc: BaseException) -> bool:
    """Return True if *exc* is GitHub's "one-time code required" answer."""
    return (
        isinstance(exc, APIError)
        and exc.status_code == 401
        and exc.message == OTP_REQUIRED_MESSAGE
    )


class TwoFactorProbe:
    """Find out whether the authenticated account needs a one-time code.

    Must run while the client holds the Basic credentials being checked.

    Args:
        client: Client whose Basic auth is already set.
    """

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    def probe(self) -> bool:
        """Return True if a one-time code is required, False otherwise.

        Raises:
            ProbeFailed: For any failure other than the 2FA signal, e.g. a
                wrong password, a network error or a malformed body.
        """
        try:
            self._client.list_authorizations(all_pages=False)
        except Exception as exc:
            if is_otp_required_error(exc):
                get_output().debug("Account requires a one-time code")
                return True
            raise ProbeFailed(exc) from exc
        get_output().debug("Account does not require a one-time code")
        return False


def create_request_headers(required: bool = False, code: Optional[str] = None) -> dict[str, str]:
    """Build the request headers for a code requirement.

    Args:
        required: Whether the account needs a one-time code.
        code: The code to send.

    Returns:
        ``{}`` when no code is required, else ``{"X-GitHub-OTP": code}``.

    Raises:
        CodeRequiredError: If *required* is True and *code* is empty.
    """
    headers: dict[str, str] = {}
    if required:
        if not code:
            raise CodeRequiredError("Code required but not given")
        headers[OTP_HEADER] = code
    return headers


class CodeResolver:
    """Produce request headers, prompting for a one-time code if needed.

    Args:
        prompter: Source of interactive input.
    """

    def __init__(self, prompter: Prompter) -> None:
        self._prompter = prompter

    def resolve_headers(
        self,
        required: bool,
        supplied_code: Optional[str] = None,
        prompt_message: Optional[str] = None,
    ) -> dict[str, str]:
        """Return the headers for the token request.

        Nothing is prompted when *required* is False, whatever
        *supplied_code* holds.

        Raises:
            PromptAborted: If the code prompt is cancelled.
        """
        if not required:
            return create_request_headers()
        code = supplied_code or prompt_value(self._prompter, PromptKind.CODE, prompt_message)
        return create_request_headers(required, code)


def user_requires_code(client: GitHubClient) -> bool:
    """Shortcut for ``TwoFactorProbe(client).probe()``."""
    return TwoFactorProbe(client).probe()
