"""Exception hierarchy for ghtoken.

All exceptions inherit from :class:`GhtokenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`ghtoken.exit_codes`.
The top-level error handler in :func:`ghtoken.app.main` catches
``GhtokenError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    GhtokenError (exit 1)
    +-- InvalidConfig       (exit 2)
    +-- ConfigError         (exit 1)
    +-- PromptAborted       (exit 130)
    +-- ProbeFailed         (exit 3)
    +-- CodeRequiredError   (exit 1)
    +-- TokenNotFound       (exit 4)
    +-- ProvisionFailed     (exit 5)
    +-- APIError            (exit 5)
    +-- ConnectionError_    (exit 6)
"""

from __future__ import annotations

from typing import Any, Optional

from ghtoken.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)


class GhtokenError(Exception):
    """Base exception for all ghtoken errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`ghtoken.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidConfig(GhtokenError):
    """Raised synchronously when caller-supplied options are malformed."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(GhtokenError):
    """Raised for problems with the on-disk config file or environment overrides."""

    exit_code = EXIT_GENERIC_FAILURE


class PromptAborted(GhtokenError):
    """Raised when the user cancels an interactive prompt, or none can be shown."""

    exit_code = EXIT_CANCELLED


class CodeRequiredError(GhtokenError):
    """Raised when a one-time code header is built without a code.

    The public entry points always resolve a code before building headers,
    so seeing this error means a caller broke that contract.
    """

    exit_code = EXIT_GENERIC_FAILURE


class TokenNotFound(GhtokenError):
    """Raised when creation reported a duplicate note but no authorization carries it."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"No existing token found for note '{name}'")
        self.name = name


class _WrappedError(GhtokenError):
    """Base for errors that wrap an underlying failure as ``cause``."""

    prefix = ""

    def __init__(self, cause: BaseException):
        super().__init__(f"{self.prefix}: {cause}")
        self.cause = cause


class ProbeFailed(_WrappedError):
    """Raised when the two-factor probe fails for any reason other than the OTP signal."""

    exit_code = EXIT_AUTH_FAILURE
    prefix = "Two-factor check failed"


class ProvisionFailed(_WrappedError):
    """Raised when creating or looking up an authorization fails."""

    exit_code = EXIT_API_ERROR
    prefix = "Token provisioning failed"


class APIError(GhtokenError):
    """Raised by :class:`~ghtoken.client.GitHubClient` for non-2xx responses.

    Args:
        status_code: HTTP status of the response.
        body: Decoded JSON body, or the raw text when the body is not JSON.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, status_code: int, body: Any = None):
        message = _body_message(body)
        text = f"HTTP {status_code}: {message}" if message else f"HTTP {status_code}"
        super().__init__(text)
        self.status_code = status_code
        self.body = body

    @property
    def message(self) -> Optional[str]:
        """The ``message`` field of a JSON error body, if there is one."""
        if isinstance(self.body, dict):
            value = self.body.get("message")
            return value if isinstance(value, str) else None
        return None


class ConnectionError_(GhtokenError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


def _body_message(body: Any) -> str:
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error") or ""
        return str(msg)
    if body is None:
        return ""
    return str(body)[:200]
