"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~ghtoken.exceptions.GhtokenError` subclass.
Shell scripts wrapping ``ghtoken create`` can inspect the exit code to tell
a bad option apart from a rejected login without parsing stderr.

Example::

    $ ghtoken create ci-token --username alice
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- credentials were rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid options."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or the two-factor probe returned an unexpected answer."""

EXIT_NOT_FOUND = 4
"""An authorization the API reported as existing could not be found."""

EXIT_API_ERROR = 5
"""The remote API rejected a request."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CANCELLED = 130
"""The user cancelled an interactive prompt (Ctrl-C / EOF)."""
