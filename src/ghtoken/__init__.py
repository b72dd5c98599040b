"""ghtoken -- get a GitHub personal access token from the command line.

The user's username and password (supplied or prompted) are used to create
an authorization with a given note. Accounts with two-factor
authentication are detected and asked for a one-time code. If a token
with the same note already exists, that token is returned instead of an
error, so running the same request twice is safe.

Typical usage::

    $ export GITHUB_TOKEN=$(ghtoken create my-laptop --scope repo)

or from Python::

    from ghtoken import request_token

    token = request_token({"name": "my-laptop", "scopes": ["repo"]})

Modules:
    app: Typer application and CLI entry point.
    auth: The token acquisition flow.
    client: httpx-based GitHub REST client.
    config: Option validation and client settings.
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    prompt: Interactive prompting.
"""

__version__ = "0.3.0"

from ghtoken.auth import request_token, requires_code  # noqa: E402
from ghtoken.config import build_descriptor  # noqa: E402
from ghtoken.prompt import (  # noqa: E402
    prompt_code,
    prompt_password,
    prompt_username,
    prompt_value,
)

__all__ = [
    "__version__",
    "build_descriptor",
    "prompt_code",
    "prompt_password",
    "prompt_username",
    "prompt_value",
    "request_token",
    "requires_code",
]
