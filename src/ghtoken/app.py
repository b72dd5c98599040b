"""Typer application and CLI entry point for ghtoken.

Commands:

* ``ghtoken create NAME`` -- acquire (or recover) the token with note
  ``NAME`` and print it to stdout.
* ``ghtoken requires-code`` -- print whether an account needs a one-time
  code.
* ``ghtoken config show|set|reset`` -- manage the global configuration
  (client defaults and default scopes).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It invokes the Typer app; Ctrl-C exits with code 130.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`ghtoken.config`: Client settings resolution.
    :mod:`ghtoken.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import sys
import traceback
from datetime import datetime
from typing import NoReturn, Optional

import typer

from ghtoken import __version__
from ghtoken.exceptions import GhtokenError
from ghtoken.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE
from ghtoken.output import error, format_response, suggest


app = typer.Typer(
    name="ghtoken",
    help="Get a GitHub personal access token, with two-factor support.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


from ghtoken.commands.config import config_app  # noqa: E402

app.add_typer(config_app, name="config", help="View and modify the global configuration.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"ghtoken {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    api_url: Optional[str] = typer.Option(
        None, "--api-url", help="GitHub API root (default https://api.github.com)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="HTTP timeout in seconds."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~ghtoken.output.OutputManager` from
    CLI flags and stores the connection overrides in ``ctx.obj``.
    """
    from ghtoken.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url
    ctx.obj["timeout"] = timeout


@app.command("create")
def create_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="Token note; running again with the same note returns the same token."),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", "-s", help="OAuth scope to request (repeatable)."
    ),
    url: str = typer.Option("", "--url", help="URL stored as the token's note_url."),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", envvar="GITHUB_USERNAME", help="GitHub username."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", envvar="GITHUB_PASSWORD", help="GitHub password."
    ),
    code: Optional[str] = typer.Option(
        None, "--code", envvar="GITHUB_OTP", help="One-time code, if the account uses 2FA."
    ),
    username_prompt: Optional[str] = typer.Option(
        None, "--username-prompt", help="Text of the username prompt."
    ),
    password_prompt: Optional[str] = typer.Option(
        None, "--password-prompt", help="Text of the password prompt."
    ),
    code_prompt: Optional[str] = typer.Option(
        None, "--code-prompt", help="Text of the one-time code prompt."
    ),
) -> None:
    """Create a token, or print the existing one with the same note.

    Missing username, password and one-time code are prompted for on the
    terminal. The token is the only thing written to stdout.

    Example::

        ghtoken create my-laptop --scope repo --scope gist
    """
    from ghtoken.auth import AuthenticationOrchestrator
    from ghtoken.client import GitHubClient
    from ghtoken.config import build_descriptor, load_global_config, resolve_settings

    try:
        settings = resolve_settings(ctx.obj.get("api_url"), ctx.obj.get("timeout"))
        scopes = list(scope) if scope else load_global_config().default_scopes
        descriptor = build_descriptor(
            {
                "name": name,
                "scopes": scopes,
                "url": url,
                "prompt": {
                    "username": username_prompt,
                    "password": password_prompt,
                    "code": code_prompt,
                },
                "username": username,
                "password": password,
                "code": code,
            }
        )
        with GitHubClient(settings) as client:
            token = AuthenticationOrchestrator(client).run(descriptor)
    except GhtokenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except KeyboardInterrupt:
        _cancelled()

    format_response(
        token.value if not _json_mode() else {"token": token.value, "created": token.created}
    )


@app.command("requires-code")
def requires_code_command(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(
        None, "--username", "-u", envvar="GITHUB_USERNAME", help="GitHub username."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", envvar="GITHUB_PASSWORD", help="GitHub password."
    ),
) -> None:
    """Print whether the account needs a one-time code (``true``/``false``)."""
    from ghtoken.auth import requires_code
    from ghtoken.config import resolve_settings
    from ghtoken.prompt import TerminalPrompter, prompt_password, prompt_username

    try:
        settings = resolve_settings(ctx.obj.get("api_url"), ctx.obj.get("timeout"))
        prompter = TerminalPrompter()
        username = username or prompt_username(prompter)
        password = password or prompt_password(prompter)
        required = requires_code({"username": username, "password": password}, settings=settings)
    except GhtokenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except KeyboardInterrupt:
        _cancelled()

    format_response({"requires_code": required} if _json_mode() else required)
    if required:
        suggest("Pass the current code with --code or GITHUB_OTP, or answer the prompt.")


def _json_mode() -> bool:
    from ghtoken.output import OutputFormat, get_output

    return get_output().format == OutputFormat.JSON


def _cancelled() -> NoReturn:
    """Report a Ctrl-C outside any prompt and exit with the cancel code.

    Ctrl-C during a prompt surfaces as :class:`~ghtoken.exceptions.PromptAborted`
    instead, and is reported like any other error.
    """
    error("Cancelled.")
    raise typer.Exit(code=EXIT_CANCELLED)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from ghtoken.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``ghtoken`` console script.

    Unhandled :class:`~ghtoken.exceptions.GhtokenError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except GhtokenError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
