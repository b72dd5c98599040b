"""Option validation and client configuration.

This module handles two kinds of configuration:

* **Request options** -- :func:`build_descriptor` turns whatever the caller
  passed to :func:`~ghtoken.auth.orchestrator.request_token` into a frozen
  :class:`~ghtoken.models.RequestDescriptor`, or raises
  :class:`~ghtoken.exceptions.InvalidConfig`. It never prompts, never
  touches the network and never mutates the caller's object.
* **Client settings** -- :func:`resolve_settings` merges CLI flags,
  environment variables and the global config file into the
  :class:`~ghtoken.models.ClientSettings` used by the HTTP client.

Directory layout is XDG Base Directory compliant on Linux/BSD and
``~/.ghtoken/`` on macOS and Windows. Config writes use an atomic
temp-file-then-rename strategy (:func:`_atomic_write`). Tokens are never
written by this module.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ghtoken.exceptions import ConfigError, InvalidConfig
from ghtoken.models import ClientSettings, GlobalConfig, PromptMessages, RequestDescriptor

_APP_NAME = "ghtoken"
_CONFIG_FILENAME = "config.json"

_PROMPT_KEYS = ("username", "password", "code")
_STRING_KEYS = ("username", "password", "code")
_OPTION_KEYS = ("name", "scopes", "url", "prompt") + _STRING_KEYS


# --- Request options ---


def build_descriptor(options: Any) -> RequestDescriptor:
    """Validate caller options and return an immutable request descriptor.

    Rules are checked in a fixed order and the first violation wins:

    1. *options* must be a mapping.
    2. ``name`` must be present and a non-empty string.
    3. ``scopes``, if present, must be a list or tuple of strings.
    4. ``url``, if present, must be a string.
    5. ``prompt``, if present, must be a mapping of string messages.
    6. ``username``, ``password`` and ``code``, if present, must be strings.
       An empty string is allowed and means "prompt for it".

    A key whose value is ``None`` is treated as absent.

    Args:
        options: Caller-supplied options, e.g. ``{"name": "ci-token"}``.

    Returns:
        A frozen :class:`~ghtoken.models.RequestDescriptor`.

    Raises:
        InvalidConfig: On the first rule that *options* violates.
    """
    if not isinstance(options, Mapping):
        raise InvalidConfig("options object required")

    # Unknown keys are ignored. Every value kept below is a str or a new
    # tuple, so the descriptor never shares state with *options*.
    opts = {key: options[key] for key in _OPTION_KEYS if key in options}

    name = opts.get("name")
    if name is None:
        raise InvalidConfig("name required")
    if not isinstance(name, str) or not name:
        raise InvalidConfig("name must be non-empty string")

    scopes = opts.get("scopes")
    if scopes is None:
        scopes = []
    if not isinstance(scopes, (list, tuple)):
        raise InvalidConfig("scopes must be a sequence")
    if not all(isinstance(scope, str) for scope in scopes):
        raise InvalidConfig("scopes must contain only strings")

    url = opts.get("url")
    if url is None:
        url = ""
    if not isinstance(url, str):
        raise InvalidConfig("url must be a string")

    prompt = opts.get("prompt")
    if prompt is None:
        prompt = {}
    if not isinstance(prompt, Mapping):
        raise InvalidConfig("prompt must be an object")
    for key in _PROMPT_KEYS:
        value = prompt.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidConfig(f"prompt.{key} must be a string")

    for key in _STRING_KEYS:
        value = opts.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidConfig(f"{key} must be a string")

    return RequestDescriptor(
        name=name,
        scopes=tuple(scopes),
        url=url,
        prompt=PromptMessages(**{key: prompt.get(key) for key in _PROMPT_KEYS}),
        username=opts.get("username"),
        password=opts.get("password"),
        code=opts.get("code"),
    )


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/ghtoken/`` (default ``~/.config/ghtoken/``).
    On macOS/Windows: ``~/.ghtoken/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory used for crash logs, creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/ghtoken/`` (default ``~/.local/share/ghtoken/``).
    On macOS/Windows: ``~/.ghtoken/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~ghtoken.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    cli_api_url: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> ClientSettings:
    """Resolve client settings with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_api_url``, ``cli_timeout``)
        2. Environment variables (``GHTOKEN_API_URL``, ``GHTOKEN_TIMEOUT``)
        3. User config (``~/.config/ghtoken/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the config file is invalid or ``GHTOKEN_TIMEOUT``
            is not a positive number.
    """
    settings = load_global_config().client
    overrides: dict[str, Any] = {}

    env_url = os.environ.get("GHTOKEN_API_URL")
    if env_url:
        overrides["api_url"] = env_url
    env_timeout = os.environ.get("GHTOKEN_TIMEOUT")
    if env_timeout:
        overrides["timeout"] = env_timeout

    if cli_api_url is not None:
        overrides["api_url"] = cli_api_url
    if cli_timeout is not None:
        overrides["timeout"] = cli_timeout

    if not overrides:
        return settings
    try:
        return ClientSettings.model_validate({**settings.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid client settings: {exc}") from exc
