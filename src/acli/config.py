"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for acli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.acli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~acli.models.GlobalConfig` JSON
  file storing the default server URL, client ID, and scopes.
* **Token location** -- :func:`default_token_path` names the one file the
  token store owns. It is fixed by the tool and only redirected in tests
  by injecting a different path into the store.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, and the global config into
  :class:`~acli.models.Settings`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so that a concurrent reader sees either the old or the
new content, never a partial file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from acli.exceptions import ConfigError
from acli.models import GlobalConfig, Settings

_APP_NAME = "acli"
_CONFIG_FILENAME = "config.json"
_TOKEN_FILENAME = "token.json"

ENV_SERVER_URL = "ACLI_SERVER_URL"
ENV_CLIENT_ID = "ACLI_CLIENT_ID"
ENV_GITHUB_CLIENT_ID = "GITHUB_CLIENT_ID"


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


def _config_dir_path() -> Path:
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return _fallback_base_dir()


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/acli/`` (default ``~/.config/acli/``).
    On macOS/Windows: ``~/.acli/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    path = _config_dir_path()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/acli/`` (default ``~/.local/share/acli/``).
    On macOS/Windows: ``~/.acli/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_token_path() -> Path:
    """Return the token file location inside the config directory.

    The directory is *not* created here; the token store creates it on the
    first successful write so that read-only commands leave no trace.
    """
    return _config_dir_path() / _TOKEN_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up and the original exception propagates.

    Args:
        path: Destination file.
        data: Text content to write.
        mode: Optional permission bits applied to the temp file before any
            content is written (e.g. ``0o600`` for secrets).
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
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
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
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~acli.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    cli_server_url: Optional[str] = None,
    cli_client_id: Optional[str] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--server-url``, ``--client-id``)
        2. Environment variables (``ACLI_SERVER_URL``; ``ACLI_CLIENT_ID``
           then ``GITHUB_CLIENT_ID``)
        3. User config (``~/.config/acli/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~acli.models.Settings`.

    Raises:
        ConfigError: If the global config file is invalid.
    """
    global_cfg = load_global_config()

    server_url = global_cfg.server_url
    env_server_url = os.environ.get(ENV_SERVER_URL)
    if env_server_url:
        server_url = env_server_url
    if cli_server_url:
        server_url = cli_server_url

    client_id = global_cfg.client_id
    env_client_id = os.environ.get(ENV_CLIENT_ID) or os.environ.get(ENV_GITHUB_CLIENT_ID)
    if env_client_id:
        client_id = env_client_id
    if cli_client_id:
        client_id = cli_client_id

    return Settings(
        server_url=server_url.rstrip("/"),
        client_id=client_id,
        scope=global_cfg.scope,
        token_path=default_token_path(),
    )
