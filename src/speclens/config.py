"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for speclens:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.speclens/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~speclens.models.GlobalConfig`
  JSON file storing defaults (output format, cache, processing settings).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.

Nothing in the parsing or processing core imports this module; only the
CLI layer reads configuration and passes plain values down.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from speclens.exceptions import ConfigError
from speclens.models import GlobalConfig

_APP_NAME = "speclens"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "speclens.json"

_TRUTHY = ("1", "true", "yes", "on")


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/speclens/`` (default ``~/.config/speclens/``).
    On macOS/Windows: ``~/.speclens/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Used to store analysis results keyed by document hash. Cached data can
    be safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/speclens/`` (default ``~/.cache/speclens/``).
    On macOS/Windows: ``~/.speclens/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CACHE_HOME", (".cache",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/speclens/`` (default ``~/.local/share/speclens/``).
    On macOS/Windows: ``~/.speclens/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
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
        fd = None  # prevent double-close in finally
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
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~speclens.models.GlobalConfig`. If the
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
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./speclens.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. A repository can use it to pin processing
    settings (e.g. a smaller ``chunk_size``) for its own API descriptions.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or is not
            a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into a copy of *base*."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_format: Optional[str] = None,
    cli_no_cache: bool = False,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_format``, ``cli_no_cache``)
        2. Environment variables (``SPECLENS_FORMAT``, ``SPECLENS_NO_CACHE``)
        3. Project config (``./speclens.json``)
        4. User config (``~/.config/speclens/config.json``)
        5. Defaults

    Returns:
        The effective :class:`~speclens.models.GlobalConfig`.

    Raises:
        ConfigError: If a config file is invalid or the merged result fails
            validation.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    global_cfg = load_global_config()

    # 3. Layer in project-local config
    project = load_project_config()
    if project is not None:
        merged = _deep_merge(global_cfg.model_dump(mode="json"), project)
        try:
            global_cfg = GlobalConfig.model_validate(merged)
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    # 2. Environment variables
    env_format = os.environ.get("SPECLENS_FORMAT")
    if env_format:
        global_cfg.output.format = env_format
    if os.environ.get("SPECLENS_NO_CACHE", "").lower() in _TRUTHY:
        global_cfg.cache.enabled = False

    # 1. CLI flags (highest precedence)
    if cli_format is not None:
        global_cfg.output.format = cli_format
    if cli_no_cache:
        global_cfg.cache.enabled = False

    return global_cfg
