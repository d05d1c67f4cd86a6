"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for specgate:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.specgate/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~specgate.models.GlobalConfig`
  JSON file storing defaults (spec source, output format, cache and
  validation settings).
* **Precedence resolution** -- :func:`resolve_config` merges the
  ``--spec`` flag, the ``SPECGATE_SPEC`` environment variable,
  project-local config, and global config into the effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a truncated config behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specgate.exceptions import ConfigError
from specgate.models import GlobalConfig

_APP_NAME = "specgate"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specgate.json"

SPEC_ENV_VAR = "SPECGATE_SPEC"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms following the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/specgate/`` (default ``~/.config/specgate/``).
    On macOS/Windows: ``~/.specgate/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds remote spec text cached by :class:`~specgate.cache.SpecCache`;
    it can be deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/specgate/`` (default ``~/.cache/specgate/``).
    On macOS/Windows: ``~/.specgate/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/specgate/`` (default ``~/.local/share/specgate/``).
    On macOS/Windows: ``~/.specgate/logs/``.
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

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original file is left untouched.
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
        fd = None
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


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~specgate.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
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
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(config: GlobalConfig, key: str, value: str) -> GlobalConfig:
    """Return a copy of *config* with the dotted *key* set to *value*.

    *value* is parsed as JSON when possible (``true``, ``300``), otherwise
    used as a plain string. ``null`` clears optional fields.

    Args:
        config: The configuration to update.
        key: Dotted field path, e.g. ``cache.ttl_seconds`` or ``default_spec``.
        value: The new value as typed on the command line.

    Raises:
        ConfigError: If *key* names no field or the value fails validation.
    """
    try:
        parsed: Any = json.loads(value)
    except json.JSONDecodeError:
        parsed = value

    data = config.model_dump(mode="json")
    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            raise ConfigError(f"Unknown config key '{key}'")
        target = child
    if parts[-1] not in target:
        raise ConfigError(f"Unknown config key '{key}'")
    if isinstance(target[parts[-1]], dict):
        raise ConfigError(f"'{key}' is a section; set one of its fields instead")
    target[parts[-1]] = parsed

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for '{key}': {exc.errors()[0]['msg']}") from exc


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specgate.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. It typically sets ``default_spec`` so that a
    repository can pin the contract its tests validate against.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_config(
    cli_spec: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[str]]:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--spec``, ``--json``/``--plain``)
        2. Environment variable ``SPECGATE_SPEC``
        3. Project config (``./specgate.json``)
        4. User config (``~/.config/specgate/config.json``)
        5. Defaults

    Project config may override ``default_spec`` and the ``validation``
    section.

    Returns:
        A tuple of ``(global_config, spec_source_or_None)``.
    """
    global_cfg = load_global_config()
    spec: Optional[str] = global_cfg.default_spec

    project = load_project_config()
    if project is not None:
        if project.get("default_spec"):
            spec = project["default_spec"]
        if isinstance(project.get("validation"), dict):
            merged = global_cfg.validation.model_dump()
            merged.update(project["validation"])
            try:
                global_cfg = global_cfg.model_copy(
                    update={"validation": type(global_cfg.validation).model_validate(merged)}
                )
            except ValidationError as exc:
                raise ConfigError(f"Invalid 'validation' in project config: {exc}") from exc

    env_spec = os.environ.get(SPEC_ENV_VAR)
    if env_spec:
        spec = env_spec

    if cli_spec is not None:
        spec = cli_spec

    if cli_format is not None:
        global_cfg.output.format = cli_format

    return global_cfg, spec
