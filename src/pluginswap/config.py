"""Configuration merging, ``.env`` persistence and XDG paths.

The update pipeline consumes a single validated
:class:`~pluginswap.models.UpdateRequest`. This module builds it from three
layers, highest precedence first:

1. CLI flags (``--server-url``, ``--token``, ...)
2. Process environment variables (``JENKINS_URL``, ``JENKINS_TOKEN``, ...)
3. The ``.env`` settings file in the working directory

After a successful merge the effective values are written back to the
settings file so the next run needs no flags. Writes use an atomic
temp-file-then-rename strategy (:func:`_atomic_write`).
"""

from __future__ import annotations

import os
import platform
import re
import tempfile
from pathlib import Path
from typing import Mapping, NamedTuple, Optional

from dotenv import dotenv_values
from pydantic import ValidationError

from pluginswap.exceptions import ConfigError, InvalidUsageError
from pluginswap.models import UpdateRequest

_APP_NAME = "pluginswap"
DEFAULT_ENV_FILE = ".env"


class Setting(NamedTuple):
    """One required value: model field, environment variable and CLI flag."""

    field: str
    env: str
    flag: str


SETTINGS: tuple[Setting, ...] = (
    Setting("cli_path", "JENKINS_CLI_PATH", "--cli-path"),
    Setting("server_url", "JENKINS_URL", "--server-url"),
    Setting("user", "JENKINS_USER", "--user"),
    Setting("token", "JENKINS_TOKEN", "--token"),
    Setting("plugin_name", "PLUGIN_NAME", "--plugin-name"),
    Setting("plugin_path", "PLUGIN_PATH", "--plugin-path"),
    Setting("war_path", "JENKINS_WAR_PATH", "--war-path"),
)

SECRET_FIELDS = frozenset({"token"})

USAGE_EXAMPLE = (
    "pluginswap update --cli-path C:\\path\\to\\jenkins-cli.jar "
    "--server-url http://localhost:8080 --user admin --token 1234567890abcdef "
    "--plugin-name my-plugin --plugin-path C:\\path\\to\\plugin.hpi "
    "--war-path C:\\path\\to\\jenkins.war"
)

_SAFE_VALUE = re.compile(r"^[A-Za-z0-9_\-./:@+,=~%]*$")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/pluginswap/`` (default
    ``~/.local/share/pluginswap/``). Elsewhere: ``~/.pluginswap/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
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


# --- Settings file ---


def load_env_file(path: Path) -> dict[str, str]:
    """Read ``KEY=value`` pairs from *path*.

    A missing file yields an empty dict. Keys without a value are dropped.

    Raises:
        ConfigError: If the file exists but cannot be read or decoded.
    """
    if not path.is_file():
        return {}
    try:
        raw = dotenv_values(path, interpolate=False, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc
    return {key: value for key, value in raw.items() if value is not None}


def _quote(value: str) -> str:
    """Quote *value* so that ``dotenv_values`` reads it back unchanged."""
    if _SAFE_VALUE.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def save_env_file(path: Path, values: Mapping[str, str]) -> None:
    """Persist *values* to *path*, preserving unrelated keys already in it.

    Empty values are not written.

    Raises:
        ConfigError: If the file cannot be written.
    """
    merged = load_env_file(path)
    merged.update({key: value for key, value in values.items() if value})
    body = "".join(f"{key}={_quote(value)}\n" for key, value in merged.items())
    try:
        _atomic_write(path, body)
    except OSError as exc:
        raise ConfigError(f"Cannot save settings file {path}: {exc}") from exc


# --- Precedence resolution ---


def merge_settings(
    overrides: Mapping[str, Optional[str]],
    file_values: Mapping[str, str],
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Merge flag overrides, environment and settings-file values.

    Args:
        overrides: Values from CLI flags keyed by model field name. ``None``
            or empty strings mean "not given".
        file_values: Values read from the settings file, keyed by
            environment variable name.
        environ: Process environment; defaults to :data:`os.environ`.

    Returns:
        A dict keyed by environment variable name containing every value
        that was found (missing settings are absent).
    """
    env = os.environ if environ is None else environ
    merged: dict[str, str] = {}
    for setting in SETTINGS:
        # Precedence low to high: settings file, environment, flag.
        value = file_values.get(setting.env) or ""
        value = env.get(setting.env) or value
        value = overrides.get(setting.field) or value
        if value:
            merged[setting.env] = value
    return merged


def missing_settings(merged: Mapping[str, str]) -> list[Setting]:
    """Return the required settings absent from *merged*."""
    return [setting for setting in SETTINGS if not merged.get(setting.env)]


def build_request(merged: Mapping[str, str]) -> UpdateRequest:
    """Turn merged settings into an :class:`UpdateRequest`.

    Raises:
        InvalidUsageError: If any required setting is missing or invalid.
    """
    missing = missing_settings(merged)
    if missing:
        names = ", ".join(f"{s.flag} (or {s.env})" for s in missing)
        raise InvalidUsageError(f"All settings are required; missing: {names}")
    try:
        return UpdateRequest(**{s.field: merged[s.env] for s in SETTINGS})
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid settings: {exc}") from exc


def resolve_request(
    overrides: Mapping[str, Optional[str]],
    env_file: Path = Path(DEFAULT_ENV_FILE),
    save: bool = True,
    environ: Optional[Mapping[str, str]] = None,
) -> tuple[UpdateRequest, list[str]]:
    """Load, merge, persist and validate the update settings.

    Settings-file read and write failures do not stop the run; they are
    returned as warning strings for the caller to report.

    Returns:
        A tuple of ``(request, warnings)``.

    Raises:
        InvalidUsageError: If a required setting is missing after merging.
    """
    warnings: list[str] = []
    try:
        file_values = load_env_file(env_file)
    except ConfigError as exc:
        warnings.append(str(exc))
        file_values = {}

    merged = merge_settings(overrides, file_values, environ)

    if save:
        try:
            save_env_file(env_file, merged)
        except ConfigError as exc:
            warnings.append(str(exc))

    return build_request(merged), warnings


def mask_secret(value: str) -> str:
    """Hide all but the last four characters of *value*."""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]
