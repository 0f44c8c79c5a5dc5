"""Exception hierarchy for pluginswap.

All exceptions inherit from :class:`PluginSwapError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pluginswap.exit_codes`.
The top-level error handler in :func:`pluginswap.app.main` catches
``PluginSwapError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PluginSwapError (exit 1)
    +-- ConfigError            (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- PreconditionError      (exit 3)
    +-- QueryError             (exit 4)
    +-- UninstallError         (exit 5)
    +-- InstallError           (exit 6)
    +-- LaunchError            (exit 7)
    +-- RestartTimeoutError    (exit 8)
    +-- RestartRequestError    (exit 9)
    |   +-- RestartRequestWarning  (exit 9)
    +-- VerificationWarning    (exit 1)

The two ``*Warning`` classes are non-fatal by default: the orchestrator
reports them and carries on. ``RestartRequestWarning`` only aborts a run
started with ``strict_restart``. Its parent ``RestartRequestError`` is always
fatal: it means the shutdown request never reached the server.
"""

from __future__ import annotations

from pluginswap.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INSTALL_FAILED,
    EXIT_INVALID_USAGE,
    EXIT_LAUNCH_FAILED,
    EXIT_PRECONDITION_FAILED,
    EXIT_QUERY_FAILED,
    EXIT_RESTART_REQUEST_FAILED,
    EXIT_RESTART_TIMEOUT,
    EXIT_UNINSTALL_FAILED,
)


class PluginSwapError(Exception):
    """Base exception for all pluginswap errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pluginswap.exit_codes`. The entry point catches
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


class ConfigError(PluginSwapError):
    """Raised for settings-file problems (unreadable file, failed save)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidUsageError(PluginSwapError):
    """Raised for invalid CLI arguments or missing required settings."""

    exit_code = EXIT_INVALID_USAGE


class PreconditionError(PluginSwapError):
    """Raised when the server is unreachable before the pipeline starts."""

    exit_code = EXIT_PRECONDITION_FAILED


class QueryError(PluginSwapError):
    """Raised when the plugin listing fails (network, non-200, or bad body)."""

    exit_code = EXIT_QUERY_FAILED


class UninstallError(PluginSwapError):
    """Raised when the uninstall POST returns anything but HTTP 200."""

    exit_code = EXIT_UNINSTALL_FAILED


class InstallError(PluginSwapError):
    """Raised when the installer tool cannot start or exits non-zero.

    Args:
        message: Human-readable error description.
        output: Combined stdout/stderr captured from the installer, if any.
    """

    exit_code = EXIT_INSTALL_FAILED

    def __init__(self, message: str, output: str = ""):
        self.output = output
        if output:
            message = f"{message}\nOutput: {output}"
        super().__init__(message)


class LaunchError(PluginSwapError):
    """Raised when the server process cannot be spawned."""

    exit_code = EXIT_LAUNCH_FAILED


class RestartTimeoutError(PluginSwapError):
    """Raised when the server does not answer the probe within the poll budget."""

    exit_code = EXIT_RESTART_TIMEOUT


class RestartRequestError(PluginSwapError):
    """Raised when the shutdown POST cannot be sent at all."""

    exit_code = EXIT_RESTART_REQUEST_FAILED


class RestartRequestWarning(RestartRequestError):
    """Raised when the server answers the shutdown POST with a non-200 status."""


class VerificationWarning(PluginSwapError):
    """Raised when the post-restart plugin listing cannot be fetched."""

    exit_code = EXIT_GENERIC_FAILURE
