"""Installer and server process launching.

:class:`ProcessInvoker` owns the two external processes of the pipeline:

* the **installer** -- ``java -jar jenkins-cli.jar ... install-plugin``, run to
  completion with stderr merged into stdout;
* the **server** -- ``java -jar jenkins.war``, spawned detached and never
  awaited.

Commands are always built as argument lists and executed without a shell,
so paths and credentials are passed through verbatim.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from typing import Any

from pluginswap.exceptions import InstallError, LaunchError
from pluginswap.models import UpdateRequest

logger = logging.getLogger(__name__)

DEFAULT_JAVA = "java"


def redact_command(command: list[str], secret: str) -> str:
    """Render *command* for display with *secret* replaced by ``***``."""
    shown = [arg.replace(secret, "***") if secret else arg for arg in command]
    return " ".join(shown)


class ProcessInvoker:
    """Launches the installer tool and the server runtime.

    Args:
        java: The Java executable used for both processes.
    """

    def __init__(self, java: str = DEFAULT_JAVA) -> None:
        self._java = java

    @property
    def java(self) -> str:
        return self._java

    # ------------------------------------------------------------------ #
    # Installer
    # ------------------------------------------------------------------ #

    def build_install_command(
        self,
        cli_path: str,
        server_url: str,
        user: str,
        token: str,
        plugin_path: str,
    ) -> list[str]:
        """Build the installer argument list.

        Example::

            >>> ProcessInvoker().build_install_command(
            ...     "cli.jar", "http://ci:8080", "admin", "t0k", "p.hpi")
            ['java', '-jar', 'cli.jar', '-s', 'http://ci:8080', '-auth',
             'admin:t0k', 'install-plugin', 'file:///p.hpi']
        """
        return [
            self._java,
            "-jar",
            cli_path,
            "-s",
            server_url,
            "-auth",
            f"{user}:{token}",
            "install-plugin",
            f"file:///{plugin_path}",
        ]

    def install_plugin(self, request: UpdateRequest) -> str:
        """Push the plugin artifact into the running server.

        Blocks until the installer exits. Output is decoded as UTF-8 and
        undecodable bytes become U+FFFD.

        Returns:
            The installer's combined stdout/stderr.

        Raises:
            InstallError: If the installer cannot be started or exits with a
                non-zero status. The captured output is attached.
        """
        command = self.build_install_command(
            request.cli_path,
            request.server_url,
            request.user,
            request.token,
            request.plugin_path,
        )
        logger.debug("Running installer: %s", redact_command(command, request.token))
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise InstallError(f"Command execution failed: {exc}") from exc

        output = result.stdout or ""
        if result.returncode != 0:
            raise InstallError(
                f"Command execution failed: exit status {result.returncode}",
                output=output,
            )
        return output

    # ------------------------------------------------------------------ #
    # Server
    # ------------------------------------------------------------------ #

    def build_launch_command(self, war_path: str) -> list[str]:
        return [self._java, "-jar", war_path]

    def launch_server(self, war_path: str) -> subprocess.Popen:
        """Start the server runtime in the background.

        The child is detached from this process (own session on POSIX, own
        process group without a console on Windows) and its standard streams
        are discarded, so it keeps running after pluginswap exits.

        Raises:
            LaunchError: If the process cannot be spawned.
        """
        command = self.build_launch_command(war_path)
        logger.debug("Launching server: %s", " ".join(command))
        try:
            return subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                **_detach_kwargs(),
            )
        except OSError as exc:
            raise LaunchError(f"Failed to start server: {exc}") from exc


def _detach_kwargs() -> dict[str, Any]:
    """Platform-specific :class:`subprocess.Popen` options for detaching."""
    if sys.platform == "win32":
        flags = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        return {"creationflags": flags}
    return {"start_new_session": True}
