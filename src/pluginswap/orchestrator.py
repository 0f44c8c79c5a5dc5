"""The plugin update pipeline.

:class:`PluginUpdateOrchestrator` replaces one plugin on one server by running
these steps strictly in order:

1. ``CHECK_REACHABLE`` -- anonymous ``GET /login`` must return 200.
2. ``QUERY_INSTALLED`` -- fetch the installed plugin short names.
3. ``UNINSTALL_IF_PRESENT`` -- uninstall the plugin, or skip if absent.
4. ``SETTLE_DELAY`` -- give the plugin manager time to settle.
5. ``INSTALL_ARTIFACT`` -- push the artifact with the installer tool.
6. ``REQUEST_RESTART`` -- ``POST /exit``; a non-200 answer is only a warning
   unless ``strict_restart`` is set. A request that never gets an answer
   aborts the run.
7. ``SHUTDOWN_DELAY`` -- wait for the old process to go away.
8. ``LAUNCH_SERVER`` -- spawn the server detached.
9. ``POLL_UNTIL_READY`` -- probe ``/login`` until it answers 200, bounded by
   ``poll_attempts``.
10. ``READY_DELAY`` -- the control API answers before plugins are loaded.
11. ``VERIFY_INSTALLED`` -- list plugins again and produce the verdict.

Every fatal error propagates immediately and the remaining steps never run.
Nothing is rolled back: a failed install after a successful uninstall leaves
the server without the plugin. Only step 9 retries.
"""

from __future__ import annotations

import subprocess
import time
from typing import Callable, Optional

from pluginswap.client import ControlClient
from pluginswap.exceptions import (
    PreconditionError,
    QueryError,
    RestartRequestWarning,
    RestartTimeoutError,
    VerificationWarning,
)
from pluginswap.models import PipelineTimings, Step, UpdateReport, UpdateRequest, Verdict
from pluginswap.output import debug, info, progress, step, success, warning
from pluginswap.process import ProcessInvoker

Sleeper = Callable[[float], None]


class PluginUpdateOrchestrator:
    """Runs the update pipeline for one :class:`UpdateRequest`.

    Args:
        request: What to install and where.
        client: An *open* :class:`ControlClient` for ``request.server_url``.
        invoker: Launches the installer and the server.
        timings: Settle delays and polling limits.
        sleep: Blocking wait used for every delay; tests pass a recorder.
        strict_restart: Abort when the shutdown request is rejected instead
            of reporting it and continuing.

    Example::

        with ControlClient.for_request(request) as client:
            report = PluginUpdateOrchestrator(request, client, ProcessInvoker()).run()
    """

    def __init__(
        self,
        request: UpdateRequest,
        client: ControlClient,
        invoker: ProcessInvoker,
        timings: PipelineTimings = PipelineTimings(),
        sleep: Sleeper = time.sleep,
        strict_restart: bool = False,
    ) -> None:
        self._request = request
        self._client = client
        self._invoker = invoker
        self._timings = timings
        self._sleep = sleep
        self._strict_restart = strict_restart
        self._server_process: Optional[subprocess.Popen] = None

    @property
    def request(self) -> UpdateRequest:
        return self._request

    @property
    def timings(self) -> PipelineTimings:
        return self._timings

    @property
    def server_process(self) -> Optional[subprocess.Popen]:
        """Handle of the relaunched server, once step 8 has run.

        Nothing waits on it. The server outlives pluginswap, so once the
        orchestrator is dropped CPython may emit its "subprocess is still
        running" ``ResourceWarning``, which is hidden by default.
        """
        return self._server_process

    def run(self) -> UpdateReport:
        """Execute every step and return the report.

        Raises:
            PreconditionError: The server was unreachable; nothing was changed.
            QueryError: The plugin listing could not be fetched before the
                uninstall step.
            UninstallError: The uninstall request was rejected.
            InstallError: The installer failed.
            RestartRequestError: The shutdown request could not be sent, or it
                was rejected and ``strict_restart`` is set.
            LaunchError: The server could not be spawned.
            RestartTimeoutError: The server never came back.
        """
        report = UpdateReport(
            plugin_name=self._request.plugin_name,
            server_url=self._request.server_url,
        )

        self.check_reachable()
        report.steps.append(Step.CHECK_REACHABLE)

        info("Starting plugin update process...")

        step("Checking if plugin exists...")
        installed = self.query_installed()
        report.steps.append(Step.QUERY_INSTALLED)

        report.uninstalled = self.uninstall_if_present(installed)
        report.steps.append(Step.UNINSTALL_IF_PRESENT)

        self._wait(self._timings.settle_delay, "plugin manager to settle")
        report.steps.append(Step.SETTLE_DELAY)

        step("Uploading new plugin...")
        self.install_artifact()
        report.steps.append(Step.INSTALL_ARTIFACT)

        step("Stopping server...")
        restart_warning = self.request_restart()
        if restart_warning:
            report.warnings.append(restart_warning)
        report.steps.append(Step.REQUEST_RESTART)

        self._wait(self._timings.shutdown_delay, "server to shut down")
        report.steps.append(Step.SHUTDOWN_DELAY)

        step("Starting server...")
        self.launch_server()
        report.steps.append(Step.LAUNCH_SERVER)

        report.poll_attempts = self.poll_until_ready()
        report.steps.append(Step.POLL_UNTIL_READY)

        self._wait(self._timings.ready_delay, "plugins to load")
        report.steps.append(Step.READY_DELAY)

        report.verdict, report.detail = self.verify_installed()
        if report.verdict == Verdict.UNKNOWN and report.detail:
            report.warnings.append(report.detail)
        report.steps.append(Step.VERIFY_INSTALLED)

        return report

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def check_reachable(self) -> None:
        """Gate the pipeline on the server answering the login probe.

        Raises:
            PreconditionError: If the probe does not return HTTP 200.
        """
        if not self._client.is_reachable():
            raise PreconditionError(
                f"Server at {self._request.server_url} is not running. "
                "Please start it and try again."
            )

    def query_installed(self) -> set[str]:
        """Return the installed plugin short names.

        Raises:
            QueryError: If the listing cannot be fetched or decoded.
        """
        names = self._client.installed_plugin_names()
        debug(f"{len(names)} plugin(s) installed")
        return names

    def uninstall_if_present(self, installed: set[str]) -> bool:
        """Uninstall the target plugin when *installed* contains it.

        Returns:
            ``True`` if an uninstall request was sent, ``False`` if skipped.

        Raises:
            UninstallError: If the server rejects the request.
        """
        name = self._request.plugin_name
        if name not in installed:
            warning(f"Plugin '{name}' is not installed, skipping uninstallation.")
            return False
        self._client.uninstall(name)
        success("Plugin uninstalled successfully!")
        return True

    def install_artifact(self) -> str:
        """Run the installer and echo its output.

        Raises:
            InstallError: If the installer fails.
        """
        output = self._invoker.install_plugin(self._request)
        if output.strip():
            info(output.rstrip())
        success("Plugin installed successfully!")
        return output

    def request_restart(self) -> str | None:
        """Send the shutdown request.

        Returns:
            The warning text if the request was rejected, otherwise ``None``.

        Raises:
            RestartRequestError: If the request could not be sent.
            RestartRequestWarning: If rejected and ``strict_restart`` is set.
        """
        try:
            self._client.request_exit()
        except RestartRequestWarning as exc:
            if self._strict_restart:
                raise
            warning(str(exc))
            return str(exc)
        info("Server is shutting down...")
        return None

    def launch_server(self) -> None:
        """Spawn the server without waiting for it.

        Raises:
            LaunchError: If the process cannot be spawned.
        """
        self._server_process = self._invoker.launch_server(self._request.war_path)
        success("Server started.")

    def poll_until_ready(self) -> int:
        """Probe the login page until it answers 200.

        Probes are spaced by ``poll_interval``; there is no wait after the
        final attempt.

        Returns:
            The 1-based number of the attempt that succeeded.

        Raises:
            RestartTimeoutError: If all ``poll_attempts`` probes fail.
        """
        attempts = self._timings.poll_attempts
        info("Waiting for server to restart...")
        for attempt in range(1, attempts + 1):
            if self._client.is_reachable():
                success("Server is back online!")
                return attempt
            progress(f"Waiting... ({attempt}/{attempts})")
            if attempt < attempts:
                self._sleep(self._timings.poll_interval)
        raise RestartTimeoutError(
            f"Server did not restart in time ({attempts} attempts)"
        )

    def verify_installed(self) -> tuple[Verdict, str | None]:
        """Check whether the plugin is listed after the restart.

        Query failures are reported as a warning and yield
        :attr:`Verdict.UNKNOWN` instead of aborting.
        """
        name = self._request.plugin_name
        try:
            installed = self._client.is_installed(name)
        except QueryError as exc:
            problem = VerificationWarning(f"Error checking installation: {exc}")
            warning(str(problem))
            return Verdict.UNKNOWN, str(problem)
        if installed:
            success("Plugin successfully installed!")
            return Verdict.INSTALLED, None
        warning("Plugin installation failed!")
        return Verdict.ABSENT, f"Plugin '{name}' is not listed after restart"

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _wait(self, seconds: float, reason: str) -> None:
        if seconds > 0:
            debug(f"Waiting {seconds:g}s for {reason}")
            self._sleep(seconds)
