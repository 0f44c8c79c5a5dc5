"""Update command -- replace the plugin on the server.

Implements ``pluginswap update``, the entry point for the whole pipeline:
it merges flags, environment and the ``.env`` settings file into an
:class:`~pluginswap.models.UpdateRequest`, persists the merged values, and
runs :class:`~pluginswap.orchestrator.PluginUpdateOrchestrator`.
"""

from __future__ import annotations

from typing import Optional

import typer

from pluginswap.commands import settings_file
from pluginswap.output import error, info, suggest, warning


def update_command(
    ctx: typer.Context,
    cli_path: Optional[str] = typer.Option(
        None, "--cli-path", help="Path to jenkins-cli.jar [env: JENKINS_CLI_PATH]."
    ),
    server_url: Optional[str] = typer.Option(
        None, "--server-url", help="Server URL [env: JENKINS_URL]."
    ),
    user: Optional[str] = typer.Option(
        None, "--user", help="Server user [env: JENKINS_USER]."
    ),
    token: Optional[str] = typer.Option(
        None, "--token", help="API token [env: JENKINS_TOKEN]."
    ),
    plugin_name: Optional[str] = typer.Option(
        None, "--plugin-name", help="Plugin short name [env: PLUGIN_NAME]."
    ),
    plugin_path: Optional[str] = typer.Option(
        None, "--plugin-path", help="Path to the plugin file [env: PLUGIN_PATH]."
    ),
    war_path: Optional[str] = typer.Option(
        None, "--war-path", help="Path to jenkins.war [env: JENKINS_WAR_PATH]."
    ),
    java: str = typer.Option(
        "java", "--java", envvar="JAVA_BIN", help="Java executable."
    ),
    settle_delay: float = typer.Option(
        5.0, "--settle-delay", min=0, help="Seconds to wait after uninstalling."
    ),
    shutdown_delay: float = typer.Option(
        10.0, "--shutdown-delay", min=0, help="Seconds to wait for shutdown."
    ),
    ready_delay: float = typer.Option(
        10.0, "--ready-delay", min=0, help="Seconds to wait after the server is back."
    ),
    poll_interval: float = typer.Option(
        2.0, "--poll-interval", min=0, help="Seconds between restart probes."
    ),
    poll_attempts: int = typer.Option(
        30, "--poll-attempts", min=1, help="Maximum number of restart probes."
    ),
    timeout: float = typer.Option(
        10.0, "--timeout", min=0.1, help="Per-request HTTP timeout in seconds."
    ),
    strict_restart: bool = typer.Option(
        False, "--strict-restart", help="Abort if the shutdown request is rejected."
    ),
    no_save: bool = typer.Option(
        False, "--no-save", help="Do not write the merged settings to the .env file."
    ),
) -> None:
    """Uninstall, reinstall and restart-verify a plugin.

    Every setting can come from a flag, an environment variable, or the
    ``.env`` settings file (in that order of precedence). All seven are
    required.

    Raises:
        typer.Exit: With the failing step's exit code when the pipeline
            aborts, or code 2 when settings are missing.

    Example::

        pluginswap update --plugin-path ./target/my-plugin.hpi
        pluginswap --json update --poll-attempts 60
    """
    from pluginswap.client import ControlClient
    from pluginswap.config import USAGE_EXAMPLE, resolve_request
    from pluginswap.exceptions import InvalidUsageError, PluginSwapError
    from pluginswap.models import PipelineTimings
    from pluginswap.orchestrator import PluginUpdateOrchestrator
    from pluginswap.output import OutputFormat, format_response, get_output
    from pluginswap.process import ProcessInvoker

    overrides = {
        "cli_path": cli_path,
        "server_url": server_url,
        "user": user,
        "token": token,
        "plugin_name": plugin_name,
        "plugin_path": plugin_path,
        "war_path": war_path,
    }

    try:
        request, problems = resolve_request(
            overrides, env_file=settings_file(ctx), save=not no_save
        )
    except InvalidUsageError as exc:
        error(str(exc))
        info("Example:")
        info(f"  {USAGE_EXAMPLE}")
        raise typer.Exit(code=exc.exit_code) from None

    for problem in problems:
        warning(problem)

    timings = PipelineTimings(
        settle_delay=settle_delay,
        shutdown_delay=shutdown_delay,
        ready_delay=ready_delay,
        poll_interval=poll_interval,
        poll_attempts=poll_attempts,
        request_timeout=timeout,
    )

    try:
        with ControlClient.for_request(request, timeout=timings.request_timeout) as client:
            orchestrator = PluginUpdateOrchestrator(
                request,
                client,
                ProcessInvoker(java=java),
                timings=timings,
                strict_restart=strict_restart,
            )
            report = orchestrator.run()
    except PluginSwapError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Verdict: {report.verdict.value}")
    if get_output().format == OutputFormat.JSON:
        format_response(report.model_dump(mode="json"))
    if not report.succeeded:
        suggest(f"Check the plugin manager at {request.server_url}/pluginManager/installed")

