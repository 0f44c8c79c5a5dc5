"""Read-only server commands -- reachability probe and plugin listing.

``pluginswap check`` runs the same login probe that gates the update
pipeline. ``pluginswap plugins`` prints the plugin-manager listing. Neither
command writes the settings file.
"""

from __future__ import annotations

from typing import Optional

import typer

from pluginswap.commands import settings_file
from pluginswap.output import error, print_table, success


def check_command(
    ctx: typer.Context,
    server_url: Optional[str] = typer.Option(
        None, "--server-url", help="Server URL [env: JENKINS_URL]."
    ),
    timeout: float = typer.Option(
        10.0, "--timeout", min=0.1, help="HTTP timeout in seconds."
    ),
) -> None:
    """Check that the server answers its login page.

    Raises:
        typer.Exit: With code 3 when the server is unreachable.

    Example::

        pluginswap check --server-url http://localhost:8080
    """
    from pluginswap.client import ControlClient
    from pluginswap.exit_codes import EXIT_PRECONDITION_FAILED

    values = _resolve(ctx, {"server_url": server_url}, ["JENKINS_URL"])
    url = values["JENKINS_URL"]

    # The probe is anonymous; credentials are not needed.
    with ControlClient(url, "", "", timeout=timeout) as client:
        reachable = client.is_reachable()

    if not reachable:
        error(f"Server at {url} is not running.")
        raise typer.Exit(code=EXIT_PRECONDITION_FAILED)
    success(f"Server at {url} is up.")


def plugins_command(
    ctx: typer.Context,
    server_url: Optional[str] = typer.Option(
        None, "--server-url", help="Server URL [env: JENKINS_URL]."
    ),
    user: Optional[str] = typer.Option(
        None, "--user", help="Server user [env: JENKINS_USER]."
    ),
    token: Optional[str] = typer.Option(
        None, "--token", help="API token [env: JENKINS_TOKEN]."
    ),
    timeout: float = typer.Option(
        10.0, "--timeout", min=0.1, help="HTTP timeout in seconds."
    ),
) -> None:
    """List the plugins installed on the server.

    Example::

        pluginswap plugins
        pluginswap --json plugins
    """
    from pluginswap.client import ControlClient
    from pluginswap.exceptions import PluginSwapError

    values = _resolve(
        ctx,
        {"server_url": server_url, "user": user, "token": token},
        ["JENKINS_URL", "JENKINS_USER", "JENKINS_TOKEN"],
    )

    try:
        with ControlClient(
            values["JENKINS_URL"],
            values["JENKINS_USER"],
            values["JENKINS_TOKEN"],
            timeout=timeout,
        ) as client:
            plugins = client.list_plugins()
    except PluginSwapError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = [
        [
            p.short_name,
            p.version or "",
            "" if p.active is None else str(p.active).lower(),
            "" if p.enabled is None else str(p.enabled).lower(),
        ]
        for p in sorted(plugins, key=lambda p: p.short_name)
    ]
    print_table(["name", "version", "active", "enabled"], rows, title="Installed plugins")


def _resolve(
    ctx: typer.Context,
    overrides: dict[str, Optional[str]],
    required: list[str],
) -> dict[str, str]:
    """Merge *overrides* with environment and settings file; require *required*."""
    from pluginswap.config import SETTINGS, load_env_file, merge_settings
    from pluginswap.exceptions import ConfigError
    from pluginswap.exit_codes import EXIT_INVALID_USAGE
    from pluginswap.output import warning

    try:
        file_values = load_env_file(settings_file(ctx))
    except ConfigError as exc:
        warning(str(exc))
        file_values = {}

    merged = merge_settings(overrides, file_values)
    missing = [s for s in SETTINGS if s.env in required and not merged.get(s.env)]
    if missing:
        names = ", ".join(f"{s.flag} (or {s.env})" for s in missing)
        error(f"Missing required settings: {names}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return merged
