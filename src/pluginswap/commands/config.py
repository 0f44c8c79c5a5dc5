"""Config commands -- inspect the merged settings.

Provides the ``pluginswap config`` sub-command group. Settings live in the
process environment and in the ``.env`` settings file; ``update`` writes the
file after each run, so these commands are read-only.
"""

from __future__ import annotations

import typer

from pluginswap.commands import settings_file
from pluginswap.output import info, print_table, suggest, warning


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show every setting, where it comes from, and its effective value.

    Token values are masked. Settings missing from every source are listed
    with an empty value.

    Example::

        pluginswap config show
        pluginswap --json --env-file ci.env config show
    """
    import os

    from pluginswap.config import (
        SECRET_FIELDS,
        SETTINGS,
        load_env_file,
        mask_secret,
        merge_settings,
        missing_settings,
    )
    from pluginswap.exceptions import ConfigError

    path = settings_file(ctx)
    try:
        file_values = load_env_file(path)
    except ConfigError as exc:
        warning(str(exc))
        file_values = {}
    merged = merge_settings({}, file_values)

    info(f"Settings file: {path.resolve()}")

    rows: list[list[str]] = []
    for setting in SETTINGS:
        value = merged.get(setting.env, "")
        if os.environ.get(setting.env):
            source = "env"
        elif file_values.get(setting.env):
            source = "file"
        else:
            source = ""
        if value and setting.field in SECRET_FIELDS:
            value = mask_secret(value)
        rows.append([setting.env, setting.flag, value, source])

    print_table(["variable", "flag", "value", "source"], rows, title="Settings")

    missing = missing_settings(merged)
    if missing:
        flags = " ".join(f"{s.flag} ..." for s in missing)
        suggest(f"Provide the missing settings: pluginswap update {flags}")
