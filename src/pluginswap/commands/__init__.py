"""Built-in CLI sub-commands for pluginswap.

* :mod:`~pluginswap.commands.update` -- run the plugin update pipeline.
* :mod:`~pluginswap.commands.server` -- ``check`` (reachability probe) and
  ``plugins`` (installed-plugin listing).
* :mod:`~pluginswap.commands.config` -- inspect the merged settings.

Single commands export a plain callback registered on the root app; command
groups export a :class:`typer.Typer` sub-application.
"""

from __future__ import annotations

from pathlib import Path

import typer


def settings_file(ctx: typer.Context) -> Path:
    """The settings file chosen by the root ``--env-file`` option."""
    from pluginswap.config import DEFAULT_ENV_FILE

    value = ctx.obj.get("env_file") if ctx.obj else None
    return Path(value or DEFAULT_ENV_FILE)
