"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to one failure class of the update pipeline and is
referenced by the corresponding :class:`~pluginswap.exceptions.PluginSwapError`
subclass. CI scripts can inspect the exit code to tell which step failed
without parsing stderr.

Example::

    $ pluginswap update
    $ echo $?
    3   # EXIT_PRECONDITION_FAILED -- the server was not reachable
"""

EXIT_SUCCESS = 0
"""The command completed (the verification verdict is reported separately)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or required configuration values are missing."""

EXIT_PRECONDITION_FAILED = 3
"""The server did not answer the login probe before the pipeline started."""

EXIT_QUERY_FAILED = 4
"""The installed-plugin listing could not be fetched or decoded."""

EXIT_UNINSTALL_FAILED = 5
"""The uninstall request was rejected by the server."""

EXIT_INSTALL_FAILED = 6
"""The installer tool could not be started or exited with a non-zero status."""

EXIT_LAUNCH_FAILED = 7
"""The server process could not be spawned."""

EXIT_RESTART_TIMEOUT = 8
"""The server did not come back online within the polling budget."""

EXIT_RESTART_REQUEST_FAILED = 9
"""The shutdown request could not be sent, or was rejected under ``--strict-restart``."""

EXIT_INTERRUPTED = 130
"""The run was cancelled with Ctrl-C."""
