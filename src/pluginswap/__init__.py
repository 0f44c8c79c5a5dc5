"""pluginswap -- replace a plugin in a running Jenkins-style build server.

The tool drives a fixed pipeline against one server: check the server is
reachable, uninstall the current plugin if it is installed, push the new
artifact with the companion installer tool, restart the server, wait for it
to come back and verify that the plugin is present again.

Typical workflow::

    pluginswap update --server-url http://localhost:8080 --user admin \\
        --token 1234 --plugin-name my-plugin --plugin-path ./my-plugin.hpi \\
        --cli-path ./jenkins-cli.jar --war-path ./jenkins.war

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: Settings-file, environment and flag merging.
    orchestrator: The plugin update pipeline.
    process: Installer and server process launching.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
