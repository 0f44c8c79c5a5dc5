"""Shared test fixtures for pluginswap.

Provides a scripted fake server backed by :class:`httpx.MockTransport`, a
sample :class:`~pluginswap.models.UpdateRequest`, an isolated settings
environment, and output management. These fixtures are discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Iterator, Optional

import httpx
import pytest

from pluginswap.config import SETTINGS
from pluginswap.models import UpdateRequest
from pluginswap.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Reset the global OutputManager after every test.

    The OutputManager caches Rich consoles bound to sys.stdout/sys.stderr at
    creation time; a stale one would write to a closed CliRunner stream.
    """
    yield
    reset_output()


@pytest.fixture
def plain_output() -> Iterator[OutputManager]:
    """Install a colourless PLAIN OutputManager so capsys sees exact text."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Fake server
# ---------------------------------------------------------------------------


class FakeServer:
    """Scripted stand-in for the server's control API.

    ``login_statuses`` is consumed one entry per ``/login`` request; the last
    entry repeats once the list is down to one element. ``None`` simulates a
    refused connection, and an ``exit_status`` of ``None`` drops the
    connection after ``/exit`` is received. Requests without
    ``user:token`` Basic auth get 403 on every path except ``/login``.
    """

    url = "http://jenkins.test:8080"
    user = "admin"
    token = "1234567890abcdef"
    plugin = "my-plugin"

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.login_statuses: list[Optional[int]] = [200]
        self.installed: set[str] = {"git", self.plugin}
        self.list_status = 200
        self.list_body: Optional[bytes] = None
        self.list_failures_after_exit = False
        self.uninstall_status = 200
        self.exit_status: Optional[int] = 200
        self.exited = False

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/login":
            status = self.login_statuses[0]
            if len(self.login_statuses) > 1:
                self.login_statuses.pop(0)
            if status is None:
                raise httpx.ConnectError("Connection refused", request=request)
            return httpx.Response(status, text="<html>login</html>")

        if not self._authorised(request):
            return httpx.Response(403)

        if path == "/pluginManager/api/json" and request.method == "GET":
            if self.list_failures_after_exit and self.exited:
                return httpx.Response(503)
            if self.list_body is not None:
                return httpx.Response(self.list_status, content=self.list_body)
            plugins = [
                {"shortName": name, "longName": name.title(), "version": "1.0",
                 "active": True, "enabled": True}
                for name in sorted(self.installed)
            ]
            return httpx.Response(self.list_status, json={"plugins": plugins})

        if path.startswith("/pluginManager/plugin/") and path.endswith("/doUninstall"):
            if self.uninstall_status == 200:
                self.installed.discard(path.split("/")[3])
            return httpx.Response(self.uninstall_status)

        if path == "/exit" and request.method == "POST":
            self.exited = True
            if self.exit_status is None:
                raise httpx.RemoteProtocolError("Server disconnected", request=request)
            return httpx.Response(self.exit_status)

        return httpx.Response(404)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def basic_auth_header(self) -> str:
        credentials = base64.b64encode(f"{self.user}:{self.token}".encode()).decode()
        return f"Basic {credentials}"

    def _authorised(self, request: httpx.Request) -> bool:
        return request.headers.get("authorization") == self.basic_auth_header()


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def update_request(server: FakeServer) -> UpdateRequest:
    return UpdateRequest(
        server_url=server.url,
        cli_path="/opt/jenkins/jenkins-cli.jar",
        plugin_path="/tmp/my-plugin.hpi",
        war_path="/opt/jenkins/jenkins.war",
        user=server.user,
        token=server.token,
        plugin_name=server.plugin,
    )


# ---------------------------------------------------------------------------
# Settings isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty working directory with no pluginswap variables set.

    Returns:
        The tmp_path root, which is also the working directory.
    """
    for setting in SETTINGS:
        monkeypatch.delenv(setting.env, raising=False)
    monkeypatch.delenv("JAVA_BIN", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
