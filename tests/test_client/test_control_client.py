"""Tests for the HTTP control client."""

from __future__ import annotations

import httpx
import pytest

from pluginswap.client import ControlClient
from pluginswap.exceptions import (
    QueryError,
    RestartRequestError,
    RestartRequestWarning,
    UninstallError,
)


def _client(server, timeout: float = 10.0, token: str | None = None) -> ControlClient:
    return ControlClient(
        server.url,
        server.user,
        server.token if token is None else token,
        timeout=timeout,
        transport=server.transport,
    )


def _failing_client(server, exc_type: type[httpx.TransportError], message: str) -> ControlClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type(message, request=request)

    return ControlClient(
        server.url, server.user, server.token, transport=httpx.MockTransport(handler)
    )


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_enter_creates_and_exit_closes_client(self, server) -> None:
        client = _client(server)
        assert client._client is None
        with client:
            assert client._client is not None
        assert client._client is None

    def test_timeout_applies_to_every_request(self, server) -> None:
        with _client(server, timeout=3.5) as client:
            assert client._client is not None
            assert client._client.timeout == httpx.Timeout(3.5)

    def test_trailing_slash_is_dropped(self, server) -> None:
        client = ControlClient(server.url + "/", server.user, server.token)
        assert client.server_url == server.url

    def test_for_request(self, server, update_request) -> None:
        client = ControlClient.for_request(update_request, transport=server.transport)
        assert client.server_url == server.url
        with client:
            assert client.is_installed(server.plugin)


# ---------------------------------------------------------------------------
# Reachability
# ---------------------------------------------------------------------------


class TestIsReachable:
    def test_200_is_reachable(self, server) -> None:
        with _client(server) as client:
            assert client.is_reachable() is True

    @pytest.mark.parametrize("status", [201, 302, 403, 500, 503])
    def test_any_other_status_is_unreachable(self, server, status: int) -> None:
        server.login_statuses = [status]
        with _client(server) as client:
            assert client.is_reachable() is False

    def test_connection_error_is_unreachable(self, server) -> None:
        server.login_statuses = [None]
        with _client(server) as client:
            assert client.is_reachable() is False

    def test_timeout_is_unreachable(self, server) -> None:
        with _failing_client(server, httpx.ReadTimeout, "timed out") as client:
            assert client.is_reachable() is False

    def test_login_check_is_anonymous(self, server) -> None:
        with _client(server) as client:
            client.is_reachable()
        (login,) = server.calls("GET", "/login")
        assert "authorization" not in login.headers


# ---------------------------------------------------------------------------
# Plugin listing
# ---------------------------------------------------------------------------


class TestListPlugins:
    def test_decodes_short_names(self, server) -> None:
        with _client(server) as client:
            plugins = client.list_plugins()
        assert [p.short_name for p in plugins] == ["git", server.plugin]
        assert plugins[0].version == "1.0"
        assert plugins[0].long_name == "Git"

    def test_request_shape(self, server) -> None:
        with _client(server) as client:
            client.list_plugins()
        (request,) = server.calls("GET", "/pluginManager/api/json")
        assert request.url.params["depth"] == "1"
        assert request.headers["authorization"] == server.basic_auth_header()

    def test_unknown_fields_are_ignored(self, server) -> None:
        server.list_body = b'{"_class": "x", "plugins": [{"shortName": "a", "deps": []}]}'
        with _client(server) as client:
            assert client.installed_plugin_names() == {"a"}

    def test_empty_listing(self, server) -> None:
        server.installed = set()
        with _client(server) as client:
            assert client.installed_plugin_names() == set()
            assert client.is_installed(server.plugin) is False

    def test_non_200_raises_query_error(self, server) -> None:
        server.list_status = 500
        with _client(server) as client:
            with pytest.raises(QueryError, match="500 Internal Server Error"):
                client.list_plugins()

    def test_bad_credentials_raise_query_error(self, server) -> None:
        with _client(server, token="wrong") as client:
            with pytest.raises(QueryError, match="403"):
                client.list_plugins()

    @pytest.mark.parametrize(
        "body",
        [b"<html>not json</html>", b"", b'{"plugins": [{"version": "1"}]}', b'{"plugins": 3}'],
    )
    def test_undecodable_body_raises_query_error(self, server, body: bytes) -> None:
        server.list_body = body
        with _client(server) as client:
            with pytest.raises(QueryError, match="decode"):
                client.list_plugins()

    def test_network_error_raises_query_error(self, server) -> None:
        with _failing_client(server, httpx.ConnectError, "refused") as client:
            with pytest.raises(QueryError, match="refused"):
                client.list_plugins()


# ---------------------------------------------------------------------------
# Uninstall
# ---------------------------------------------------------------------------


class TestUninstall:
    def test_posts_form_request(self, server) -> None:
        with _client(server) as client:
            client.uninstall(server.plugin)
        (request,) = server.calls("POST", f"/pluginManager/plugin/{server.plugin}/doUninstall")
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.content == b""
        assert server.plugin not in server.installed

    def test_non_200_raises_with_status_text(self, server) -> None:
        server.uninstall_status = 500
        with _client(server) as client:
            with pytest.raises(UninstallError, match="500 Internal Server Error"):
                client.uninstall(server.plugin)

    def test_plugin_name_is_path_escaped(self, server) -> None:
        server.installed.add("a/b")
        with _client(server) as client:
            client.uninstall("a/b")
        assert server.requests[-1].url.raw_path == b"/pluginManager/plugin/a%2Fb/doUninstall"


# ---------------------------------------------------------------------------
# Exit
# ---------------------------------------------------------------------------


class TestRequestExit:
    def test_posts_exit(self, server) -> None:
        with _client(server) as client:
            client.request_exit()
        assert len(server.calls("POST", "/exit")) == 1
        assert server.exited

    def test_non_200_raises_warning(self, server) -> None:
        server.exit_status = 503
        with _client(server) as client:
            with pytest.raises(RestartRequestWarning, match="503 Service Unavailable"):
                client.request_exit()

    @pytest.mark.parametrize(
        ("exc_type", "message"),
        [(httpx.ConnectError, "refused"), (httpx.RemoteProtocolError, "server disconnected")],
    )
    def test_transport_failure_is_not_a_warning(
        self, server, exc_type: type[httpx.TransportError], message: str
    ) -> None:
        with _failing_client(server, exc_type, message) as client:
            with pytest.raises(RestartRequestError, match=message) as excinfo:
                client.request_exit()
        assert not isinstance(excinfo.value, RestartRequestWarning)
        assert excinfo.value.exit_code == 9
