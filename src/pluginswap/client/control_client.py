"""Synchronous client for the server's HTTP control API.

This module provides :class:`ControlClient`, the blocking client the
orchestrator uses for every remote call. It wraps :class:`httpx.Client` and
layers on:

- **Basic auth** -- the user/token pair is sent with every call except the
  login-page probe, which must work for anonymous users too.
- **One timeout** -- every request, the first probe included, is bounded by
  the same explicit timeout.
- **Error mapping** -- network failures and unexpected statuses become the
  typed errors of :mod:`pluginswap.exceptions`.

Endpoints (relative to the server URL)::

    GET  /login                                      liveness probe
    GET  /pluginManager/api/json?depth=1             installed plugins
    POST /pluginManager/plugin/{name}/doUninstall    uninstall
    POST /exit                                       shutdown
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from pluginswap.exceptions import (
    QueryError,
    RestartRequestError,
    RestartRequestWarning,
    UninstallError,
)
from pluginswap.models import InstalledPlugin, PluginListing, UpdateRequest
from pluginswap.output import debug

LOGIN_PATH = "/login"
PLUGIN_LIST_PATH = "/pluginManager/api/json"
UNINSTALL_PATH = "/pluginManager/plugin/{name}/doUninstall"
EXIT_PATH = "/exit"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _status_text(response: httpx.Response) -> str:
    """Format a status line such as ``500 Internal Server Error``."""
    reason = response.reason_phrase or ""
    return f"{response.status_code} {reason}".strip()


class ControlClient:
    """Client for the plugin-manager and lifecycle endpoints of one server.

    Must be used as a context manager so that the underlying transport is
    opened and closed.

    Args:
        server_url: Base URL of the server, without a trailing slash.
        user: Account name for Basic auth.
        token: API token (or password) for Basic auth.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        with ControlClient("http://localhost:8080", "admin", "s3cret") as client:
            if client.is_reachable():
                names = client.installed_plugin_names()
    """

    def __init__(
        self,
        server_url: str,
        user: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._auth = httpx.BasicAuth(user, token)
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def for_request(
        cls,
        request: UpdateRequest,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> ControlClient:
        """Build a client from an :class:`UpdateRequest`."""
        return cls(
            request.server_url,
            request.user,
            request.token,
            timeout=timeout,
            transport=transport,
        )

    @property
    def server_url(self) -> str:
        return self._server_url

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ControlClient:
        self._client = httpx.Client(
            base_url=self._server_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def is_reachable(self) -> bool:
        """Probe the login page without credentials.

        Returns:
            ``True`` iff the server answered with exactly HTTP 200. Network
            errors and every other status yield ``False``; this never raises.
        """
        try:
            response = self._send("GET", LOGIN_PATH, authenticated=False)
        except httpx.HTTPError as exc:
            debug(f"Login probe failed: {exc}")
            return False
        return response.status_code == 200

    def list_plugins(self) -> list[InstalledPlugin]:
        """Fetch the installed-plugin listing.

        Raises:
            QueryError: On network errors, a non-200 status, or a body that
                is not the expected ``{"plugins": [...]}`` document.
        """
        try:
            response = self._send("GET", PLUGIN_LIST_PATH, params={"depth": "1"})
        except httpx.HTTPError as exc:
            raise QueryError(f"Failed to check plugin status: {exc}") from exc

        if response.status_code != 200:
            raise QueryError(f"Failed to check plugin status: {_status_text(response)}")

        try:
            listing = PluginListing.model_validate_json(response.content)
        except ValidationError as exc:
            raise QueryError(f"Failed to decode plugin listing: {exc}") from exc
        return listing.plugins

    def installed_plugin_names(self) -> set[str]:
        """Return the short names of all installed plugins."""
        return {plugin.short_name for plugin in self.list_plugins()}

    def is_installed(self, plugin_name: str) -> bool:
        return plugin_name in self.installed_plugin_names()

    def uninstall(self, plugin_name: str) -> None:
        """Ask the plugin manager to uninstall *plugin_name*.

        Raises:
            UninstallError: If the request fails or the status is not 200.
        """
        path = UNINSTALL_PATH.format(name=quote(plugin_name, safe=""))
        try:
            response = self._send("POST", path, headers={"Content-Type": FORM_CONTENT_TYPE})
        except httpx.HTTPError as exc:
            raise UninstallError(f"Failed to uninstall plugin: {exc}") from exc
        if response.status_code != 200:
            raise UninstallError(f"Failed to uninstall plugin: {_status_text(response)}")

    def request_exit(self) -> None:
        """Ask the server to shut down.

        Raises:
            RestartRequestError: If the request cannot be sent or the
                connection fails before a response arrives.
            RestartRequestWarning: If the server answers with a status other
                than 200. Callers decide whether that is fatal.
        """
        try:
            response = self._send("POST", EXIT_PATH)
        except httpx.HTTPError as exc:
            raise RestartRequestError(f"Failed to stop server: {exc}") from exc
        if response.status_code != 200:
            raise RestartRequestWarning(f"Failed to stop server: {_status_text(response)}")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(
        self,
        method: str,
        path: str,
        *,
        authenticated: bool = True,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        assert self._client is not None, "Client not initialised -- use as context manager"
        debug(f"{method} {self._server_url}{path}")
        response = self._client.request(
            method,
            path,
            params=params,
            headers=headers,
            auth=self._auth if authenticated else None,
        )
        debug(f"{method} {path} -> {response.status_code}")
        return response
