"""HTTP control client for pluginswap.

Provides :class:`ControlClient`, a blocking client backed by
:class:`httpx.Client` that speaks to the server's login page, plugin-manager
API and shutdown endpoint with Basic auth and an explicit timeout.

Example::

    from pluginswap.client import ControlClient

    with ControlClient.for_request(request) as client:
        client.uninstall(request.plugin_name)
"""

from pluginswap.client.control_client import ControlClient

__all__ = ["ControlClient"]
