"""Canonical Pydantic models shared across all pluginswap modules.

The models fall into three groups:

**Input** -- built once at startup and never mutated:
    :class:`UpdateRequest` and :class:`PipelineTimings`.

**Wire** -- decoded from the server's plugin-manager API:
    :class:`InstalledPlugin` and :class:`PluginListing`.

**Result** -- produced by the orchestrator:
    :class:`Step`, :class:`Verdict` and :class:`UpdateReport`.

Input models are frozen so the pipeline cannot alter them while it runs.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Input ---


class UpdateRequest(BaseModel):
    """Everything the pipeline needs to replace one plugin on one server.

    Example::

        UpdateRequest(
            server_url="http://localhost:8080",
            cli_path="/opt/jenkins/jenkins-cli.jar",
            plugin_path="/tmp/my-plugin.hpi",
            war_path="/opt/jenkins/jenkins.war",
            user="admin",
            token="1234567890abcdef",
            plugin_name="my-plugin",
        )
    """

    model_config = ConfigDict(frozen=True)

    server_url: str = Field(min_length=1, description="Base URL of the server")
    cli_path: str = Field(min_length=1, description="Path to jenkins-cli.jar")
    plugin_path: str = Field(min_length=1, description="Path to the plugin artifact")
    war_path: str = Field(
        min_length=1, description="Path to the server war used for restarting"
    )
    user: str = Field(min_length=1)
    token: str = Field(min_length=1, repr=False)
    plugin_name: str = Field(min_length=1, description="Plugin short name")

    @field_validator("server_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or value

    @property
    def credentials(self) -> str:
        """The ``user:token`` pair passed to the installer's ``-auth`` option."""
        return f"{self.user}:{self.token}"


class PipelineTimings(BaseModel):
    """Fixed waits and polling limits used by the orchestrator.

    The server offers no readiness signal for its plugin subsystem, so the
    pipeline relies on settle delays between dependent steps. All durations
    are in seconds.
    """

    model_config = ConfigDict(frozen=True)

    settle_delay: float = Field(default=5.0, ge=0, description="After uninstall")
    shutdown_delay: float = Field(
        default=10.0, ge=0, description="After the exit request, before relaunch"
    )
    ready_delay: float = Field(
        default=10.0, ge=0, description="After the server answers, before verifying"
    )
    poll_interval: float = Field(default=2.0, ge=0)
    poll_attempts: int = Field(default=30, ge=1)
    request_timeout: float = Field(default=10.0, gt=0)


# --- Wire ---


class InstalledPlugin(BaseModel):
    """One entry of ``/pluginManager/api/json?depth=1``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    short_name: str = Field(alias="shortName")
    long_name: Optional[str] = Field(default=None, alias="longName")
    version: Optional[str] = None
    active: Optional[bool] = None
    enabled: Optional[bool] = None


class PluginListing(BaseModel):
    """Top-level plugin-manager response body."""

    model_config = ConfigDict(extra="ignore")

    plugins: list[InstalledPlugin] = Field(default_factory=list)


# --- Result ---


class Step(str, enum.Enum):
    """Pipeline steps in execution order."""

    CHECK_REACHABLE = "check_reachable"
    QUERY_INSTALLED = "query_installed"
    UNINSTALL_IF_PRESENT = "uninstall_if_present"
    SETTLE_DELAY = "settle_delay"
    INSTALL_ARTIFACT = "install_artifact"
    REQUEST_RESTART = "request_restart"
    SHUTDOWN_DELAY = "shutdown_delay"
    LAUNCH_SERVER = "launch_server"
    POLL_UNTIL_READY = "poll_until_ready"
    READY_DELAY = "ready_delay"
    VERIFY_INSTALLED = "verify_installed"


class Verdict(str, enum.Enum):
    """Outcome of the final verification query."""

    INSTALLED = "installed"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class UpdateReport(BaseModel):
    """Record of a pipeline run that reached its last step."""

    plugin_name: str
    server_url: str
    steps: list[Step] = Field(default_factory=list)
    uninstalled: bool = False
    poll_attempts: int = 0
    warnings: list[str] = Field(default_factory=list)
    verdict: Verdict = Verdict.UNKNOWN
    detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.verdict == Verdict.INSTALLED
