"""Tests for the pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pluginswap.models import (
    InstalledPlugin,
    PipelineTimings,
    PluginListing,
    Step,
    UpdateReport,
    UpdateRequest,
    Verdict,
)


class TestUpdateRequest:
    def test_is_frozen(self, update_request: UpdateRequest) -> None:
        with pytest.raises(ValidationError):
            update_request.plugin_name = "other"  # type: ignore[misc]

    def test_trailing_slash_removed(self, update_request: UpdateRequest) -> None:
        data = update_request.model_dump()
        data["server_url"] = "http://ci.example:8080/jenkins/"
        assert UpdateRequest(**data).server_url == "http://ci.example:8080/jenkins"

    @pytest.mark.parametrize("field", ["user", "token", "plugin_name", "war_path"])
    def test_empty_values_rejected(self, update_request: UpdateRequest, field: str) -> None:
        data = update_request.model_dump()
        data[field] = ""
        with pytest.raises(ValidationError):
            UpdateRequest(**data)

    def test_token_hidden_from_repr(self, update_request: UpdateRequest) -> None:
        assert update_request.token not in repr(update_request)

    def test_credentials(self, update_request: UpdateRequest) -> None:
        assert update_request.credentials == f"admin:{update_request.token}"


class TestPipelineTimings:
    def test_defaults(self) -> None:
        timings = PipelineTimings()
        assert timings.settle_delay == 5.0
        assert timings.shutdown_delay == 10.0
        assert timings.ready_delay == 10.0
        assert timings.poll_interval == 2.0
        assert timings.poll_attempts == 30
        assert timings.request_timeout == 10.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"poll_attempts": 0}, {"settle_delay": -1}, {"request_timeout": 0}],
    )
    def test_rejects_out_of_range(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            PipelineTimings(**kwargs)


class TestPluginListing:
    def test_decodes_wire_names(self) -> None:
        listing = PluginListing.model_validate_json(
            '{"_class": "hudson.LocalPluginManager", "plugins": ['
            '{"shortName": "git", "longName": "Git plugin", "version": "5.2.1",'
            ' "active": true, "enabled": true, "dependencies": []}]}'
        )
        (plugin,) = listing.plugins
        assert plugin == InstalledPlugin(
            short_name="git", long_name="Git plugin", version="5.2.1", active=True, enabled=True
        )

    def test_missing_plugins_key_is_empty(self) -> None:
        assert PluginListing.model_validate_json("{}").plugins == []


class TestUpdateReport:
    def test_defaults_to_unknown(self) -> None:
        report = UpdateReport(plugin_name="p", server_url="http://x")
        assert report.verdict == Verdict.UNKNOWN
        assert not report.succeeded

    def test_json_dump_uses_plain_values(self) -> None:
        report = UpdateReport(
            plugin_name="p",
            server_url="http://x",
            steps=[Step.CHECK_REACHABLE],
            verdict=Verdict.INSTALLED,
        )
        dumped = report.model_dump(mode="json")
        assert dumped["steps"] == ["check_reachable"]
        assert dumped["verdict"] == "installed"
        assert report.succeeded


def test_steps_are_in_pipeline_order() -> None:
    assert [s.value for s in Step][:3] == [
        "check_reachable",
        "query_installed",
        "uninstall_if_present",
    ]
    assert list(Step)[-1] is Step.VERIFY_INSTALLED
    assert len(Step) == 11
