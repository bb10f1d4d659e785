"""
Pytest configuration and shared fixtures for CMPD tests.

This module provides reusable fixtures and test utilities used across
the test suite, including an in-memory administration client.
"""

from __future__ import annotations

import copy
from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from cmpostdeploy.admin.base import DeploymentTarget, SupersededApplication
from cmpostdeploy.config.loader import _deep_merge_dicts
from cmpostdeploy.config.settings import Settings, settings_from_dict
from cmpostdeploy.exceptions import AdminAPIError


class FakeAdminClient:
    """In-memory AdminClient recording every call.

    Attributes:
        superseded: Application name -> applications it supersedes.
        deployments: Application name -> collections it is deployed to.
        distribution_points: Names returned by list_distribution_points().
        fail_connect: If True, connect() raises.
        fail_list_points: If True, list_distribution_points() raises.
        fail_distribution: Applications whose distribution fails.
        fail_deployments: (application, collection) pairs that fail.
        fail_queries: Applications whose read queries fail.
    """

    def __init__(self) -> None:
        self.superseded: dict[str, list[SupersededApplication]] = {}
        self.deployments: dict[str, list[str]] = {}
        self.distribution_points = ["dp01.contoso.com", "dp02.contoso.com"]
        self.fail_connect = False
        self.fail_list_points = False
        self.fail_distribution: set[str] = set()
        self.fail_deployments: set[tuple[str, str]] = set()
        self.fail_queries: set[str] = set()

        self.connect_calls = 0
        self.list_dp_calls = 0
        self.distributed: list[tuple[str, list[str]]] = []
        self.created: list[tuple[str, DeploymentTarget, str]] = []

    def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            raise AdminAPIError("Site PS1 not found on provider cm01")

    def list_distribution_points(self) -> list[str]:
        self.list_dp_calls += 1
        if self.fail_list_points:
            raise AdminAPIError("HTTP 503 from SMS_DistributionPointInfo")
        return list(self.distribution_points)

    def distribute_content(self, application_name, distribution_points) -> None:
        self.distributed.append((application_name, list(distribution_points)))
        if application_name in self.fail_distribution:
            raise AdminAPIError(f"Application not found: {application_name}")

    def get_superseded_applications(self, application_name):
        if application_name in self.fail_queries:
            raise AdminAPIError("HTTP 500")
        return list(self.superseded.get(application_name, []))

    def get_deployment_collections(self, application_name):
        if application_name in self.fail_queries:
            raise AdminAPIError("HTTP 500")
        return list(self.deployments.get(application_name, []))

    def create_deployment(self, application_name, target, comment) -> None:
        self.created.append((application_name, target, comment))
        if (application_name, target.collection_name) in self.fail_deployments:
            raise AdminAPIError(f"Collection not found: {target.collection_name}")

    def deployed_collections(self, application_name: str) -> list[str]:
        return [t.collection_name for name, t, _ in self.created if name == application_name]


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def sample_settings_data() -> dict[str, Any]:
    """
    Provide sample settings data.

    Returns a complete settings structure for testing.
    """
    return {
        "apiVersion": "cmpd/v1",
        "site": {
            "code": "PS1",
            "provider": "cm01.contoso.com",
            "timeout": 30,
        },
        "distribution": {"points": ["dp01.contoso.com"]},
        "collections": {
            "new_apps": ["CollectionA", "CollectionB"],
            "superseding_apps": ["Software - Pilot"],
            "inherit_superseded": True,
        },
        "deployment": {
            "purpose": "Available",
            "user_experience": "DisplayAll",
        },
        "mail": {
            "enabled": True,
            "smtp_server": "smtp.contoso.com",
            "sender": "cmpd@contoso.com",
            "recipients": ["packaging@contoso.com"],
        },
    }


@pytest.fixture
def make_settings(sample_settings_data):
    """
    Factory fixture for Settings built from the sample data plus overrides.

    Usage:
        settings = make_settings({"deployment": {"purpose": "Required"}})
    """

    def _make(overrides: dict[str, Any] | None = None) -> Settings:
        data = _deep_merge_dicts(copy.deepcopy(sample_settings_data), overrides or {})
        return settings_from_dict(data)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    """Provide Settings built from the sample data."""
    return make_settings()


@pytest.fixture
def fake_client() -> FakeAdminClient:
    """Provide an empty in-memory administration client."""
    return FakeAdminClient()


@pytest.fixture
def fixed_clock():
    """Provide a clock pinned to 2025-01-02 03:04:05."""
    return lambda: datetime(2025, 1, 2, 3, 4, 5)


@pytest.fixture
def superseded_app():
    """Factory for SupersededApplication values."""

    def _make(name: str, day: int = 1, deployed: bool = True) -> SupersededApplication:
        return SupersededApplication(
            name=name,
            date_created=datetime(2024, 6, day, 12, 0, tzinfo=UTC),
            is_deployed=deployed,
        )

    return _make


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("settings.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def create_batch_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary JSON batch files.

    Usage:
        batch_path = create_batch_file([{"ApplicationName": "App", ...}])
    """

    def _create(records: Any, filename: str = "batch.json") -> Path:
        path = tmp_test_dir / filename
        path.write_text(json.dumps(records), encoding="utf-8")
        return path

    return _create


class RecordingLogger:
    """Logger that keeps (prefix, message) pairs per level."""

    def __init__(self) -> None:
        self.steps: list[str] = []
        self.warnings: list[tuple[str, str]] = []
        self.messages: list[tuple[str, str]] = []

    def step(self, step: int, total: int, message: str) -> None:
        self.steps.append(message)

    def warning(self, prefix: str, message: str) -> None:
        self.warnings.append((prefix, message))

    def verbose(self, prefix: str, message: str) -> None:
        self.messages.append((prefix, message))

    def debug(self, prefix: str, message: str) -> None:
        self.messages.append((prefix, message))


@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Provide a logger that records messages for assertions."""
    return RecordingLogger()
