"""
Tests for cmpostdeploy.policy module.

Tests collection targeting for new and superseding applications.
"""

from __future__ import annotations

import pytest

from cmpostdeploy.config.settings import CollectionPolicy
from cmpostdeploy.policy import dedupe_collections, resolve_target_collections

pytestmark = pytest.mark.unit


@pytest.fixture
def policy() -> CollectionPolicy:
    return CollectionPolicy(
        new_app_collections=("CollectionA", "CollectionB"),
        superseding_app_collections=("Software - Pilot",),
        inherit_superseded_collections=True,
    )


class TestDedupeCollections:
    """Tests for dedupe_collections()."""

    def test_keeps_first_spelling_and_order(self):
        names = ["Pilot", "All Workstations", "pilot", " Finance ", "", "ALL WORKSTATIONS"]

        assert dedupe_collections(names) == ["Pilot", "All Workstations", "Finance"]


class TestNewApplications:
    """Tests for new application targeting."""

    def test_new_app_gets_configured_collections(self, fake_client, policy):
        targets = resolve_target_collections(
            fake_client, policy, "Bar", superseding=False
        )

        assert targets == ["CollectionA", "CollectionB"]

    def test_new_app_ignores_superseded(self, fake_client, policy, superseded_app):
        fake_client.deployments["Old"] = ["Finance"]

        targets = resolve_target_collections(
            fake_client,
            policy,
            "Bar",
            superseding=False,
            superseded=superseded_app("Old"),
        )

        assert targets == ["CollectionA", "CollectionB"]

    def test_no_configured_collections(self, fake_client):
        targets = resolve_target_collections(
            fake_client, CollectionPolicy(), "Bar", superseding=False
        )

        assert targets == []


class TestSupersedingApplications:
    """Tests for superseding application targeting."""

    def test_inherits_then_adds_configured(self, fake_client, policy, superseded_app):
        fake_client.deployments["Foo 1.0"] = ["All Workstations", "Finance"]

        targets = resolve_target_collections(
            fake_client,
            policy,
            "Foo 2.0",
            superseding=True,
            superseded=superseded_app("Foo 1.0"),
        )

        assert targets == ["All Workstations", "Finance", "Software - Pilot"]

    def test_overlap_deployed_once(self, fake_client, policy, superseded_app):
        fake_client.deployments["Foo 1.0"] = ["software - pilot", "Finance"]

        targets = resolve_target_collections(
            fake_client,
            policy,
            "Foo 2.0",
            superseding=True,
            superseded=superseded_app("Foo 1.0"),
        )

        assert targets == ["software - pilot", "Finance"]

    def test_undeployed_superseded_not_queried(self, fake_client, policy, superseded_app):
        fake_client.fail_queries.add("Foo 1.0")

        targets = resolve_target_collections(
            fake_client,
            policy,
            "Foo 2.0",
            superseding=True,
            superseded=superseded_app("Foo 1.0", deployed=False),
        )

        assert targets == ["Software - Pilot"]

    def test_no_superseded(self, fake_client, policy):
        targets = resolve_target_collections(
            fake_client, policy, "Foo 2.0", superseding=True, superseded=None
        )

        assert targets == ["Software - Pilot"]

    def test_inheritance_disabled(self, fake_client, superseded_app):
        policy = CollectionPolicy(
            superseding_app_collections=("Software - Pilot",),
            inherit_superseded_collections=False,
        )
        fake_client.deployments["Foo 1.0"] = ["Finance"]

        targets = resolve_target_collections(
            fake_client,
            policy,
            "Foo 2.0",
            superseding=True,
            superseded=superseded_app("Foo 1.0"),
        )

        assert targets == ["Software - Pilot"]

    def test_query_failure_keeps_configured(
        self, fake_client, policy, superseded_app, recording_logger
    ):
        fake_client.fail_queries.add("Foo 1.0")

        targets = resolve_target_collections(
            fake_client,
            policy,
            "Foo 2.0",
            superseding=True,
            superseded=superseded_app("Foo 1.0"),
            logger=recording_logger,
        )

        assert targets == ["Software - Pilot"]
        assert recording_logger.warnings[0][0] == "POLICY"
