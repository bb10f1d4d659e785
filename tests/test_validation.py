"""
Tests for cmpostdeploy.validation module.

Tests settings validation without site access.
"""

from __future__ import annotations

import pytest

from cmpostdeploy.validation import validate_settings

pytestmark = pytest.mark.unit


class TestValidateSettings:
    """Tests for validate_settings()."""

    def test_valid_settings(self, create_yaml_file, sample_settings_data):
        path = create_yaml_file("settings.yaml", sample_settings_data)

        result = validate_settings(path)

        assert result.status == "valid"
        assert result.errors == []
        assert result.warnings == []
        assert result.settings_path == str(path)

    def test_missing_file_invalid(self, tmp_test_dir):
        result = validate_settings(tmp_test_dir / "missing.yaml")

        assert result.status == "invalid"
        assert "not found" in result.errors[0]

    def test_config_error_invalid(self, create_yaml_file, sample_settings_data):
        sample_settings_data["deployment"]["purpose"] = "Mandatory"
        path = create_yaml_file("settings.yaml", sample_settings_data)

        result = validate_settings(path)

        assert result.status == "invalid"
        assert "deployment.purpose" in result.errors[0]

    def test_unknown_client_invalid(self, create_yaml_file, sample_settings_data):
        sample_settings_data["site"]["client"] = "powershell"
        path = create_yaml_file("settings.yaml", sample_settings_data)

        result = validate_settings(path)

        assert result.status == "invalid"
        assert "Unknown admin client: 'powershell'" in result.errors[0]

    def test_overlay_applied(self, create_yaml_file, sample_settings_data):
        path = create_yaml_file("settings.yaml", sample_settings_data)
        overlay = create_yaml_file("overlay.yaml", {"site": {"code": ""}})

        result = validate_settings(path, [overlay])

        assert result.status == "invalid"
        assert "site.code" in result.errors[0]

    def test_warnings_do_not_invalidate(self, create_yaml_file, sample_settings_data, monkeypatch):
        monkeypatch.delenv("CMPD_USERNAME", raising=False)
        monkeypatch.delenv("CMPD_PASSWORD", raising=False)
        sample_settings_data["site"]["auth"] = "basic"
        sample_settings_data["collections"] = {
            "new_apps": [],
            "superseding_apps": [],
            "inherit_superseded": False,
        }
        sample_settings_data["deployment"]["override_service_window"] = True
        sample_settings_data["mail"] = {"enabled": False}
        path = create_yaml_file("settings.yaml", sample_settings_data)

        result = validate_settings(path)

        assert result.status == "valid"
        assert len(result.warnings) == 6
        assert any("collections.new_apps is empty" in w for w in result.warnings)
        assert any("inheritance is disabled" in w for w in result.warnings)
        assert any("ignored for Available" in w for w in result.warnings)
        assert any("CMPD_USERNAME" in w for w in result.warnings)
        assert any("CMPD_PASSWORD" in w for w in result.warnings)
        assert any("mail.enabled is false" in w for w in result.warnings)
