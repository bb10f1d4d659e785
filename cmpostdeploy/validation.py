# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Settings validation module.

This module provides validation functions for checking settings files
without contacting the site. This is useful for quick feedback when editing
settings and as a pre-check before scheduling a run.

Validation Checks:

- YAML syntax is valid and apiVersion is supported
- Required settings are present (site code, provider, distribution points)
- Enum values are known (deploy purpose, user experience, auth method)
- The configured admin client is registered
- Mail settings are complete when mail is enabled

Warnings (run still possible):

- No collections would ever be targeted
- Override flags set for an Available deployment (ignored)
- Credentials for the configured auth method are not in the environment

Example:
    Validate settings and handle results:
        ```python
        from pathlib import Path
        from cmpostdeploy.validation import validate_settings

        result = validate_settings(Path("settings.yaml"))
        if result.status == "valid":
            print("Settings are valid")
        else:
            for error in result.errors:
                print(f"Error: {error}")
        ```

"""

from __future__ import annotations

from collections.abc import Iterable
import os
from pathlib import Path

from cmpostdeploy.admin import DeployPurpose, available_clients
from cmpostdeploy.config import load_settings
from cmpostdeploy.exceptions import ConfigError
from cmpostdeploy.results import ValidationResult

__all__ = ["validate_settings"]

_AUTH_ENV = {
    "basic": ("CMPD_USERNAME", "CMPD_PASSWORD"),
    "oauth": ("CMPD_TENANT_ID", "CMPD_CLIENT_ID", "CMPD_CLIENT_SECRET"),
}


def validate_settings(
    settings_path: Path, overlays: Iterable[Path] = ()
) -> ValidationResult:
    """Validate a settings file without contacting the site.

    Args:
        settings_path: Settings YAML file.
        overlays: Optional overlay files, merged as for a run.

    Returns:
        ValidationResult with status "valid" or "invalid", errors and
        warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    try:
        settings = load_settings(settings_path, overlays)
    except ConfigError as err:
        errors.append(str(err))
        return ValidationResult("invalid", errors, warnings, str(settings_path))

    if settings.site.client not in available_clients():
        errors.append(
            f"Unknown admin client: {settings.site.client!r}. "
            f"Available: {', '.join(available_clients())}"
        )

    collections = settings.collections
    if not collections.new_app_collections:
        warnings.append("collections.new_apps is empty: new applications are not deployed")
    if (
        not collections.superseding_app_collections
        and not collections.inherit_superseded_collections
    ):
        warnings.append(
            "collections.superseding_apps is empty and inheritance is disabled: "
            "superseding applications are not deployed"
        )

    deployment = settings.deployment
    if deployment.purpose is DeployPurpose.AVAILABLE and (
        deployment.override_service_window or deployment.reboot_outside_service_window
    ):
        warnings.append(
            "Service window overrides are ignored for Available deployments"
        )

    for name in _AUTH_ENV.get(settings.site.auth, ()):
        if os.getenv(name) is None:
            warnings.append(f"Environment variable {name} is not set (site.auth: {settings.site.auth})")

    if not settings.mail.enabled:
        warnings.append("mail.enabled is false: no summary email is sent")

    status = "invalid" if errors else "valid"
    return ValidationResult(status, errors, warnings, str(settings_path))
