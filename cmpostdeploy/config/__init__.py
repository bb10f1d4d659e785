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

"""Configuration loading and management for CMPD.

This module provides tools for loading, merging, and validating YAML-based
settings with a layered approach:

  - Built-in defaults
  - Site settings file (settings.yaml)
  - Optional overlay files (settings.<env>.yaml)

The loader performs deep merging where dicts are merged recursively and
lists/scalars are replaced (last wins). Relative paths are resolved against
the settings file location.

Public API:

- load_settings: Load settings into an immutable Settings tree
- load_effective_config: Load the merged raw dict
- settings_from_dict: Convert a merged dict into Settings

Example:
    Basic usage:

        from pathlib import Path
        from cmpostdeploy.config import load_settings

        settings = load_settings(Path("settings.yaml"))
        print(settings.collections.new_app_collections)

"""

from .loader import load_effective_config, load_settings
from .settings import (
    CollectionPolicy,
    DeploymentSettings,
    DistributionSettings,
    MailSettings,
    PathSettings,
    Settings,
    SiteSettings,
    settings_from_dict,
)

__all__ = [
    "load_effective_config",
    "load_settings",
    "settings_from_dict",
    "Settings",
    "SiteSettings",
    "DistributionSettings",
    "CollectionPolicy",
    "DeploymentSettings",
    "PathSettings",
    "MailSettings",
]
