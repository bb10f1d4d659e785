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

"""CMPD - ConfigMgr Post-Deployment

A Python-based CLI tool that finishes what a packaging run starts in
Microsoft Configuration Manager: once applications have been created or
superseded, it distributes their content and deploys them to collections.

CMPD provides:

- Declarative YAML settings with layered overlays
- Content distribution to a DP list or every DP in the site
- Collection inheritance from the application being superseded
- Deployment policy (Available/Required, user experience, service windows)
- Summary email of superseded, new and failed applications
- What-if mode that performs every lookup but no writes

Quick Start:
Validate settings:

    $ cmpd validate settings.yaml

Process a batch file:

    $ cmpd run batch.json --config settings.yaml

For full CLI documentation:

    $ cmpd --help

For more details, see the individual module docstrings.
"""

__version__ = "0.3.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "ConfigMgr post-deployment: distribute content and deploy applications"

# Re-export commonly used functions for convenience
from cmpostdeploy.config import load_settings
from cmpostdeploy.core import run_batch
from cmpostdeploy.exceptions import (
    AdminAPIError,
    BatchError,
    CMPDError,
    ConfigError,
    NotificationError,
)
from cmpostdeploy.orchestrator import DeploymentOrchestrator
from cmpostdeploy.results import (
    ApplicationResult,
    RunResult,
    ValidationResult,
)
from cmpostdeploy.supersedence import resolve_latest_superseded_application
from cmpostdeploy.validation import validate_settings

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "ApplicationResult",
    "RunResult",
    "ValidationResult",
    "DeploymentOrchestrator",
    "load_settings",
    "run_batch",
    "resolve_latest_superseded_application",
    "validate_settings",
    "CMPDError",
    "ConfigError",
    "BatchError",
    "AdminAPIError",
    "NotificationError",
]
