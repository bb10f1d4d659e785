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

"""Administration client protocol, domain types and registry for CMPD.

This module defines the foundational components for talking to a
Configuration Manager site:

- AdminClient protocol: Interface that every client implements
- Domain types: SupersededApplication, DeploymentTarget and their enums
- Client registry: Global dict mapping client names to implementations
- Registration and lookup functions: register_client() and get_client()

Design Philosophy:
    - Clients are Protocol classes (structural subtyping, not inheritance)
    - Registration happens at module import time (clients self-register)
    - Every failing call raises AdminAPIError; callers decide whether the
      failure is fatal (session setup) or recoverable (everything else)
    - Clients hold a session but no run state; they can be reused across
      batches

Example:
    Implementing a custom client:
        ```python
        from cmpostdeploy.admin.base import register_client

        class PowerShellClient:
            def __init__(self, settings, logger=None):
                ...

            def distribute_content(self, application_name, distribution_points):
                ...

        register_client("powershell", PowerShellClient)
        ```

"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import enum
from typing import TYPE_CHECKING, Any, Protocol

from cmpostdeploy.exceptions import ConfigError

if TYPE_CHECKING:
    from cmpostdeploy.config.settings import Settings
    from cmpostdeploy.logging import Logger

# -------------------------------
# Domain types
# -------------------------------


class DeployPurpose(str, enum.Enum):
    """Whether installation is optional or enforced."""

    AVAILABLE = "Available"
    REQUIRED = "Required"


class UserExperience(str, enum.Enum):
    """How much of the deployment the end user sees."""

    DISPLAY_ALL = "DisplayAll"
    DISPLAY_SOFTWARE_CENTER_ONLY = "DisplaySoftwareCenterOnly"
    HIDE_ALL = "HideAll"


@dataclass(frozen=True)
class SupersededApplication:
    """An application replaced by a newer one through supersedence.

    Attributes:
        name: Localized display name of the superseded application.
        date_created: When the superseded application was created.
        is_deployed: True if the application has at least one deployment.
        ci_id: Configuration item ID of the application, if known.
    """

    name: str
    date_created: datetime
    is_deployed: bool
    ci_id: int | None = None


@dataclass(frozen=True)
class DeploymentTarget:
    """A collection an application is deployed to, with its policy.

    The override flags are only meaningful for required deployments and
    are None for available ones. Use build() rather than the constructor
    so the flags are dropped for available deployments.
    """

    collection_name: str
    purpose: DeployPurpose
    user_experience: UserExperience
    override_service_window: bool | None = None
    reboot_outside_service_window: bool | None = None

    @classmethod
    def build(
        cls,
        collection_name: str,
        purpose: DeployPurpose,
        user_experience: UserExperience,
        override_service_window: bool = False,
        reboot_outside_service_window: bool = False,
    ) -> DeploymentTarget:
        """Create a target, keeping override flags only for required purpose."""
        if purpose is DeployPurpose.REQUIRED:
            return cls(
                collection_name,
                purpose,
                user_experience,
                override_service_window=override_service_window,
                reboot_outside_service_window=reboot_outside_service_window,
            )
        return cls(collection_name, purpose, user_experience)

    @property
    def has_override_flags(self) -> bool:
        return (
            self.override_service_window is not None
            and self.reboot_outside_service_window is not None
        )


# -------------------------------
# Client Protocol
# -------------------------------


class AdminClient(Protocol):
    """Protocol for Configuration Manager administration clients.

    Every method raises AdminAPIError on failure. Read methods have no side
    effects.
    """

    def connect(self) -> None:
        """Establish and validate the session with the site.

        Raises:
            AdminAPIError: If the provider is unreachable or the configured
                site does not exist.
        """
        ...

    def distribute_content(
        self, application_name: str, distribution_points: list[str]
    ) -> None:
        """Distribute the application's content to distribution points.

        Distributing to a DP that already holds the content is a no-op.
        """
        ...

    def get_superseded_applications(
        self, application_name: str
    ) -> list[SupersededApplication]:
        """Return every application superseded by the given application."""
        ...

    def get_deployment_collections(self, application_name: str) -> list[str]:
        """Return the names of collections the application is deployed to."""
        ...

    def create_deployment(
        self, application_name: str, target: DeploymentTarget, comment: str
    ) -> None:
        """Deploy the application to the target collection."""
        ...

    def list_distribution_points(self) -> list[str]:
        """Return the server names of every distribution point in the site."""
        ...


# -------------------------------
# Client Registry
# -------------------------------

_CLIENT_REGISTRY: dict[str, type[Any]] = {}


def register_client(name: str, client_class: type[Any]) -> None:
    """Register an administration client by name in the global registry.

    Registering the same name twice overwrites the previous registration
    (allows monkey-patching for tests).

    Args:
        name: Client name, as used in settings under site.client.
        client_class: Class implementing AdminClient. It is constructed as
            client_class(settings, logger=logger).
    """
    _CLIENT_REGISTRY[name] = client_class


def get_client(
    name: str, settings: Settings, logger: Logger | None = None
) -> AdminClient:
    """Create an administration client by name from the global registry.

    Args:
        name: Client name (e.g., "adminservice"). Case-sensitive.
        settings: Effective settings passed to the client constructor.
        logger: Optional logger passed to the client constructor.

    Returns:
        A new, not yet connected client instance.

    Raises:
        ConfigError: If the client name is not registered. The error message
            includes a list of available clients for troubleshooting.
    """
    if name not in _CLIENT_REGISTRY:
        available = ", ".join(_CLIENT_REGISTRY.keys())
        raise ConfigError(
            f"Unknown admin client: {name!r}. Available: {available or '(none)'}"
        )
    return _CLIENT_REGISTRY[name](settings, logger=logger)


def available_clients() -> list[str]:
    """Return the registered client names."""
    return sorted(_CLIENT_REGISTRY)
