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

"""Per-application deployment orchestration.

Each application goes through the same sequence:

1. **Distribute content** to the configured distribution points. A failure
   ends processing of the application: nothing is deployed without
   content.
2. **Resolve the superseded application** (superseding applications only).
3. **Resolve target collections** from the collection policy.
4. **Create one deployment per collection.** Each collection is attempted
   independently; a failure is recorded and the next collection is tried.

Nothing is retried. Every external call goes through a wrapper that turns
AdminAPIError into a CallResult, so failures travel as values instead of
exceptions.

Example:
    ```python
    from cmpostdeploy.orchestrator import DeploymentOrchestrator
    from cmpostdeploy.results import Role

    orchestrator = DeploymentOrchestrator(client, settings)
    result = orchestrator.process_application("7-Zip 24.08", Role.SUPERSEDING)
    print(result.deployed_collections)
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from cmpostdeploy.admin.base import AdminClient, DeploymentTarget
from cmpostdeploy.config.settings import Settings
from cmpostdeploy.exceptions import AdminAPIError
from cmpostdeploy.logging import Logger, get_global_logger
from cmpostdeploy.policy import resolve_target_collections
from cmpostdeploy.results import ApplicationResult, CallResult, Role
from cmpostdeploy.supersedence import resolve_latest_superseded_application

COMMENT_TIME_FORMAT = "%Y-%m-%d %H:%M"


class DeploymentOrchestrator:
    """Distributes and deploys applications against one site.

    Attributes:
        client: Connected administration client.
        settings: Effective settings for the run.
    """

    def __init__(
        self,
        client: AdminClient,
        settings: Settings,
        logger: Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.logger = logger or get_global_logger()
        self._clock = clock or datetime.now
        self._all_points: list[str] | None = None

    # -------------------------------
    # External-call wrappers
    # -------------------------------

    def _distribution_points(self) -> list[str]:
        distribution = self.settings.distribution
        if not distribution.all_points:
            return list(distribution.points)
        if self._all_points is None:
            self._all_points = self.client.list_distribution_points()
            self.logger.verbose(
                "CONTENT", f"Site has {len(self._all_points)} distribution point(s)"
            )
        return self._all_points

    def distribute(self, application_name: str) -> CallResult:
        """Distribute content for an application to the configured DPs."""
        try:
            points = self._distribution_points()
            if not points:
                return CallResult.failure("No distribution points found")
            self.client.distribute_content(application_name, points)
        except AdminAPIError as err:
            return CallResult.failure(str(err))
        self.logger.verbose(
            "CONTENT", f"Distributed {application_name} to {len(points)} DP(s)"
        )
        return CallResult.success()

    def deploy(
        self, application_name: str, target: DeploymentTarget, comment: str
    ) -> CallResult:
        """Create one deployment of an application to one collection."""
        try:
            self.client.create_deployment(application_name, target, comment)
        except AdminAPIError as err:
            return CallResult.failure(str(err))
        return CallResult.success()

    # -------------------------------
    # Helpers
    # -------------------------------

    def build_target(self, collection_name: str) -> DeploymentTarget:
        deployment = self.settings.deployment
        return DeploymentTarget.build(
            collection_name,
            deployment.purpose,
            deployment.user_experience,
            override_service_window=deployment.override_service_window,
            reboot_outside_service_window=deployment.reboot_outside_service_window,
        )

    def build_comment(self, role: Role, superseded_name: str | None = None) -> str:
        """Build the deployment comment.

        Examples:
            "Superseding 7-Zip 24.07 - deployed automatically on 2025-01-02 03:04"
            "New application - deployed automatically on 2025-01-02 03:04"
        """
        stamp = self._clock().strftime(COMMENT_TIME_FORMAT)
        if role is Role.SUPERSEDING and superseded_name:
            text = f"Superseding {superseded_name} - deployed automatically on {stamp}"
        elif role is Role.SUPERSEDING:
            text = f"Superseding application - deployed automatically on {stamp}"
        else:
            text = f"New application - deployed automatically on {stamp}"
        prefix = self.settings.deployment.comment_prefix.strip()
        return f"{prefix} {text}" if prefix else text

    # -------------------------------
    # Public API
    # -------------------------------

    def process_application(self, application_name: str, role: Role) -> ApplicationResult:
        """Distribute and deploy one application.

        Args:
            application_name: Display name of the application.
            role: Role.SUPERSEDING to inherit collections from the superseded
                application, Role.NEW for configured collections only.

        Returns:
            ApplicationResult describing what happened. Never raises for
            administration failures.
        """
        self.logger.verbose("APP", f"Processing {application_name} ({role.value})")

        # 1. Content first; no content means no deployment
        distribution = self.distribute(application_name)
        if not distribution.ok:
            self.logger.warning(
                "CONTENT",
                f"Content distribution failed for {application_name}, "
                f"skipping deployment: {distribution.error}",
            )
            return ApplicationResult(
                name=application_name,
                role=role,
                distributed=False,
                error=distribution.error,
            )

        # 2. Superseded application
        superseded = None
        if role is Role.SUPERSEDING:
            superseded = resolve_latest_superseded_application(
                self.client, application_name, logger=self.logger
            )
            if superseded is None:
                self.logger.verbose(
                    "SUPERSEDENCE", f"{application_name}: no superseded application found"
                )
            elif superseded.is_deployed:
                self.logger.verbose(
                    "SUPERSEDENCE",
                    f"{application_name} supersedes {superseded.name} "
                    f"(created {superseded.date_created:%Y-%m-%d})",
                )
            else:
                self.logger.verbose(
                    "SUPERSEDENCE",
                    f"{application_name} supersedes {superseded.name} (not deployed)",
                )

        # 3. Collections
        collections = resolve_target_collections(
            self.client,
            self.settings.collections,
            application_name,
            superseding=role is Role.SUPERSEDING,
            superseded=superseded,
            logger=self.logger,
        )
        if not collections:
            self.logger.verbose(
                "DEPLOY", f"No target collections for {application_name}"
            )

        # 4. One deployment per collection, independently
        comment = self.build_comment(role, superseded.name if superseded else None)
        deployed: list[str] = []
        failed: list[tuple[str, str]] = []
        for collection in collections:
            outcome = self.deploy(application_name, self.build_target(collection), comment)
            if outcome.ok:
                deployed.append(collection)
                self.logger.verbose(
                    "DEPLOY", f"Deployed {application_name} to {collection}"
                )
            else:
                failed.append((collection, outcome.error or "unknown error"))
                self.logger.warning(
                    "DEPLOY",
                    f"Failed to deploy {application_name} to {collection}: "
                    f"{outcome.error}",
                )

        return ApplicationResult(
            name=application_name,
            role=role,
            distributed=True,
            superseded=superseded.name if superseded else None,
            deployed_collections=tuple(deployed),
            failed_collections=tuple(failed),
        )
