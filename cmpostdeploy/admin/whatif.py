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

"""What-if wrapper for administration clients.

WhatIfClient forwards every read to the wrapped client and replaces every
write with a log line, so a batch can be rehearsed against a live site
without distributing content or creating deployments.
"""

from __future__ import annotations

from cmpostdeploy.logging import Logger, get_global_logger

from .base import AdminClient, DeploymentTarget, SupersededApplication


class WhatIfClient:
    """AdminClient that performs reads and only logs writes.

    Attributes:
        inner: The wrapped client used for reads.
        skipped_writes: Description of every write that was skipped.
    """

    def __init__(self, inner: AdminClient, logger: Logger | None = None) -> None:
        self.inner = inner
        self.logger = logger or get_global_logger()
        self.skipped_writes: list[str] = []

    def _skip(self, description: str) -> None:
        self.skipped_writes.append(description)
        self.logger.verbose("WHATIF", f"Would {description}")

    def connect(self) -> None:
        self.inner.connect()

    def list_distribution_points(self) -> list[str]:
        return self.inner.list_distribution_points()

    def get_superseded_applications(
        self, application_name: str
    ) -> list[SupersededApplication]:
        return self.inner.get_superseded_applications(application_name)

    def get_deployment_collections(self, application_name: str) -> list[str]:
        return self.inner.get_deployment_collections(application_name)

    def distribute_content(
        self, application_name: str, distribution_points: list[str]
    ) -> None:
        self._skip(
            f"distribute {application_name} to {', '.join(distribution_points)}"
        )

    def create_deployment(
        self, application_name: str, target: DeploymentTarget, comment: str
    ) -> None:
        self._skip(
            f"deploy {application_name} to {target.collection_name} "
            f"as {target.purpose.value}"
        )
