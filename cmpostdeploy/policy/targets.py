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

"""Collection targeting policy.

Decides which collections an application is deployed to.

Superseding applications:

1. If inheritance is enabled and the superseded application is deployed,
   every collection it is currently deployed to.
2. Plus the collections configured under collections.superseding_apps.

New applications:

- Exactly the collections configured under collections.new_apps.

The result is de-duplicated (collection names compare case-insensitively,
first spelling wins) while keeping inherited collections ahead of
configured ones. An empty result means the application is not deployed.

Example:
    ```python
    from cmpostdeploy.policy import resolve_target_collections

    targets = resolve_target_collections(
        client,
        settings.collections,
        "7-Zip 24.08",
        superseding=True,
        superseded=latest,
    )
    ```
"""

from __future__ import annotations

from collections.abc import Iterable

from cmpostdeploy.admin.base import AdminClient, SupersededApplication
from cmpostdeploy.config.settings import CollectionPolicy
from cmpostdeploy.exceptions import AdminAPIError
from cmpostdeploy.logging import Logger, get_global_logger


def dedupe_collections(names: Iterable[str]) -> list[str]:
    """Drop repeated collection names, keeping the first spelling and order."""
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        key = name.strip().casefold()
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(name.strip())
    return result


def resolve_target_collections(
    client: AdminClient,
    policy: CollectionPolicy,
    application_name: str,
    *,
    superseding: bool,
    superseded: SupersededApplication | None = None,
    logger: Logger | None = None,
) -> list[str]:
    """Return the collections application_name should be deployed to.

    Args:
        client: Connected administration client (used for inheritance only).
        policy: Collection policy from settings.
        application_name: Application being deployed.
        superseding: True if the application supersedes another one.
        superseded: Latest superseded application, if resolved.
        logger: Logger. Defaults to the global logger.

    Returns:
        Ordered, de-duplicated collection names. May be empty.

    Note:
        A failing inheritance query is logged; the configured collections
        still apply.
    """
    logger = logger or get_global_logger()

    if not superseding:
        return dedupe_collections(policy.new_app_collections)

    collections: list[str] = []
    if policy.inherit_superseded_collections and superseded is not None:
        if superseded.is_deployed:
            try:
                inherited = client.get_deployment_collections(superseded.name)
            except AdminAPIError as err:
                logger.warning(
                    "POLICY",
                    f"Could not read collections of {superseded.name}: {err}",
                )
            else:
                logger.verbose(
                    "POLICY",
                    f"{application_name} inherits {len(inherited)} collection(s) "
                    f"from {superseded.name}",
                )
                collections.extend(inherited)
        else:
            logger.verbose(
                "POLICY", f"{superseded.name} is not deployed, nothing to inherit"
            )

    collections.extend(policy.superseding_app_collections)
    return dedupe_collections(collections)
