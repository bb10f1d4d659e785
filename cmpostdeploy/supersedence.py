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

"""Supersedence chain resolution.

An application can supersede several older applications (one per
deployment type relation, or a chain left behind by earlier releases).
Only the most recently created one matters for collection inheritance:
it is the release users currently have.

Example:
    ```python
    from cmpostdeploy.supersedence import resolve_latest_superseded_application

    latest = resolve_latest_superseded_application(client, "7-Zip 24.08")
    if latest is not None and latest.is_deployed:
        print(f"Inheriting collections from {latest.name}")
    ```
"""

from __future__ import annotations

from collections.abc import Iterable

from cmpostdeploy.admin.base import AdminClient, SupersededApplication
from cmpostdeploy.exceptions import AdminAPIError
from cmpostdeploy.logging import Logger, get_global_logger


def select_latest(
    applications: Iterable[SupersededApplication],
) -> SupersededApplication | None:
    """Pick the most recently created application.

    Ties on date_created are broken by name so the result never depends on
    the order the provider returned rows in.

    Returns:
        The application with the greatest date_created, or None if empty.
    """
    ordered = sorted(
        applications, key=lambda app: (app.date_created, app.name), reverse=True
    )
    return ordered[0] if ordered else None


def resolve_latest_superseded_application(
    client: AdminClient,
    application_name: str,
    logger: Logger | None = None,
) -> SupersededApplication | None:
    """Find the most recent application superseded by application_name.

    Read-only. A failing query is logged and treated as "nothing
    superseded" so one broken application never stops the batch.

    Args:
        client: Connected administration client.
        application_name: Application that supersedes at least one other.
        logger: Logger for the failure message. Defaults to the global logger.

    Returns:
        The superseded application with the latest creation date, or None if
        there is none or the lookup failed.
    """
    logger = logger or get_global_logger()
    try:
        superseded = client.get_superseded_applications(application_name)
    except AdminAPIError as err:
        logger.warning(
            "SUPERSEDENCE",
            f"Could not resolve applications superseded by {application_name}: {err}",
        )
        return None

    logger.debug(
        "SUPERSEDENCE",
        f"{application_name} supersedes {len(superseded)} application(s): "
        + ", ".join(app.name for app in superseded),
    )
    return select_latest(superseded)
