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

"""ConfigMgr AdminService client for CMPD.

This client talks to the SMS provider's REST endpoint (AdminService) through
its WMI route, which exposes the site's WMI classes as OData collections:

    https://<provider>/AdminService/wmi/<Class>?$filter=...&$select=...

Classes Used:

- SMS_Site: session check (the configured site code must exist)
- SMS_ApplicationLatest / SMS_Application: application lookup
- SMS_DeploymentType: latest deployment types of an application
- SMS_AppDependenceRelation: supersedence relations (RelationType 15)
- SMS_ApplicationAssignment: existing deployments and new deployments
- SMS_Collection: collection lookup by name
- SMS_DistributionPointInfo: distribution points of the site
- SMS_DistributionPoint: content targeted to a distribution point

Key Features:

- **Per-call timeout** - Every request carries site.timeout; a timeout is
  reported as AdminAPIError like any other failure.
- **Read-only retries** - GET requests retry on 502/503/504 with
  exponential backoff. Writes are never retried.
- **Idempotent content distribution** - Distribution points that already
  hold the application's content are skipped.
- **Authentication** - none (provider trusts the caller), basic
  (CMPD_USERNAME/CMPD_PASSWORD) or oauth (client credentials for
  AdminService published through a cloud management gateway).

Example:
    ```python
    from cmpostdeploy.admin.adminservice import AdminServiceClient

    client = AdminServiceClient(settings)
    client.connect()
    for app in client.get_superseded_applications("7-Zip 24.08"):
        print(app.name, app.date_created)
    ```
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import re
from typing import TYPE_CHECKING, Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cmpostdeploy import __version__
from cmpostdeploy.auth import CredentialManager
from cmpostdeploy.exceptions import AdminAPIError
from cmpostdeploy.logging import get_global_logger

from .base import (
    DeploymentTarget,
    DeployPurpose,
    SupersededApplication,
    UserExperience,
    register_client,
)

if TYPE_CHECKING:
    from cmpostdeploy.config.settings import Settings
    from cmpostdeploy.logging import Logger

# SMS_AppDependenceRelation.RelationType for "supersedes"
SUPERSEDENCE_RELATION_TYPE = 15

# SMS_ApplicationAssignment.OfferTypeID
OFFER_TYPE_REQUIRED = 0
OFFER_TYPE_AVAILABLE = 2

# SMS_ApplicationAssignment.DesiredConfigType: 1 = install, 2 = uninstall
DESIRED_CONFIG_INSTALL = 1

_WMI_DATETIME = re.compile(r"^(\d{14})\.\d+([+-]\d{3})$")


def _quote(value: str) -> str:
    """Quote a string literal for an OData $filter expression."""
    return "'" + value.replace("'", "''") + "'"


def _parse_datetime(value: Any) -> datetime:
    """Parse an AdminService date (ISO 8601 or WMI CIM_DATETIME) as UTC-aware."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value:
        raise AdminAPIError(f"Invalid date value from provider: {value!r}")
    match = _WMI_DATETIME.match(value)
    if match:
        parsed = datetime.strptime(match.group(1), "%Y%m%d%H%M%S")
        offset_minutes = int(match.group(2))
        return parsed.replace(tzinfo=UTC) - timedelta(minutes=offset_minutes)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as err:
        raise AdminAPIError(f"Invalid date value from provider: {value!r}") from err
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _field(row: Any, key: str, wmi_class: str) -> Any:
    """Read a required column from a provider row."""
    value = row.get(key) if isinstance(row, dict) else None
    if value is None:
        raise AdminAPIError(f"{wmi_class} row has no {key}")
    return value


def _int_field(row: Any, key: str, wmi_class: str) -> int:
    value = _field(row, key, wmi_class)
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise AdminAPIError(
            f"{wmi_class} row has a non-numeric {key}: {value!r}"
        ) from err


def make_session(verify_tls: bool | str = True) -> requests.Session:
    """
    Create a requests.Session for the SMS provider.

    - Retries GETs on transient gateway errors with exponential backoff.
    - Never retries POSTs (a retried deployment would be created twice).
    - Asks for JSON and identifies CMPD in the User-Agent.
    """
    s = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    s.headers.update(
        {
            "User-Agent": f"cmpd/{__version__}",
            "Accept": "application/json",
        }
    )
    s.verify = verify_tls
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


class AdminServiceClient:
    """AdminClient implementation over the AdminService REST API.

    Args:
        settings: Effective settings; site.* is used.
        logger: Logger for HTTP tracing. Defaults to the global logger.
        session: Preconfigured session (tests inject one).
        credentials: Credential source for basic and oauth auth.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Logger | None = None,
        session: requests.Session | None = None,
        credentials: CredentialManager | None = None,
    ) -> None:
        self.site = settings.site
        self.logger = logger or get_global_logger()
        self.base_url = f"https://{self.site.provider}/AdminService/wmi"
        self.session = session or make_session(self.site.verify_tls)
        self._credentials = credentials
        self._dp_paths: dict[str, str] | None = None

        if self.site.auth != "none" and self._credentials is None:
            self._credentials = CredentialManager()
        if self.site.auth == "basic":
            self.session.auth = self._credentials.get_basic_auth()

    # -------------------------------
    # HTTP plumbing
    # -------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if self.site.auth != "oauth":
            return {}
        token = self._credentials.get_token(
            self.site.token_scope, timeout=self.site.timeout
        )
        return {"Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        wmi_class: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{wmi_class}"
        self.logger.debug("HTTP", f"{method} {url} {params or ''}")
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._auth_headers(),
                timeout=self.site.timeout,
            )
        except requests.Timeout as err:
            raise AdminAPIError(
                f"Timed out after {self.site.timeout:g}s: {method} {wmi_class}"
            ) from err
        except requests.RequestException as err:
            raise AdminAPIError(f"{method} {wmi_class} failed: {err}") from err

        self.logger.debug("HTTP", f"Response: {resp.status_code} {resp.reason}")
        if resp.status_code >= 400:
            detail = resp.text.strip()[:300]
            raise AdminAPIError(
                f"{method} {wmi_class} returned HTTP {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as err:
            raise AdminAPIError(f"{method} {wmi_class} returned invalid JSON") from err
        if not isinstance(data, dict):
            raise AdminAPIError(f"{method} {wmi_class} returned unexpected payload")
        return data

    def _query(
        self, wmi_class: str, filter_: str | None = None, select: str | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {}
        if filter_:
            params["$filter"] = filter_
        if select:
            params["$select"] = select
        data = self._request("GET", wmi_class, params=params or None)
        value = data.get("value", [])
        if not isinstance(value, list):
            raise AdminAPIError(f"GET {wmi_class} returned unexpected payload")
        return value

    # -------------------------------
    # Lookups
    # -------------------------------

    def _get_application(self, application_name: str) -> dict[str, Any]:
        rows = self._query(
            "SMS_ApplicationLatest",
            f"LocalizedDisplayName eq {_quote(application_name)}",
            "CI_ID,ModelName,LocalizedDisplayName,DateCreated,IsDeployed,PackageID",
        )
        if not rows:
            raise AdminAPIError(f"Application not found: {application_name}")
        return rows[0]

    def _get_collection_id(self, collection_name: str) -> str:
        rows = self._query(
            "SMS_Collection", f"Name eq {_quote(collection_name)}", "CollectionID,Name"
        )
        if not rows:
            raise AdminAPIError(f"Collection not found: {collection_name}")
        return _field(rows[0], "CollectionID", "SMS_Collection")

    def _distribution_point_paths(self) -> dict[str, str]:
        """Map lower-cased DP names (FQDN and short name) to NAL paths."""
        if self._dp_paths is None:
            rows = self._query("SMS_DistributionPointInfo", select="Name,NALPath")
            paths: dict[str, str] = {}
            for row in rows:
                name = str(row.get("Name", "")).lower()
                if not name:
                    continue
                nal_path = str(_field(row, "NALPath", "SMS_DistributionPointInfo"))
                paths[name] = nal_path
                paths.setdefault(name.split(".")[0], nal_path)
            self._dp_paths = paths
        return self._dp_paths

    # -------------------------------
    # AdminClient protocol
    # -------------------------------

    def connect(self) -> None:
        rows = self._query(
            "SMS_Site", f"SiteCode eq {_quote(self.site.code)}", "SiteCode,SiteName"
        )
        if not rows:
            raise AdminAPIError(
                f"Site {self.site.code} not found on provider {self.site.provider}"
            )
        self.logger.verbose(
            "SITE",
            f"Connected to {self.site.code} ({rows[0].get('SiteName', 'unknown')}) "
            f"via {self.site.provider}",
        )

    def list_distribution_points(self) -> list[str]:
        rows = self._query("SMS_DistributionPointInfo", select="Name,NALPath")
        return sorted({str(row["Name"]) for row in rows if row.get("Name")})

    def distribute_content(
        self, application_name: str, distribution_points: list[str]
    ) -> None:
        app = self._get_application(application_name)
        package_id = app.get("PackageID")
        if not package_id:
            raise AdminAPIError(f"Application has no content package: {application_name}")

        dp_paths = self._distribution_point_paths()
        existing = {
            str(row.get("ServerNALPath", "")).lower()
            for row in self._query(
                "SMS_DistributionPoint",
                f"PackageID eq {_quote(package_id)}",
                "ServerNALPath",
            )
        }

        failures = []
        for dp in distribution_points:
            nal_path = dp_paths.get(dp.lower())
            if nal_path is None:
                failures.append(f"{dp}: distribution point not found")
                continue
            if nal_path.lower() in existing:
                self.logger.debug("CONTENT", f"{package_id} already on {dp}")
                continue
            try:
                self._request(
                    "POST",
                    "SMS_DistributionPoint",
                    body={
                        "PackageID": package_id,
                        "ServerNALPath": nal_path,
                        "SiteCode": self.site.code,
                    },
                )
            except AdminAPIError as err:
                # 409: another process targeted it concurrently
                if err.status_code == 409:
                    continue
                failures.append(f"{dp}: {err}")
                continue
            self.logger.debug("CONTENT", f"Targeted {package_id} to {dp}")

        if failures:
            raise AdminAPIError(
                f"Content distribution failed for {application_name}: "
                + "; ".join(failures)
            )

    def get_superseded_applications(
        self, application_name: str
    ) -> list[SupersededApplication]:
        app = self._get_application(application_name)
        model_name = _field(app, "ModelName", "SMS_ApplicationLatest")
        deployment_types = self._query(
            "SMS_DeploymentType",
            f"AppModelName eq {_quote(model_name)} and IsLatest eq true",
            "CI_ID,LocalizedDisplayName",
        )

        superseded_ci_ids: list[int] = []
        for dt in deployment_types:
            dt_id = _int_field(dt, "CI_ID", "SMS_DeploymentType")
            relations = self._query(
                "SMS_AppDependenceRelation",
                f"FromDeploymentTypeCIID eq {dt_id} "
                f"and RelationType eq {SUPERSEDENCE_RELATION_TYPE}",
                "ToApplicationCIID,ToDeploymentTypeCIID",
            )
            for relation in relations:
                ci_id = _int_field(
                    relation, "ToApplicationCIID", "SMS_AppDependenceRelation"
                )
                if ci_id not in superseded_ci_ids:
                    superseded_ci_ids.append(ci_id)

        results: list[SupersededApplication] = []
        seen_models: set[str] = set()
        for ci_id in superseded_ci_ids:
            revisions = self._query(
                "SMS_Application", f"CI_ID eq {ci_id}", "CI_ID,ModelName"
            )
            if not revisions:
                self.logger.debug("SUPERSEDENCE", f"CI {ci_id} no longer exists")
                continue
            model_name = _field(revisions[0], "ModelName", "SMS_Application")
            if model_name in seen_models:
                continue
            seen_models.add(model_name)
            latest = self._query(
                "SMS_ApplicationLatest",
                f"ModelName eq {_quote(model_name)}",
                "CI_ID,LocalizedDisplayName,DateCreated,IsDeployed",
            )
            if not latest:
                continue
            row = latest[0]
            results.append(
                SupersededApplication(
                    name=_field(row, "LocalizedDisplayName", "SMS_ApplicationLatest"),
                    date_created=_parse_datetime(row.get("DateCreated")),
                    is_deployed=bool(row.get("IsDeployed")),
                    ci_id=_int_field(row, "CI_ID", "SMS_ApplicationLatest"),
                )
            )
        return results

    def get_deployment_collections(self, application_name: str) -> list[str]:
        rows = self._query(
            "SMS_ApplicationAssignment",
            f"ApplicationName eq {_quote(application_name)}",
            "CollectionName,TargetCollectionID",
        )
        collections: list[str] = []
        for row in rows:
            name = row.get("CollectionName")
            if name and name not in collections:
                collections.append(name)
        return collections

    def create_deployment(
        self, application_name: str, target: DeploymentTarget, comment: str
    ) -> None:
        app = self._get_application(application_name)
        collection_id = self._get_collection_id(target.collection_name)
        now = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

        body: dict[str, Any] = {
            "ApplicationName": application_name,
            "AssignmentName": f"{application_name}_{collection_id}_Install",
            "AssignedCIs": [_int_field(app, "CI_ID", "SMS_ApplicationLatest")],
            "CollectionName": target.collection_name,
            "TargetCollectionID": collection_id,
            "AssignmentDescription": comment,
            "DesiredConfigType": DESIRED_CONFIG_INSTALL,
            "OfferFlags": 0,
            "SourceSite": self.site.code,
            "StartTime": now,
            "UseGMTTimes": True,
            "LocaleID": 1033,
            "NotifyUser": target.user_experience is UserExperience.DISPLAY_ALL,
            "UserUIExperience": target.user_experience is not UserExperience.HIDE_ALL,
        }
        if target.purpose is DeployPurpose.REQUIRED:
            body["OfferTypeID"] = OFFER_TYPE_REQUIRED
            body["EnforcementDeadline"] = now
            body["OverrideServiceWindows"] = bool(target.override_service_window)
            body["RebootOutsideOfServiceWindows"] = bool(
                target.reboot_outside_service_window
            )
        else:
            body["OfferTypeID"] = OFFER_TYPE_AVAILABLE

        self._request("POST", "SMS_ApplicationAssignment", body=body)


register_client("adminservice", AdminServiceClient)
