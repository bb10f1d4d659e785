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

"""Typed, immutable settings for CMPD.

The loader produces a merged dict; this module turns that dict into a tree
of frozen dataclasses that is passed explicitly to the orchestrator and the
clients. Nothing downstream reads the raw dict.

Settings Layout:
    ```yaml
    apiVersion: cmpd/v1
    site:
      code: "PS1"                       # Required: site code
      provider: "cm01.contoso.com"      # Required: SMS provider host
      client: adminservice              # Optional: admin client name
      timeout: 60                       # Optional: seconds per API call
      verify_tls: true                  # Optional: bool or CA bundle path
      auth: none                        # Optional: none | basic | oauth
      token_scope: "api://.../.default" # Required when auth is oauth
    distribution:
      points: All                       # "All" or a list of DP server names
    collections:
      new_apps: ["Software - Pilot"]
      superseding_apps: ["Software - Pilot"]
      inherit_superseded: true
    deployment:
      purpose: Available                # Available | Required
      user_experience: DisplayAll       # DisplayAll | DisplaySoftwareCenterOnly | HideAll
      override_service_window: false    # Required deployments only
      reboot_outside_service_window: false
      comment_prefix: ""
    paths:
      backup_folder: ./backup
      log_file: ./logs/cmpd.log
    mail:
      enabled: true
      smtp_server: smtp.contoso.com
      port: 25
      use_tls: false
      sender: cmpd@contoso.com
      recipients: ["packaging@contoso.com"]
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cmpostdeploy.admin.base import DeployPurpose, UserExperience
from cmpostdeploy.exceptions import ConfigError

AUTH_METHODS = ("none", "basic", "oauth")


@dataclass(frozen=True)
class SiteSettings:
    code: str
    provider: str
    client: str = "adminservice"
    timeout: float = 60.0
    verify_tls: bool | str = True
    auth: str = "none"
    token_scope: str | None = None


@dataclass(frozen=True)
class DistributionSettings:
    """Distribution point targets.

    When all_points is True the point list is resolved from the site at run
    time and points is empty.
    """

    points: tuple[str, ...] = ()
    all_points: bool = False


@dataclass(frozen=True)
class CollectionPolicy:
    new_app_collections: tuple[str, ...] = ()
    superseding_app_collections: tuple[str, ...] = ()
    inherit_superseded_collections: bool = True


@dataclass(frozen=True)
class DeploymentSettings:
    purpose: DeployPurpose = DeployPurpose.AVAILABLE
    user_experience: UserExperience = UserExperience.DISPLAY_ALL
    override_service_window: bool = False
    reboot_outside_service_window: bool = False
    comment_prefix: str = ""


@dataclass(frozen=True)
class PathSettings:
    backup_folder: Path | None = None
    log_file: Path | None = None


@dataclass(frozen=True)
class MailSettings:
    enabled: bool = False
    smtp_server: str | None = None
    port: int = 25
    use_tls: bool = False
    sender: str | None = None
    recipients: tuple[str, ...] = ()
    subject: str = "ConfigMgr post-deployment summary"
    send_when_empty: bool = False
    username: str | None = None


@dataclass(frozen=True)
class Settings:
    """Effective settings for one run.

    Attributes:
        site: Site identity and connection options.
        distribution: Distribution point targets.
        collections: Collection targeting policy.
        deployment: Deployment purpose and behavior.
        paths: Backup folder and log file.
        mail: Summary email settings.
        source_path: Settings file the values were loaded from, if any.
    """

    site: SiteSettings
    distribution: DistributionSettings
    collections: CollectionPolicy
    deployment: DeploymentSettings
    paths: PathSettings
    mail: MailSettings
    source_path: Path | None = None


# -------------------------------
# Field helpers
# -------------------------------


def _section(cfg: dict[str, Any], name: str) -> dict[str, Any]:
    value = cfg.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _str_list(value: Any, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{field}' must be a string or a list of strings")
    return tuple(v.strip() for v in value if v.strip())


def _bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"'{field}' must be true or false, got {value!r}")


def _enum(enum_cls: Any, value: Any, field: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ConfigError(f"'{field}' must be one of {allowed}, got {value!r}")


def _path(value: Any, field: str) -> Path | None:
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{field}' must be a path string")
    return Path(value)


# -------------------------------
# Public API
# -------------------------------


def settings_from_dict(
    cfg: dict[str, Any], source_path: Path | None = None
) -> Settings:
    """Build an immutable Settings tree from a merged configuration dict.

    Args:
        cfg: Merged configuration (see module docstring for layout).
        source_path: Settings file the dict came from, kept for messages.

    Returns:
        Settings with every section populated (defaults for missing keys).

    Raises:
        ConfigError: If a required value is missing or a value has the wrong
            type or an unknown enum value.
    """
    site = _section(cfg, "site")
    code = site.get("code")
    provider = site.get("provider")
    if not isinstance(code, str) or not code.strip():
        raise ConfigError("Missing required setting: site.code")
    if not isinstance(provider, str) or not provider.strip():
        raise ConfigError("Missing required setting: site.provider")

    auth = str(site.get("auth", "none")).lower()
    if auth not in AUTH_METHODS:
        raise ConfigError(
            f"'site.auth' must be one of {', '.join(AUTH_METHODS)}, got {auth!r}"
        )
    token_scope = site.get("token_scope")
    if auth == "oauth" and not token_scope:
        raise ConfigError("'site.token_scope' is required when site.auth is oauth")

    timeout = site.get("timeout", 60)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"'site.timeout' must be a positive number, got {timeout!r}")

    verify_tls = site.get("verify_tls", True)
    if not isinstance(verify_tls, (bool, str)):
        raise ConfigError("'site.verify_tls' must be a bool or a CA bundle path")

    site_settings = SiteSettings(
        code=code.strip().upper(),
        provider=provider.strip(),
        client=str(site.get("client", "adminservice")),
        timeout=float(timeout),
        verify_tls=verify_tls,
        auth=auth,
        token_scope=token_scope,
    )

    distribution = _section(cfg, "distribution")
    raw_points = distribution.get("points")
    if isinstance(raw_points, str) and raw_points.strip().lower() == "all":
        distribution_settings = DistributionSettings(all_points=True)
    else:
        distribution_settings = DistributionSettings(
            points=_str_list(raw_points, "distribution.points")
        )
        if not distribution_settings.points:
            raise ConfigError(
                "Missing required setting: distribution.points "
                "(a list of distribution points or \"All\")"
            )

    collections = _section(cfg, "collections")
    collection_policy = CollectionPolicy(
        new_app_collections=_str_list(
            collections.get("new_apps"), "collections.new_apps"
        ),
        superseding_app_collections=_str_list(
            collections.get("superseding_apps"), "collections.superseding_apps"
        ),
        inherit_superseded_collections=_bool(
            collections.get("inherit_superseded", True),
            "collections.inherit_superseded",
        ),
    )

    deployment = _section(cfg, "deployment")
    deployment_settings = DeploymentSettings(
        purpose=_enum(
            DeployPurpose, deployment.get("purpose", "Available"), "deployment.purpose"
        ),
        user_experience=_enum(
            UserExperience,
            deployment.get("user_experience", "DisplayAll"),
            "deployment.user_experience",
        ),
        override_service_window=_bool(
            deployment.get("override_service_window", False),
            "deployment.override_service_window",
        ),
        reboot_outside_service_window=_bool(
            deployment.get("reboot_outside_service_window", False),
            "deployment.reboot_outside_service_window",
        ),
        comment_prefix=str(deployment.get("comment_prefix") or ""),
    )

    paths = _section(cfg, "paths")
    path_settings = PathSettings(
        backup_folder=_path(paths.get("backup_folder"), "paths.backup_folder"),
        log_file=_path(paths.get("log_file"), "paths.log_file"),
    )

    mail = _section(cfg, "mail")
    port = mail.get("port", 25)
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigError(f"'mail.port' must be an integer, got {port!r}")
    mail_settings = MailSettings(
        enabled=_bool(mail.get("enabled", False), "mail.enabled"),
        smtp_server=mail.get("smtp_server"),
        port=port,
        use_tls=_bool(mail.get("use_tls", False), "mail.use_tls"),
        sender=mail.get("sender"),
        recipients=_str_list(mail.get("recipients"), "mail.recipients"),
        subject=str(mail.get("subject") or MailSettings.subject),
        send_when_empty=_bool(
            mail.get("send_when_empty", False), "mail.send_when_empty"
        ),
        username=mail.get("username"),
    )
    if mail_settings.enabled:
        if not mail_settings.smtp_server:
            raise ConfigError("'mail.smtp_server' is required when mail is enabled")
        if not mail_settings.sender:
            raise ConfigError("'mail.sender' is required when mail is enabled")
        if not mail_settings.recipients:
            raise ConfigError("'mail.recipients' is required when mail is enabled")

    return Settings(
        site=site_settings,
        distribution=distribution_settings,
        collections=collection_policy,
        deployment=deployment_settings,
        paths=path_settings,
        mail=mail_settings,
        source_path=source_path,
    )
