"""
Settings loading and merging for CMPD.

This module implements a layered configuration system that lets a shared
settings file be adjusted per environment without copying it:

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULT_SETTINGS below)
   - Client name, timeouts, deploy purpose, user experience, mail subject
   - Always applied first

2. **Settings file** (e.g. settings.yaml)
   - Site identity, distribution points, collection lists, mail settings
   - Always required

3. **Overlay files** (zero or more, e.g. settings.lab.yaml)
   - Environment-specific overrides, applied in the order given
   - Last wins

Merge Behavior
--------------
The loader performs deep merging with "last wins" semantics:
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

Path Resolution
---------------
Relative paths are resolved against the SETTINGS FILE location, so a
scheduled task can run from any working directory. Currently resolved:
  - paths.backup_folder
  - paths.log_file

Functions
---------
load_effective_config : function
    Load and merge the raw configuration dict.
load_settings : function
    Load, merge and convert to an immutable Settings tree (main public API).

Error Handling
--------------
- ConfigError: Missing file, YAML parse error, empty file, non-mapping
  top level, or invalid values
- All errors are chained with "from err" for better debugging

Examples
--------
Basic usage:

    >>> from pathlib import Path
    >>> from cmpostdeploy.config import load_settings
    >>> settings = load_settings(Path("settings.yaml"))
    >>> print(settings.site.code)
    PS1

With an overlay:

    >>> settings = load_settings(
    ...     Path("settings.yaml"), overlays=[Path("settings.lab.yaml")]
    ... )
"""

from __future__ import annotations

from collections.abc import Iterable
import copy
from pathlib import Path
from typing import Any

import yaml

from cmpostdeploy.config.settings import Settings, settings_from_dict
from cmpostdeploy.exceptions import ConfigError
from cmpostdeploy.logging import get_global_logger

SUPPORTED_API_VERSIONS = ("cmpd/v1",)

DEFAULT_SETTINGS: dict[str, Any] = {
    "apiVersion": "cmpd/v1",
    "site": {
        "client": "adminservice",
        "timeout": 60,
        "verify_tls": True,
        "auth": "none",
    },
    "distribution": {"points": []},
    "collections": {
        "new_apps": [],
        "superseding_apps": [],
        "inherit_superseded": True,
    },
    "deployment": {
        "purpose": "Available",
        "user_experience": "DisplayAll",
        "override_service_window": False,
        "reboot_outside_service_window": False,
    },
    "paths": {},
    "mail": {"enabled": False, "port": 25, "use_tls": False},
}

# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> Any:
    """
    Load a YAML file and return the parsed Python object.

    Raises:
      ConfigError - when the file is missing, unparseable or empty
    """
    if not p.exists():
        raise ConfigError(f"Settings file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Could not read settings file: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


# -------------------------------
# Path resolution
# -------------------------------


def _resolve_known_paths(cfg: dict[str, Any], settings_dir: Path) -> None:
    """
    Resolve relative path fields inside the merged config.

    Currently handled:
      - cfg["paths"]["backup_folder"]
      - cfg["paths"]["log_file"]

    Modifies cfg in place.
    """
    paths = cfg.get("paths")
    if not isinstance(paths, dict):
        return
    for key in ("backup_folder", "log_file"):
        raw_path = paths.get(key)
        if isinstance(raw_path, str) and raw_path:
            p = Path(raw_path)
            if not p.is_absolute():
                paths[key] = str((settings_dir / p).resolve())


# -------------------------------
# Public API
# -------------------------------


def load_effective_config(
    settings_path: Path,
    overlays: Iterable[Path] = (),
) -> dict[str, Any]:
    """
    Load and merge the effective configuration dict.

    Steps
      1) Start from DEFAULT_SETTINGS.
      2) Read the settings file; it must be a mapping.
      3) Check apiVersion.
      4) Merge each overlay file in order.
      5) Resolve known relative paths against the settings file directory.

    Returns
      The merged configuration dict.

    Raises
      ConfigError on missing files, YAML errors, or unsupported apiVersion.
    """
    logger = get_global_logger()

    settings_path = settings_path.resolve()
    logger.verbose("CONFIG", f"Loading settings: {settings_path}")

    merged = copy.deepcopy(DEFAULT_SETTINGS)
    layers = [settings_path] + [Path(o).resolve() for o in overlays]

    for layer in layers:
        data = _load_yaml_file(layer)
        if not isinstance(data, dict):
            raise ConfigError(f"Top-level YAML must be a mapping (dict): {layer}")
        if layer != settings_path:
            logger.verbose("CONFIG", f"Applying overlay: {layer}")
        logger.debug("CONFIG", f"--- Content from {layer.name} ---")
        for line in yaml.dump(data, default_flow_style=False, sort_keys=False).splitlines():
            logger.debug("CONFIG", f"  {line}")
        merged = _deep_merge_dicts(merged, data)

    api_version = merged.get("apiVersion")
    if api_version not in SUPPORTED_API_VERSIONS:
        raise ConfigError(
            f"Unsupported apiVersion {api_version!r} in {settings_path}. "
            f"Supported: {', '.join(SUPPORTED_API_VERSIONS)}"
        )

    logger.verbose("CONFIG", f"Deep merged {len(layers) + 1} layer(s)")

    _resolve_known_paths(merged, settings_path.parent)
    return merged


def load_settings(
    settings_path: Path,
    overlays: Iterable[Path] = (),
) -> Settings:
    """Load, merge and validate settings into an immutable Settings tree.

    Args:
        settings_path: Main settings YAML file.
        overlays: Additional YAML files merged on top, in order.

    Returns:
        Settings for the run.

    Raises:
        ConfigError: On any loading, merging, or validation failure.
    """
    cfg = load_effective_config(settings_path, overlays)
    return settings_from_dict(cfg, source_path=settings_path.resolve())
