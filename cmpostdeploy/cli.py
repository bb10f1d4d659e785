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

"""Command-line interface for CMPD.

This module provides the main CLI entry point for the cmpd tool.

Commands:

    run: Distribute and deploy the applications listed in a batch file
    validate: Validate a settings file (no site access)
    resolve: Show the latest application superseded by an application

Example:
    Validate settings:
        ```bash
        $ cmpd validate settings.yaml
        ```

    Process a batch file:
        ```bash
        $ cmpd run batch.json --config settings.yaml
        ```

    Rehearse a batch without changing the site:
        ```bash
        $ cmpd run batch.json --config settings.yaml --what-if -v
        ```

    Look up supersedence:
        ```bash
        $ cmpd resolve "7-Zip 24.08" --config settings.yaml
        ```

Exit Codes:

- 0: Success (individual application failures are reported, not fatal)
- 1: Fatal error (settings, batch file, or site connection)

Note:
    The CLI uses argparse for command parsing (stdlib, zero dependencies).
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode and traces every provider request.

"""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys
import traceback

from cmpostdeploy import __version__
from cmpostdeploy.admin import get_client
from cmpostdeploy.config import load_settings
from cmpostdeploy.core import run_batch
from cmpostdeploy.exceptions import CMPDError
from cmpostdeploy.logging import get_logger, set_global_logger
from cmpostdeploy.supersedence import resolve_latest_superseded_application
from cmpostdeploy.validation import validate_settings


def _package_version() -> str:
    try:
        return version("cmpostdeploy")
    except PackageNotFoundError:
        return __version__


def _config_paths(args: argparse.Namespace) -> tuple[Path, list[Path]]:
    paths = [Path(p) for p in args.config]
    return paths[0], paths[1:]


def _report_error(err: Exception, args: argparse.Namespace) -> int:
    print(f"Error: {err}")
    if getattr(args, "verbose", False) or getattr(args, "debug", False):
        traceback.print_exc()
    return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'cmpd validate' command.

    Validates settings without contacting the site.

    Args:
        args: Parsed command-line arguments containing the settings path,
            overlays and verbose flag.

    Returns:
        Exit code (0 for valid settings, 1 for invalid).
    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    settings_path = Path(args.settings).resolve()
    overlays = [Path(p) for p in args.overlay]

    print(f"Validating settings: {settings_path}")
    print()

    result = validate_settings(settings_path, overlays)

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"Settings:    {result.settings_path}")
    print(f"Status:      {result.status.upper()}")
    print()

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  [WARNING] {warning}")
        print()

    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  [X] {error}")
        print()

    print("=" * 70)

    if result.status == "valid":
        print()
        print("[SUCCESS] Settings are valid!")
        return 0
    print()
    print(f"[FAILED] Settings validation failed with {len(result.errors)} error(s).")
    return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Handler for 'cmpd run' command.

    Reads the batch file, distributes content and deploys every
    actionable application, then sends the summary email.

    Args:
        args: Parsed command-line arguments containing the batch path,
            settings paths and flags.

    Returns:
        Exit code (0 when the run completed, 1 on fatal errors).
    """
    batch_path = Path(args.batch).resolve()
    settings_path, overlays = _config_paths(args)

    # Console logger until settings tell us where the log file lives
    set_global_logger(get_logger(verbose=args.verbose, debug=args.debug))

    try:
        settings = load_settings(settings_path, overlays)
        logger = get_logger(
            verbose=args.verbose, debug=args.debug, log_file=settings.paths.log_file
        )
        set_global_logger(logger)

        print(f"Processing batch: {batch_path}")
        print(f"Site: {settings.site.code} ({settings.site.provider})")
        if args.what_if:
            print("Mode: WHAT-IF (no changes are made)")
        print()

        client = get_client(settings.site.client, settings, logger=logger)
        result = run_batch(
            batch_path,
            settings,
            client,
            logger=logger,
            send_mail=not args.no_mail,
            what_if=args.what_if,
        )
    except CMPDError as err:
        return _report_error(err, args)

    print("=" * 70)
    print("RUN RESULTS")
    print("=" * 70)
    print(
        f"Superseding:     {len(result.superseding)} "
        f"({len(result.superseded_failed)} with errors)"
    )
    for app in result.superseding:
        print(f"  {'[OK]' if app.succeeded else '[X] '} {app.name}")
    print(f"New:             {len(result.new)} ({len(result.new_failed)} with errors)")
    for app in result.new:
        print(f"  {'[OK]' if app.succeeded else '[X] '} {app.name}")
    print(f"Failed records:  {len(result.failed_records)}")
    if result.what_if:
        print(f"Skipped writes:  {len(result.skipped_writes)}")
    if result.backup_path:
        print(f"Backup:          {result.backup_path}")
    print(f"Summary email:   {'sent' if result.notified else 'not sent'}")
    print("=" * 70)
    print()
    if result.superseded_failed or result.new_failed:
        print("[DONE] Run completed with errors; see the log for details.")
    else:
        print("[SUCCESS] Run completed successfully!")
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handler for 'cmpd resolve' command.

    Shows the most recent application superseded by the given application
    and the collections it is deployed to. Read-only.

    Args:
        args: Parsed command-line arguments containing the application name
            and settings paths.

    Returns:
        Exit code (0 for success, 1 on fatal errors).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    settings_path, overlays = _config_paths(args)
    try:
        settings = load_settings(settings_path, overlays)
        client = get_client(settings.site.client, settings, logger=logger)
        client.connect()
        latest = resolve_latest_superseded_application(
            client, args.application, logger=logger
        )
        collections = []
        if latest is not None and latest.is_deployed:
            collections = client.get_deployment_collections(latest.name)
    except CMPDError as err:
        return _report_error(err, args)

    print("=" * 70)
    print("SUPERSEDENCE")
    print("=" * 70)
    print(f"Application:     {args.application}")
    if latest is None:
        print("Supersedes:      (nothing found)")
    else:
        print(f"Supersedes:      {latest.name}")
        print(f"Created:         {latest.date_created:%Y-%m-%d %H:%M}")
        print(f"Deployed:        {'yes' if latest.is_deployed else 'no'}")
        for collection in collections:
            print(f"  - {collection}")
    print("=" * 70)
    return 0


def _add_verbosity(parser: argparse.ArgumentParser, debug: bool = True) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    if debug:
        parser.add_argument(
            "-d",
            "--debug",
            action="store_true",
            help="Show detailed debugging output (implies --verbose)",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmpd",
        description="CMPD - distribute and deploy ConfigMgr applications after packaging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cmpd {_package_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'run' command
    parser_run = subparsers.add_parser(
        "run",
        help="Distribute and deploy the applications in a batch file",
        description="Distribute content and create deployments for every OK record in a batch file.",
    )
    parser_run.add_argument("batch", help="Path to the JSON batch file")
    parser_run.add_argument(
        "-c",
        "--config",
        action="append",
        required=True,
        help="Settings YAML file; repeat to apply overlays (last wins)",
    )
    parser_run.add_argument(
        "--what-if",
        action="store_true",
        help="Perform lookups only; log distributions and deployments instead of making them",
    )
    parser_run.add_argument(
        "--no-mail",
        action="store_true",
        help="Do not send the summary email",
    )
    _add_verbosity(parser_run)
    parser_run.set_defaults(func=cmd_run)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Validate settings (no site access)",
        description="Check a settings file for errors without contacting the site.",
    )
    parser_validate.add_argument("settings", help="Path to the settings YAML file")
    parser_validate.add_argument(
        "--overlay",
        action="append",
        default=[],
        help="Overlay YAML file merged on top (repeatable)",
    )
    _add_verbosity(parser_validate, debug=False)
    parser_validate.set_defaults(func=cmd_validate)

    # 'resolve' command
    parser_resolve = subparsers.add_parser(
        "resolve",
        help="Show the latest application superseded by an application",
        description="Look up supersedence and inherited collections for an application.",
    )
    parser_resolve.add_argument("application", help="Application display name")
    parser_resolve.add_argument(
        "-c",
        "--config",
        action="append",
        required=True,
        help="Settings YAML file; repeat to apply overlays (last wins)",
    )
    _add_verbosity(parser_resolve)
    parser_resolve.set_defaults(func=cmd_resolve)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the cmpd CLI.

    This function is registered as the 'cmpd' console script in pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
