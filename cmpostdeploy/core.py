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

"""Core orchestration for CMPD.

This module provides the batch driver that turns a batch file into content
distributions, deployments and a summary email.

Two-Pass Architecture:

- **Superseding pass**: Supersede records with Status=OK name the
    application that replaced them ("Superseded by X"). Each replacing
    application is processed once, inheriting the collections of the
    application it supersedes.

- **New pass**: Create records with Status=OK are processed with the
    configured new-application collections, skipping any application the
    superseding pass already handled. A freshly created application that
    also supersedes something is therefore only deployed once.

Records with Status=Fail are never processed; they are listed in the
summary email.

Design Principles:

- Fatal errors (settings, batch file, session) raise before any
  application is touched
- Per-application and per-collection failures are recorded, not raised
- Nothing is retried; partial completion is reported, not rolled back
- Settings are immutable and passed explicitly

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from cmpostdeploy.admin import get_client
        from cmpostdeploy.config import load_settings
        from cmpostdeploy.core import run_batch

        settings = load_settings(Path("settings.yaml"))
        client = get_client(settings.site.client, settings)
        result = run_batch(Path("batch.json"), settings, client)

        print(f"Superseding: {len(result.superseding)}")
        print(f"New: {len(result.new)}")
        ```

"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from cmpostdeploy.admin.base import AdminClient
from cmpostdeploy.admin.whatif import WhatIfClient
from cmpostdeploy.auth import CredentialManager
from cmpostdeploy.batch import Action, ChangeRecord, Status, backup_batch, read_batch
from cmpostdeploy.config.settings import Settings
from cmpostdeploy.exceptions import NotificationError
from cmpostdeploy.logging import Logger, get_global_logger
from cmpostdeploy.notify import build_summary, send_summary
from cmpostdeploy.orchestrator import DeploymentOrchestrator
from cmpostdeploy.results import ApplicationResult, Role, RunResult

TOTAL_STEPS = 5


def partition_records(
    records: Iterable[ChangeRecord],
) -> tuple[list[ChangeRecord], list[ChangeRecord], list[ChangeRecord]]:
    """Split records into superseded triggers, new triggers and failures.

    Returns:
        A tuple (superseded, created, failed), where superseded holds
            Supersede/OK records, created holds Create/OK records and failed
            holds every Status=Fail record. Other OK records are dropped.
    """
    superseded: list[ChangeRecord] = []
    created: list[ChangeRecord] = []
    failed: list[ChangeRecord] = []
    for record in records:
        if record.status is Status.FAIL:
            failed.append(record)
        elif record.action is Action.SUPERSEDE:
            superseded.append(record)
        elif record.action is Action.CREATE:
            created.append(record)
    return superseded, created, failed


def _unique_names(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        key = name.casefold()
        if key not in seen:
            seen.add(key)
            result.append(name)
    return result


def superseding_application_names(
    superseded: Iterable[ChangeRecord], logger: Logger | None = None
) -> list[str]:
    """Names of the applications that replaced the superseded records.

    Records without a superseding application name are logged and skipped.
    Names are de-duplicated case-insensitively, keeping batch order.
    """
    logger = logger or get_global_logger()
    names = []
    for record in superseded:
        if record.superseded_by:
            names.append(record.superseded_by)
        else:
            logger.warning(
                "BATCH",
                f"{record.application_name} is marked superseded but names no "
                f"superseding application",
            )
    return _unique_names(names)


def new_application_names(
    created: Iterable[ChangeRecord], already_processed: Iterable[str]
) -> list[str]:
    """Names of created applications not already handled as superseding."""
    excluded = {name.casefold() for name in already_processed}
    return [
        name
        for name in _unique_names(r.application_name for r in created)
        if name.casefold() not in excluded
    ]


def run_batch(
    batch_path: Path,
    settings: Settings,
    client: AdminClient,
    *,
    logger: Logger | None = None,
    send_mail: bool = True,
    what_if: bool = False,
    credentials: CredentialManager | None = None,
    clock: Callable[[], datetime] | None = None,
) -> RunResult:
    """Process a batch file end to end.

    This is the main entry point for the 'cmpd run' command.

    1. Read the batch file (fatal on failure)
    2. Back up the batch file (advisory; failures are logged)
    3. Connect to the site (fatal on failure)
    4. Process superseding applications, then new applications
    5. Send the summary email (failures are logged)

    Args:
        batch_path: JSON batch file written by the packaging run.
        settings: Effective settings.
        client: Administration client, not yet connected.
        logger: Logger. Defaults to the global logger.
        send_mail: If False, never send the summary email.
        what_if: If True, wrap the client so writes are only logged.
        credentials: Source of the SMTP password (default: environment).
        clock: Returns the current time (tests pin it).

    Returns:
        RunResult with one ApplicationResult per processed application.

    Raises:
        BatchError: If the batch file cannot be read or parsed.
        AdminAPIError: If the session with the site cannot be established.
    """
    logger = logger or get_global_logger()
    clock = clock or datetime.now

    # 1. Read
    logger.step(1, TOTAL_STEPS, "Reading batch file...")
    records = read_batch(batch_path)
    logger.verbose("BATCH", f"Read {len(records)} record(s) from {batch_path}")

    # 2. Backup (advisory)
    backup_path = None
    if settings.paths.backup_folder is not None:
        try:
            backup_path = backup_batch(batch_path, settings.paths.backup_folder, clock())
            logger.verbose("BATCH", f"Backed up batch file to {backup_path}")
        except OSError as err:
            logger.warning("BATCH", f"Could not back up batch file: {err}")

    # 3. Session
    logger.step(2, TOTAL_STEPS, f"Connecting to site {settings.site.code}...")
    what_if_client: WhatIfClient | None = None
    if what_if:
        client = what_if_client = WhatIfClient(client, logger=logger)
    client.connect()

    superseded, created, failed = partition_records(records)
    superseding_names = superseding_application_names(superseded, logger=logger)
    new_names = new_application_names(created, superseding_names)
    logger.verbose(
        "BATCH",
        f"{len(superseding_names)} superseding, {len(new_names)} new, "
        f"{len(failed)} failed record(s)",
    )

    orchestrator = DeploymentOrchestrator(client, settings, logger=logger, clock=clock)

    # 4. Superseding pass, then new pass
    logger.step(3, TOTAL_STEPS, "Processing superseding applications...")
    superseding_results: list[ApplicationResult] = [
        orchestrator.process_application(name, Role.SUPERSEDING)
        for name in superseding_names
    ]

    logger.step(4, TOTAL_STEPS, "Processing new applications...")
    new_results: list[ApplicationResult] = [
        orchestrator.process_application(name, Role.NEW) for name in new_names
    ]

    result = RunResult(
        batch_path=batch_path,
        superseding=tuple(superseding_results),
        new=tuple(new_results),
        superseded_records=tuple(superseded),
        failed_records=tuple(failed),
        backup_path=backup_path,
        what_if=what_if,
        skipped_writes=tuple(what_if_client.skipped_writes) if what_if_client else (),
    )

    # 5. Notify
    logger.step(5, TOTAL_STEPS, "Sending summary...")
    mail = settings.mail
    if not (send_mail and mail.enabled):
        logger.verbose("MAIL", "Summary email disabled")
        return result
    if result.is_empty and not mail.send_when_empty:
        logger.verbose("MAIL", "Nothing to report, no email sent")
        return result

    subject, body = build_summary(result, mail.subject)
    password = None
    if mail.username:
        password = (credentials or CredentialManager()).get_smtp_password()
    try:
        send_summary(mail, subject, body, password=password)
    except NotificationError as err:
        logger.warning("MAIL", str(err))
        return result

    logger.verbose("MAIL", f"Summary sent to {', '.join(mail.recipients)}")
    return replace(result, notified=True)
