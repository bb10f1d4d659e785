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

"""Public API return types for CMPD.

This module defines dataclasses for return values from public API functions:
processing one application, running a whole batch, and validating settings.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from cmpostdeploy.core import run_batch
        from cmpostdeploy.results import RunResult

        result: RunResult = run_batch(Path("batch.json"), settings, client)
        for app in result.new_failed:
            print(app.name, app.error)
        ```

Note:
    Only public API return types belong in this module. Domain types
    (like ChangeRecord or SupersededApplication) remain co-located with
    their related logic.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
from pathlib import Path

from cmpostdeploy.batch.records import ChangeRecord


class Role(str, enum.Enum):
    """Why an application is being processed."""

    NEW = "new"
    SUPERSEDING = "superseding"


@dataclass(frozen=True)
class CallResult:
    """Outcome of one write against the administration service.

    Attributes:
        ok: True if the call succeeded.
        error: Error message when ok is False.
    """

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> CallResult:
        return cls(True)

    @classmethod
    def failure(cls, error: str) -> CallResult:
        return cls(False, error)


@dataclass(frozen=True)
class ApplicationResult:
    """Result of processing one application.

    Attributes:
        name: Application display name.
        role: Whether it was processed as new or superseding.
        distributed: True if content distribution succeeded.
        superseded: Name of the latest superseded application, if any.
        deployed_collections: Collections deployed to successfully.
        failed_collections: (collection, error) pairs for failed deployments.
        error: Content distribution error, if distribution failed.
    """

    name: str
    role: Role
    distributed: bool
    superseded: str | None = None
    deployed_collections: tuple[str, ...] = ()
    failed_collections: tuple[tuple[str, str], ...] = ()
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.distributed and not self.failed_collections


@dataclass(frozen=True)
class RunResult:
    """Outcome of one batch run.

    Attributes:
        batch_path: Batch file that was processed.
        superseding: Results for applications processed as superseding.
        new: Results for applications processed as new.
        superseded_records: Supersede records with Status=OK.
        failed_records: Records with Status=Fail.
        backup_path: Where the batch file was backed up, if it was.
        notified: True if the summary email was sent.
        what_if: True if writes were only logged.
        skipped_writes: Writes that what-if mode logged instead of performing.
    """

    batch_path: Path
    superseding: tuple[ApplicationResult, ...] = ()
    new: tuple[ApplicationResult, ...] = ()
    superseded_records: tuple[ChangeRecord, ...] = ()
    failed_records: tuple[ChangeRecord, ...] = ()
    backup_path: Path | None = None
    notified: bool = False
    what_if: bool = False
    skipped_writes: tuple[str, ...] = ()

    @property
    def superseded_success(self) -> list[ApplicationResult]:
        return [r for r in self.superseding if r.succeeded]

    @property
    def superseded_failed(self) -> list[ApplicationResult]:
        return [r for r in self.superseding if not r.succeeded]

    @property
    def new_success(self) -> list[ApplicationResult]:
        return [r for r in self.new if r.succeeded]

    @property
    def new_failed(self) -> list[ApplicationResult]:
        return [r for r in self.new if not r.succeeded]

    @property
    def is_empty(self) -> bool:
        return not (self.superseding or self.new or self.failed_records)


@dataclass(frozen=True)
class ValidationResult:
    """Result from validating a settings file.

    Attributes:
        status: Validation status ("valid" or "invalid").
        errors: List of error messages (empty if valid).
        warnings: List of warning messages.
        settings_path: String path to the validated settings file.
    """

    status: str
    errors: list[str]
    warnings: list[str]
    settings_path: str
