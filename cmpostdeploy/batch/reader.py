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

"""Batch file reading and backup.

The batch file is JSON. Either a bare list of records or an object with a
"Records" (or "Applications") list is accepted, since packaging runs have
written both shapes:

    ```json
    [
      {"ApplicationName": "7-Zip 24.07", "Action": "Supersede",
       "Status": "OK", "Comment": "Superseded by 7-Zip 24.08"},
      {"ApplicationName": "7-Zip 24.08", "Action": "Create", "Status": "OK"}
    ]
    ```

Reading failures are fatal (BatchError). Backing the file up is advisory:
the caller logs the failure and carries on.
"""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
import shutil
from typing import Any

from cmpostdeploy.exceptions import BatchError

from .records import ChangeRecord

_LIST_KEYS = ("records", "applications")


def _extract_entries(data: Any, batch_path: Path) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key, value in data.items():
            if str(key).lower() in _LIST_KEYS and isinstance(value, list):
                return value
        # A single record written without a list wrapper
        if any(str(k).lower() == "applicationname" for k in data):
            return [data]
    raise BatchError(f"Batch file does not contain a list of records: {batch_path}")


def read_batch(batch_path: Path) -> list[ChangeRecord]:
    """Read and parse a batch file.

    Args:
        batch_path: Path to the JSON batch file. A UTF-8 byte order mark is
            tolerated.

    Returns:
        The records in file order.

    Raises:
        BatchError: If the file is missing, unreadable, not JSON, or any
            record is malformed.
    """
    try:
        text = batch_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as err:
        raise BatchError(f"Batch file not found: {batch_path}") from err
    except (OSError, UnicodeDecodeError) as err:
        raise BatchError(f"Could not read batch file {batch_path}: {err}") from err

    if not text.strip():
        raise BatchError(f"Batch file is empty: {batch_path}")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise BatchError(f"Invalid JSON in batch file {batch_path}: {err}") from err

    entries = _extract_entries(data, batch_path)
    return [ChangeRecord.from_dict(entry, index) for index, entry in enumerate(entries)]


def backup_batch(
    batch_path: Path, backup_folder: Path, now: datetime | None = None
) -> Path:
    """Copy the batch file into the backup folder with a timestamp suffix.

    Args:
        batch_path: Batch file to copy.
        backup_folder: Destination folder. Created if it doesn't exist.
        now: Timestamp to use in the file name (default: current time).

    Returns:
        Path of the backup copy, e.g. backup/batch_20250102-030405.json.

    Raises:
        OSError: If the copy fails.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    backup_folder.mkdir(parents=True, exist_ok=True)
    destination = backup_folder / f"{batch_path.stem}_{stamp}{batch_path.suffix}"
    shutil.copy2(batch_path, destination)
    return destination
