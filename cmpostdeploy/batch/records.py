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

"""Batch change records.

A batch file lists the applications a packaging run created or superseded.
Each entry becomes a ChangeRecord. Records are immutable and only records
with Status=OK are ever acted on.

Record Fields:

- **ApplicationName** (str, required): Display name of the application.
- **Action** (str, required): "Create", "Supersede" or anything else
  (mapped to Action.OTHER and ignored).
- **Status** (str, required): "OK" or "Fail". Any other value is treated as
  a failure.
- **SupersededBy** (str, optional): Name of the application that replaces
  this one. Takes precedence over Comment.
- **Comment** (str, optional): Free text. For Supersede records produced by
  older packaging runs it reads "Superseded by <name>".
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import re
from typing import Any

from cmpostdeploy.exceptions import BatchError

_SUPERSEDED_BY_PATTERN = re.compile(
    r"^\s*superseded\s+by\s*:?\s*(?P<name>.+)", re.IGNORECASE
)


class Action(str, enum.Enum):
    CREATE = "Create"
    SUPERSEDE = "Supersede"
    OTHER = "Other"


class Status(str, enum.Enum):
    OK = "OK"
    FAIL = "Fail"


def parse_superseded_by(comment: str | None) -> str | None:
    """Extract the superseding application name from a free-text comment.

    Args:
        comment: Comment such as "Superseded by 7-Zip 24.08".

    Returns:
        The application name, or None if the comment does not carry one.

    Example:
        ```python
        parse_superseded_by("Superseded by 7-Zip 24.08")  # "7-Zip 24.08"
        parse_superseded_by("Imported from share")         # None
        ```
    """
    if not comment:
        return None
    match = _SUPERSEDED_BY_PATTERN.match(comment)
    if not match:
        return None
    name = match.group("name").strip().strip("'\"").strip()
    return name or None


def _parse_action(value: Any) -> Action:
    if isinstance(value, str):
        for member in Action:
            if member.value.lower() == value.strip().lower():
                return member
    return Action.OTHER


def _parse_status(value: Any) -> Status:
    if isinstance(value, str) and value.strip().upper() == "OK":
        return Status.OK
    return Status.FAIL


@dataclass(frozen=True)
class ChangeRecord:
    """One application change from a batch file.

    Attributes:
        application_name: Display name of the application.
        action: What the packaging run did to the application.
        status: Whether the packaging run succeeded.
        superseded_by: For Supersede records, the replacing application.
        comment: The original free-text comment, if any.
    """

    application_name: str
    action: Action
    status: Status
    superseded_by: str | None = None
    comment: str | None = None

    @property
    def actionable(self) -> bool:
        return self.status is Status.OK

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> ChangeRecord:
        """Build a record from one batch entry.

        Field names are matched case-insensitively.

        Raises:
            BatchError: If the entry is not a mapping or has no
                ApplicationName.
        """
        if not isinstance(data, dict):
            raise BatchError(f"Record {index} must be an object, got {type(data).__name__}")
        fields = {str(k).lower(): v for k, v in data.items()}

        name = fields.get("applicationname")
        if not isinstance(name, str) or not name.strip():
            raise BatchError(f"Record {index} has no ApplicationName")

        comment = fields.get("comment")
        comment = comment if isinstance(comment, str) else None

        superseded_by = fields.get("supersededby")
        if not isinstance(superseded_by, str) or not superseded_by.strip():
            superseded_by = parse_superseded_by(comment)
        else:
            superseded_by = superseded_by.strip()

        return cls(
            application_name=name.strip(),
            action=_parse_action(fields.get("action")),
            status=_parse_status(fields.get("status")),
            superseded_by=superseded_by,
            comment=comment,
        )
