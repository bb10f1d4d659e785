"""Batch file ingestion for CMPD.

Public API:

- read_batch: Parse a JSON batch file into ChangeRecord objects
- backup_batch: Copy a batch file into the backup folder
- ChangeRecord, Action, Status: Record types
- parse_superseded_by: Extract "Superseded by <name>" from a comment
"""

from .reader import backup_batch, read_batch
from .records import Action, ChangeRecord, Status, parse_superseded_by

__all__ = [
    "read_batch",
    "backup_batch",
    "ChangeRecord",
    "Action",
    "Status",
    "parse_superseded_by",
]
