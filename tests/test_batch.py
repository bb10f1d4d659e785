"""
Tests for cmpostdeploy.batch module.

Tests batch file handling including:
- Record parsing and field precedence
- Superseded-by extraction from comments
- Accepted file shapes
- Error handling
- Timestamped backups
"""

from __future__ import annotations

from datetime import datetime

import pytest

from cmpostdeploy.batch import (
    Action,
    ChangeRecord,
    Status,
    backup_batch,
    parse_superseded_by,
    read_batch,
)
from cmpostdeploy.exceptions import BatchError

pytestmark = pytest.mark.unit


class TestParseSupersededBy:
    """Tests for extracting the replacing application from a comment."""

    @pytest.mark.parametrize(
        "comment,expected",
        [
            ("Superseded by 7-Zip 24.08", "7-Zip 24.08"),
            ("superseded by: Notepad++ 8.7", "Notepad++ 8.7"),
            ("  SUPERSEDED BY 'Git 2.47.0'", "Git 2.47.0"),
            ("Not superseded by anything", None),
            ("Auto: superseded by Git 2.47.0", None),
            ("Imported from share", None),
            ("Superseded by   ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, comment, expected):
        assert parse_superseded_by(comment) == expected


class TestChangeRecord:
    """Tests for ChangeRecord.from_dict."""

    def test_supersede_record_from_comment(self):
        record = ChangeRecord.from_dict(
            {
                "ApplicationName": "7-Zip 24.07",
                "Action": "Supersede",
                "Status": "OK",
                "Comment": "Superseded by 7-Zip 24.08",
            }
        )

        assert record.application_name == "7-Zip 24.07"
        assert record.action is Action.SUPERSEDE
        assert record.status is Status.OK
        assert record.superseded_by == "7-Zip 24.08"
        assert record.actionable

    def test_superseded_by_field_wins_over_comment(self):
        record = ChangeRecord.from_dict(
            {
                "ApplicationName": "Git 2.46",
                "Action": "Supersede",
                "Status": "OK",
                "SupersededBy": "Git 2.47.1",
                "Comment": "Superseded by Git 2.47.0",
            }
        )

        assert record.superseded_by == "Git 2.47.1"

    def test_field_names_case_insensitive(self):
        record = ChangeRecord.from_dict(
            {"applicationname": " Foo ", "action": "create", "status": "ok"}
        )

        assert record.application_name == "Foo"
        assert record.action is Action.CREATE
        assert record.status is Status.OK

    def test_unknown_action_is_other(self):
        record = ChangeRecord.from_dict(
            {"ApplicationName": "Foo", "Action": "Retire", "Status": "OK"}
        )

        assert record.action is Action.OTHER

    @pytest.mark.parametrize("status", ["Fail", "Failed", "", None, 1])
    def test_non_ok_status_is_fail(self, status):
        record = ChangeRecord.from_dict(
            {"ApplicationName": "Foo", "Action": "Create", "Status": status}
        )

        assert record.status is Status.FAIL
        assert not record.actionable

    def test_missing_application_name_raises(self):
        with pytest.raises(BatchError, match="Record 3 has no ApplicationName"):
            ChangeRecord.from_dict({"Action": "Create", "Status": "OK"}, index=3)

    def test_non_mapping_raises(self):
        with pytest.raises(BatchError, match="must be an object"):
            ChangeRecord.from_dict(["Foo"], index=0)


class TestReadBatch:
    """Tests for read_batch()."""

    def test_reads_list(self, create_batch_file):
        path = create_batch_file(
            [
                {"ApplicationName": "Foo", "Action": "Create", "Status": "OK"},
                {"ApplicationName": "Bar", "Action": "Create", "Status": "Fail"},
            ]
        )

        records = read_batch(path)

        assert [r.application_name for r in records] == ["Foo", "Bar"]
        assert [r.status for r in records] == [Status.OK, Status.FAIL]

    def test_reads_records_wrapper(self, create_batch_file):
        path = create_batch_file(
            {"Records": [{"ApplicationName": "Foo", "Action": "Create", "Status": "OK"}]}
        )

        assert len(read_batch(path)) == 1

    def test_reads_single_record(self, create_batch_file):
        path = create_batch_file(
            {"ApplicationName": "Foo", "Action": "Create", "Status": "OK"}
        )

        assert [r.application_name for r in read_batch(path)] == ["Foo"]

    def test_empty_list_is_valid(self, create_batch_file):
        assert read_batch(create_batch_file([])) == []

    def test_tolerates_byte_order_mark(self, tmp_test_dir):
        path = tmp_test_dir / "bom.json"
        path.write_bytes(
            b'\xef\xbb\xbf[{"ApplicationName": "Foo", "Action": "Create", "Status": "OK"}]'
        )

        assert read_batch(path)[0].application_name == "Foo"

    def test_missing_file_raises(self, tmp_test_dir):
        with pytest.raises(BatchError, match="not found"):
            read_batch(tmp_test_dir / "missing.json")

    def test_empty_file_raises(self, tmp_test_dir):
        path = tmp_test_dir / "empty.json"
        path.write_text("  \n", encoding="utf-8")

        with pytest.raises(BatchError, match="empty"):
            read_batch(path)

    def test_invalid_json_raises(self, tmp_test_dir):
        path = tmp_test_dir / "bad.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(BatchError, match="Invalid JSON"):
            read_batch(path)

    def test_wrong_shape_raises(self, create_batch_file):
        path = create_batch_file({"Something": "else"})

        with pytest.raises(BatchError, match="list of records"):
            read_batch(path)


class TestBackupBatch:
    """Tests for backup_batch()."""

    def test_backup_name_has_timestamp(self, tmp_test_dir, create_batch_file):
        path = create_batch_file([], filename="20250102_batch.json")
        backup_folder = tmp_test_dir / "backup" / "nested"

        backup = backup_batch(path, backup_folder, datetime(2025, 1, 2, 3, 4, 5))

        assert backup == backup_folder / "20250102_batch_20250102-030405.json"
        assert backup.read_text(encoding="utf-8") == path.read_text(encoding="utf-8")
        assert path.exists()

    def test_missing_source_raises_oserror(self, tmp_test_dir):
        with pytest.raises(OSError):
            backup_batch(tmp_test_dir / "missing.json", tmp_test_dir / "backup")
