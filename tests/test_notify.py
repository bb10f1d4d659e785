"""
Tests for cmpostdeploy.notify module.

Tests summary building and SMTP delivery.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import smtplib
from unittest.mock import patch

import pytest

from cmpostdeploy.batch import Action, ChangeRecord, Status
from cmpostdeploy.exceptions import NotificationError
from cmpostdeploy.notify import build_summary, send_summary
from cmpostdeploy.results import ApplicationResult, Role, RunResult

pytestmark = pytest.mark.unit


@pytest.fixture
def run_result() -> RunResult:
    return RunResult(
        batch_path=Path("/data/batch.json"),
        superseding=(
            ApplicationResult(
                name="Foo 2.0",
                role=Role.SUPERSEDING,
                distributed=True,
                superseded="Foo 1.5",
                deployed_collections=("All Workstations", "Software - Pilot"),
            ),
        ),
        new=(
            ApplicationResult(
                name="Bar",
                role=Role.NEW,
                distributed=True,
                deployed_collections=("CollectionB",),
                failed_collections=(("CollectionA", "Collection not found: CollectionA"),),
            ),
            ApplicationResult(
                name="Baz",
                role=Role.NEW,
                distributed=False,
                error="Application not found: Baz",
            ),
        ),
        failed_records=(
            ChangeRecord("Qux", Action.CREATE, Status.FAIL, comment="MSI download failed"),
        ),
    )


class TestBuildSummary:
    """Tests for build_summary()."""

    def test_subject_counts(self, run_result):
        subject, _ = build_summary(run_result, "Post-deployment")

        assert subject == "Post-deployment: 1 superseding, 2 new, 1 failed, 2 with errors"

    def test_what_if_subject(self, run_result):
        subject, _ = build_summary(replace(run_result, what_if=True), "Post-deployment")

        assert subject.startswith("[WHAT-IF] Post-deployment:")

    def test_body_sections(self, run_result):
        _, body = build_summary(run_result, "Post-deployment")

        assert "Batch file: batch.json" in body
        assert "Superseded applications (1):" in body
        assert "  - Foo 1.5 -> Foo 2.0: deployed to All Workstations, Software - Pilot" in body
        assert "New applications (2):" in body
        assert "  - Bar: deployed to CollectionB" in body
        assert "  - Baz: content distribution failed" in body
        assert "  - Qux [Create] (MSI download failed)" in body
        assert "  - Bar -> CollectionA: Collection not found: CollectionA" in body
        assert "  - Baz: Application not found: Baz" in body

    def test_superseded_name_from_record(self):
        result = RunResult(
            batch_path=Path("batch.json"),
            superseding=(ApplicationResult("Foo 2.0", Role.SUPERSEDING, True),),
            superseded_records=(
                ChangeRecord("Foo 1.0", Action.SUPERSEDE, Status.OK, superseded_by="Foo 2.0"),
            ),
        )

        _, body = build_summary(result, "Summary")

        assert "  - Foo 1.0 -> Foo 2.0: no deployments" in body

    def test_empty_sections(self):
        subject, body = build_summary(RunResult(batch_path=Path("batch.json")), "Summary")

        assert subject == "Summary: 0 superseding, 0 new, 0 failed"
        assert body.count("  (none)") == 3
        assert "Processing errors" not in body


class TestSendSummary:
    """Tests for send_summary()."""

    def test_sends_message(self, make_settings):
        mail = make_settings(
            {"mail": {"use_tls": True, "username": "svc-cmpd", "port": 587}}
        ).mail

        with patch("cmpostdeploy.notify.mail.smtplib.SMTP") as mock_smtp:
            send_summary(mail, "Subject", "Body\n", password="s3cret")

        mock_smtp.assert_called_once_with("smtp.contoso.com", 587, timeout=30)
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("svc-cmpd", "s3cret")
        message = smtp.send_message.call_args.args[0]
        assert message["Subject"] == "Subject"
        assert message["From"] == "cmpd@contoso.com"
        assert message["To"] == "packaging@contoso.com"

    def test_anonymous_relay(self, settings):
        with patch("cmpostdeploy.notify.mail.smtplib.SMTP") as mock_smtp:
            send_summary(settings.mail, "Subject", "Body\n")

        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    def test_smtp_failure_raises(self, settings):
        with patch(
            "cmpostdeploy.notify.mail.smtplib.SMTP",
            side_effect=smtplib.SMTPConnectError(421, b"busy"),
        ):
            with pytest.raises(NotificationError, match="smtp.contoso.com:25"):
                send_summary(settings.mail, "Subject", "Body\n")

    def test_connection_refused_raises(self, settings):
        with patch(
            "cmpostdeploy.notify.mail.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            with pytest.raises(NotificationError):
                send_summary(settings.mail, "Subject", "Body\n")
