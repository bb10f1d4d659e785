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

"""Summary email for a batch run.

The summary has one section per kind of change:

- Superseded applications (old -> new, with collections deployed to)
- New applications (with collections deployed to)
- Failed records from the batch file (Status=Fail)
- Processing errors (distribution and per-collection deployment failures)

Example:
    ```python
    from cmpostdeploy.notify import build_summary, send_summary

    subject, body = build_summary(result, settings.mail.subject)
    send_summary(settings.mail, subject, body)
    ```
"""

from __future__ import annotations

from email.message import EmailMessage
import smtplib

from cmpostdeploy.config.settings import MailSettings
from cmpostdeploy.exceptions import NotificationError
from cmpostdeploy.results import ApplicationResult, RunResult


def _collections_line(app: ApplicationResult) -> str:
    if not app.distributed:
        return "content distribution failed"
    if not app.deployed_collections:
        return "no deployments"
    return "deployed to " + ", ".join(app.deployed_collections)


def build_summary(result: RunResult, subject_base: str) -> tuple[str, str]:
    """Build the subject and plain-text body for a run.

    Args:
        result: Outcome of the batch run.
        subject_base: Configured subject (mail.subject).

    Returns:
        A tuple (subject, body).
    """
    superseding_count = len(result.superseding)
    new_count = len(result.new)
    failed_count = len(result.failed_records)
    problems = len(result.superseded_failed) + len(result.new_failed)

    subject = (
        f"{subject_base}: {superseding_count} superseding, {new_count} new, "
        f"{failed_count} failed"
    )
    if problems:
        subject += f", {problems} with errors"
    if result.what_if:
        subject = "[WHAT-IF] " + subject

    lines = [f"Batch file: {result.batch_path.name}", ""]

    lines.append(f"Superseded applications ({superseding_count}):")
    supersedes = {
        record.superseded_by: record.application_name
        for record in result.superseded_records
        if record.superseded_by
    }
    for app in result.superseding:
        old = app.superseded or supersedes.get(app.name, "unknown")
        lines.append(f"  - {old} -> {app.name}: {_collections_line(app)}")
    if not result.superseding:
        lines.append("  (none)")
    lines.append("")

    lines.append(f"New applications ({new_count}):")
    for app in result.new:
        lines.append(f"  - {app.name}: {_collections_line(app)}")
    if not result.new:
        lines.append("  (none)")
    lines.append("")

    lines.append(f"Failed packaging records ({failed_count}):")
    for record in result.failed_records:
        detail = f" ({record.comment})" if record.comment else ""
        lines.append(f"  - {record.application_name} [{record.action.value}]{detail}")
    if not result.failed_records:
        lines.append("  (none)")

    errors = result.superseded_failed + result.new_failed
    if errors:
        lines.append("")
        lines.append("Processing errors:")
        for app in errors:
            if app.error:
                lines.append(f"  - {app.name}: {app.error}")
            for collection, error in app.failed_collections:
                lines.append(f"  - {app.name} -> {collection}: {error}")

    return subject, "\n".join(lines) + "\n"


def send_summary(
    mail: MailSettings,
    subject: str,
    body: str,
    password: str | None = None,
    timeout: float = 30,
) -> None:
    """Send the summary email over SMTP.

    Args:
        mail: Mail settings (server, port, sender, recipients, TLS, username).
        subject: Message subject.
        body: Plain-text body.
        password: SMTP password, used only when mail.username is set.
        timeout: Connection timeout in seconds.

    Raises:
        NotificationError: If the message cannot be delivered to the relay.
    """
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = mail.sender
    message["To"] = ", ".join(mail.recipients)
    message.set_content(body)

    try:
        with smtplib.SMTP(mail.smtp_server, mail.port, timeout=timeout) as smtp:
            if mail.use_tls:
                smtp.starttls()
            if mail.username:
                smtp.login(mail.username, password or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as err:
        raise NotificationError(
            f"Could not send summary via {mail.smtp_server}:{mail.port}: {err}"
        ) from err
