"""Run notifications for CMPD.

Public API:

- build_summary: Subject and body for a RunResult
- send_summary: Deliver a summary over SMTP
"""

from .mail import build_summary, send_summary

__all__ = ["build_summary", "send_summary"]
