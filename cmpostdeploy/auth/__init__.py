"""Credential handling for the SMS provider and mail relay."""

from .credential_manager import CredentialManager

__all__ = ["CredentialManager"]
