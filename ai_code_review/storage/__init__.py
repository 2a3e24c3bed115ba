"""
Storage module for persisted user credentials.
"""

from ai_code_review.storage.credentials import CredentialStore

__all__ = ["CredentialStore"]
