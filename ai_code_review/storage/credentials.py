"""
File-backed credential store.

Persists the OpenRouter API key and model chosen by the user so the
HTTP layer can fill them in when a request omits them. The review
core never reads this store; callers resolve credentials and pass
them in explicitly.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ai_code_review.llm.schemas import Credentials

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Credentials cached in memory and persisted to a JSON file.

    A missing or unreadable file means "no credentials". A failed write
    is logged and the in-memory value still applies.
    """

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Location of the credentials JSON file
        """
        self.path = Path(path).expanduser()
        self._cached: Optional[Credentials] = None
        self._loaded = False

    def get(self) -> Optional[Credentials]:
        """Return stored credentials, loading them from disk once."""
        if not self._loaded:
            self._cached = self._load_from_file()
            self._loaded = True
        return self._cached

    def set(self, credentials: Credentials) -> None:
        """Store credentials in memory and on disk."""
        self._cached = credentials
        self._loaded = True
        self._save_to_file(credentials)

    def has(self) -> bool:
        """Check if credentials are configured."""
        return self.get() is not None

    def clear(self) -> None:
        """Forget credentials and blank the file."""
        self._cached = None
        self._loaded = True
        if self.path.exists():
            try:
                self.path.write_text("{}", encoding="utf-8")
            except OSError as e:
                logger.warning(f"Failed to clear credentials file {self.path}: {e}")

    def _load_from_file(self) -> Optional[Credentials]:
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self.path}: {e}")
            return None

        if not data:
            return None

        try:
            return Credentials.model_validate(data)
        except ValidationError:
            logger.warning(f"Ignoring malformed credentials file {self.path}")
            return None

    def _save_to_file(self, credentials: Credentials) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(credentials.model_dump(by_alias=True), f, indent=2)
            # mode passed to os.open only applies when the file is created
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.warning(f"Failed to persist credentials to {self.path}: {e}")
