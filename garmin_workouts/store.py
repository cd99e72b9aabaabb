"""
Credential persistence.

One credential slot per local installation. The file store replaces the
whole record atomically on every write; readers never see a half-written
file. Anything that cannot be read back as a credential counts as "no
credential".
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .config import AUTH_FILE
from .models import Credential

logger = logging.getLogger(__name__)


class CredentialStore:
    """Single-slot store interface."""

    def read(self) -> Optional[Credential]:
        raise NotImplementedError

    def write(self, credential: Credential) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryCredentialStore(CredentialStore):
    def __init__(self, credential: Optional[Credential] = None):
        self._credential = credential

    def read(self) -> Optional[Credential]:
        return self._credential

    def write(self, credential: Credential) -> None:
        self._credential = credential

    def clear(self) -> None:
        self._credential = None


class FileCredentialStore(CredentialStore):
    """JSON file readable only by the owning user."""

    def __init__(self, path=None):
        self.path = Path(path) if path else AUTH_FILE

    def read(self) -> Optional[Credential]:
        if not self.path.exists():
            return None

        try:
            data = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read stored credential {self.path}: {e}")
            return None

        if not data.strip():
            return None

        try:
            return Credential.model_validate_json(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed stored credential {self.path}: {e.error_count()} error(s)")
            return None

    def write(self, credential: Credential) -> None:
        directory = self.path.parent
        directory.mkdir(mode=0o700, parents=True, exist_ok=True)

        # mkstemp creates the file with 0600 permissions
        fd, tmp_path = tempfile.mkstemp(prefix=".auth-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(credential.model_dump_json(by_alias=True, indent=2))
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Credential stored in {self.path}")

    def clear(self) -> None:
        try:
            self.path.unlink()
            logger.info("Stored credential cleared")
        except FileNotFoundError:
            pass
