"""Runtime-replaceable holder for the marketplace credentials."""

import logging
import threading
from typing import Optional

from app.models.trendyol_models import Credentials

__logger__ = logging.getLogger(__name__)


class CredentialStore:
    """
    Holds one immutable Credentials snapshot.

    Replacing credentials swaps the whole snapshot under a lock, so a
    reader gets either the old tuple or the new one, never a mix. Callers
    that need several fields for one request must call ``get()`` once and
    use that snapshot throughout.
    """

    def __init__(self, initial: Optional[Credentials] = None):
        self._lock = threading.Lock()
        self._credentials = initial or Credentials()
        self._version = 0

    @classmethod
    def from_settings(cls, settings) -> "CredentialStore":
        return cls(Credentials(
            api_key=settings.trendyol_api_key,
            api_secret=settings.trendyol_api_secret,
            supplier_id=settings.trendyol_supplier_id,
        ))

    def get(self) -> Credentials:
        with self._lock:
            return self._credentials

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def replace(self, credentials: Credentials) -> Credentials:
        with self._lock:
            self._credentials = credentials
            self._version += 1
            version = self._version
        __logger__.info(
            f"Marketplace credentials replaced (v{version}): "
            f"key={credentials.masked()['api_key']} supplier={credentials.supplier_id}"
        )
        return credentials

    def update(self, **fields) -> Credentials:
        with self._lock:
            credentials = self._credentials.model_copy(update=fields)
            self._credentials = credentials
            self._version += 1
        __logger__.info(f"Marketplace credentials updated: {sorted(fields)}")
        return credentials

    def is_ready(self) -> bool:
        return self.get().is_complete
