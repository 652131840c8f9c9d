"""
Settings documents (marketplace credentials, invoice preferences).

The storefront keeps these in its document database; this module only
defines the get/set contract and an in-memory implementation used when
no database is wired in.
"""
import threading
from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, Optional


class SettingsRepository:
    """Document-store style access to settings documents."""

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, key: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError


class InMemorySettingsRepository(SettingsRepository):
    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._documents.get(key)
            return deepcopy(document) if document is not None else None

    def set(self, key: str, data: Dict[str, Any]) -> None:
        document = {**data, "updatedAt": datetime.utcnow().isoformat()}
        with self._lock:
            self._documents[key] = document
