"""Read-through cache for marketplace reference data (categories, brands, cargo providers)."""

import logging
import threading
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Union

from app.constants.trendyol import ReferenceKind
from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.models.trendyol_models import ReferenceEntry
from app.services.trendyol.client import MarketplaceClient

__logger__ = logging.getLogger(__name__)

Lookup = Union[int, str]


class _Snapshot:
    """Immutable view of one reference table."""

    __slots__ = ("entries", "by_id", "by_name")

    def __init__(self, entries: List[ReferenceEntry]):
        self.entries = tuple(entries)
        self.by_id: Mapping[int, ReferenceEntry] = MappingProxyType({e.id: e for e in entries})
        by_name = {}
        for entry in entries:
            # first entry wins on duplicate names (categories repeat leaf names)
            by_name.setdefault(_normalize(entry.name), entry)
        self.by_name: Mapping[str, ReferenceEntry] = MappingProxyType(by_name)


def _normalize(name: str) -> str:
    return " ".join((name or "").split()).casefold()


class CatalogReferenceCache:
    """
    Per-kind snapshots of reference data, loaded in full on first use.

    The marketplace has no single-item lookup for these tables, so a miss
    on an unloaded (or invalidated) kind reloads the whole table. A miss
    on a loaded kind is a NotFoundError; there is no TTL, staleness lasts
    until ``invalidate``.

    Reloads are serialised per kind; the finished snapshot is swapped in
    whole, so concurrent readers see the old or the new table.
    """

    def __init__(self, client: MarketplaceClient, brand_page_size: Optional[int] = None):
        self.client = client
        self.brand_page_size = brand_page_size or settings.trendyol_brand_page_size
        self._snapshots: Dict[str, _Snapshot] = {}
        self._generation: Dict[str, int] = {kind: 0 for kind in ReferenceKind.ALL}
        self._state_lock = threading.Lock()
        self._load_locks = {kind: threading.Lock() for kind in ReferenceKind.ALL}
        self._loaders: Dict[str, Callable[[], List[ReferenceEntry]]] = {
            ReferenceKind.CATEGORY: self.client.list_categories,
            ReferenceKind.BRAND: self._load_all_brands,
            ReferenceKind.CARGO: self.client.list_cargo_providers,
        }
        self.load_count: Dict[str, int] = {kind: 0 for kind in ReferenceKind.ALL}

    @staticmethod
    def _check_kind(kind: str) -> str:
        if kind not in ReferenceKind.ALL:
            raise ValidationError(
                f"Unknown reference kind '{kind}'; expected one of {', '.join(ReferenceKind.ALL)}",
                field="kind",
            )
        return kind

    def _load_all_brands(self) -> List[ReferenceEntry]:
        brands: List[ReferenceEntry] = []
        page = 0
        while True:
            result = self.client.list_brands(page=page, size=self.brand_page_size)
            brands.extend(result.content)
            if len(result.content) < self.brand_page_size:
                break
            if result.total_pages is not None and page + 1 >= result.total_pages:
                break
            page += 1
        return brands

    def _current(self, kind: str) -> Optional[_Snapshot]:
        with self._state_lock:
            return self._snapshots.get(kind)

    def _load(self, kind: str) -> _Snapshot:
        with self._state_lock:
            generation = self._generation[kind]
        with self._load_locks[kind]:
            with self._state_lock:
                snapshot = self._snapshots.get(kind)
                # another thread finished a load while we waited for the lock
                if snapshot is not None and self._generation[kind] == generation:
                    return snapshot
                generation = self._generation[kind]
            __logger__.info(f"Loading marketplace reference data: {kind}")
            entries = self._loaders[kind]()
            snapshot = _Snapshot(entries)
            with self._state_lock:
                self.load_count[kind] += 1
                # an invalidate during the load keeps the table marked stale
                if self._generation[kind] == generation:
                    self._snapshots[kind] = snapshot
            __logger__.info(f"Loaded {len(entries)} {kind} entries")
            return snapshot

    def _snapshot(self, kind: str) -> _Snapshot:
        self._check_kind(kind)
        return self._current(kind) or self._load(kind)

    def entries(self, kind: str) -> List[ReferenceEntry]:
        return list(self._snapshot(kind).entries)

    def resolve(self, kind: str, lookup: Lookup) -> int:
        """Return the marketplace id for ``lookup`` (an id or a name) in the ``kind`` table."""
        if lookup is None or (isinstance(lookup, str) and not lookup.strip()):
            raise NotFoundError(f"No {kind} given to resolve")
        snapshot = self._snapshot(kind)
        entry = self._find(snapshot, lookup)
        if entry is None:
            raise NotFoundError(
                f"Unknown marketplace {kind}: '{lookup}'",
                details={"kind": kind, "lookup": lookup},
            )
        return entry.id

    @staticmethod
    def _find(snapshot: _Snapshot, lookup: Lookup) -> Optional[ReferenceEntry]:
        if isinstance(lookup, int) and not isinstance(lookup, bool):
            return snapshot.by_id.get(lookup)
        text = str(lookup).strip()
        if text.isdigit() and int(text) in snapshot.by_id:
            return snapshot.by_id[int(text)]
        return snapshot.by_name.get(_normalize(text))

    def invalidate(self, kind: Optional[str] = None) -> None:
        kinds = ReferenceKind.ALL if kind is None else (self._check_kind(kind),)
        with self._state_lock:
            for k in kinds:
                self._snapshots.pop(k, None)
                self._generation[k] += 1
        __logger__.info(f"Reference cache invalidated: {', '.join(kinds)}")

    def reload(self, kind: str) -> List[ReferenceEntry]:
        self.invalidate(kind)
        return self.entries(kind)
