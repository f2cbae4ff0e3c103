"""
app/lists/store.py
------------------
Small session-backed product lists.

    wishlist        ['<product_id>', ...]
    compareList     [{product dict}, ...]   at most COMPARE_LIMIT
    recentlyViewed  [{product dict}, ...]   newest first, at most RECENTLY_VIEWED_LIMIT

Entries are identified by product id (the string itself, or the
dict's "id" field).
"""
from typing import List, MutableMapping, Optional

from flask import current_app, session


def _entry_id(entry) -> str:
    if isinstance(entry, dict):
        return str(entry.get('id'))
    return str(entry)


class SessionList:

    def __init__(self, storage: MutableMapping, key: str, limit: Optional[int] = None):
        self._storage = storage
        self._key     = key
        self.limit    = limit

    def items(self) -> List:
        return list(self._storage.get(self._key) or [])

    def ids(self) -> List[str]:
        return [_entry_id(e) for e in self.items()]

    def contains(self, product_id) -> bool:
        return str(product_id) in self.ids()

    def is_full(self) -> bool:
        return self.limit is not None and len(self.items()) >= self.limit

    def add(self, entry) -> bool:
        """Append `entry`; False when it is already there or the list is full."""
        if self.contains(_entry_id(entry)) or self.is_full():
            return False
        self._save(self.items() + [entry])
        return True

    def remove(self, product_id) -> bool:
        items = self.items()
        kept  = [e for e in items if _entry_id(e) != str(product_id)]
        if len(kept) == len(items):
            return False
        self._save(kept)
        return True

    def toggle(self, entry) -> bool:
        """Remove if present, else add. Returns membership afterwards."""
        if self.remove(_entry_id(entry)):
            return False
        return self.add(entry)

    def push(self, entry) -> None:
        """Move `entry` to the front, dropping duplicates and overflow."""
        pid   = _entry_id(entry)
        items = [entry] + [e for e in self.items() if _entry_id(e) != pid]
        if self.limit is not None:
            items = items[:self.limit]
        self._save(items)

    def clear(self) -> None:
        self._save([])

    def _save(self, items: List) -> None:
        self._storage[self._key] = items
        if hasattr(self._storage, 'modified'):
            self._storage.modified = True


# ── Session-bound lists ───────────────────────────────────────────

def wishlist() -> SessionList:
    return SessionList(session, 'wishlist')


def compare_list() -> SessionList:
    return SessionList(session, 'compareList', limit=current_app.config.get('COMPARE_LIMIT', 4))


def recently_viewed() -> SessionList:
    return SessionList(session, 'recentlyViewed', limit=current_app.config.get('RECENTLY_VIEWED_LIMIT', 10))
