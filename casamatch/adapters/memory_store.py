"""
In-memory SharedProperty store.

Reference implementation of :class:`SharedPropertyStore` for tests, the
CLI and batch jobs that keep everything in one process. A re-entrant lock
serializes each find-merge-save cycle.
"""

import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from casamatch.adapters.base_adapter import SharedProperty, SharedPropertyStore


class InMemorySharedPropertyStore(SharedPropertyStore):
    """Dict-backed store keyed by SharedProperty id."""

    def __init__(self, records: Optional[List[SharedProperty]] = None):
        self._lock = threading.RLock()
        self._records: Dict[str, SharedProperty] = {}
        for record in records or []:
            self.save_shared_property(record)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def list_shared_properties(self) -> List[SharedProperty]:
        with self._lock:
            return list(self._records.values())

    def get_shared_property(self, shared_id: str) -> Optional[SharedProperty]:
        with self._lock:
            return self._records.get(shared_id)

    def save_shared_property(self, shared: SharedProperty) -> SharedProperty:
        with self._lock:
            if shared.id is None:
                shared.id = f"shared_{uuid.uuid4().hex[:12]}"
            self._records[shared.id] = shared
            return shared

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
