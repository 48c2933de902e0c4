"""Simple memory-backed repository

This backend keeps entities in memory as a mapping ``{<id>: <encoded bytes>}``.
Values are stored encoded so callers never share mutable state with the
repository.
"""
from threading import RLock
from typing import Dict, Generic, List, Optional, Tuple, TypeVar
import logging

from .base import Repository, RepositoryClosedError, require_id
from .serializer import JSONSerializer, Serializer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MemoryRepository(Repository[T], Generic[T]):
    def __init__(self, entity_type: Optional[type] = None, serializer: Optional[Serializer] = None):
        self.entity_type = entity_type
        self.serializer = serializer or JSONSerializer(entity_type)
        self._lock = RLock()
        self._store: Optional[Dict[str, bytes]] = {}

    def _map(self) -> Dict[str, bytes]:
        store = self._store
        if store is None:
            raise RepositoryClosedError(self)
        return store

    def get(self, id: str) -> Tuple[Optional[T], bool]:
        with self._lock:
            data = self._map().get(id)
        if data is None:
            return None, False
        return self.serializer.load(data), True

    def get_all(self) -> List[T]:
        with self._lock:
            values = list(self._map().values())
        return [self.serializer.load(data) for data in values]

    def count(self) -> int:
        with self._lock:
            return len(self._map())

    def add(self, entity: T) -> None:
        key = require_id(entity)
        data = self.serializer.dump(entity)
        with self._lock:
            self._map()[key] = data

    def remove(self, id: str) -> None:
        with self._lock:
            self._map().pop(id, None)

    def close(self) -> None:
        with self._lock:
            self._store = None
