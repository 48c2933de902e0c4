"""Redis-backed repository.

Each entity is stored as a plain string value under its id. Every
operation maps onto a single native command (GET, SET, DEL, KEYS, MGET,
DBSIZE); atomicity is whatever Redis gives those commands.
"""
from __future__ import annotations
from typing import Generic, List, Optional, Tuple, TypeVar
import logging

from redis import Redis

from .base import Repository, RepositoryClosedError, require_id
from .serializer import JSONSerializer, Serializer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RedisRepository(Repository[T], Generic[T]):
    """Repository over an already-connected Redis client.

    The repository owns the client from construction on: `close()` closes
    it. `count()` uses DBSIZE, so the client should point at a database
    dedicated to this repository.
    """

    def __init__(
        self,
        entity_type: Optional[type],
        client: Redis,
        serializer: Serializer | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.serializer = serializer or JSONSerializer(entity_type)
        self.client: Redis | None = client

    def _client(self) -> Redis:
        client = self.client
        if client is None:
            raise RepositoryClosedError(self)
        return client

    def _deserialize(self, raw) -> T:
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        if not isinstance(raw, (bytes, bytearray)):
            raise TypeError(f"unknown value returned from redis: {type(raw).__name__}")
        return self.serializer.load(bytes(raw))

    def get(self, id: str) -> Tuple[Optional[T], bool]:
        raw = self._client().get(id)
        if raw is None:
            return None, False
        return self._deserialize(raw), True

    def get_all(self) -> List[T]:
        client = self._client()
        keys = client.keys("*")
        if not keys:
            return []

        entries = []
        for raw in client.mget(keys):
            if raw is None:
                # deleted between KEYS and MGET
                continue
            entries.append(self._deserialize(raw))
        return entries

    def count(self) -> int:
        return int(self._client().dbsize())

    def add(self, entity: T) -> None:
        key = require_id(entity)
        self._client().set(key, self.serializer.dump(entity))

    def remove(self, id: str) -> None:
        self._client().delete(id)

    def close(self) -> None:
        client, self.client = self.client, None
        if client is not None:
            client.close()
            logger.info("Redis repository connection closed")
