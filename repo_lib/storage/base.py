"""Repository interface definitions.

Defines the Repository abstract class every backend implements. A
repository is bound to a single entity type and stores each entity under
the identifier returned by its ``get_id()``.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class RepositoryError(Exception):
    """Base class for errors raised by the repository layer itself."""


class EmptyIdentifierError(RepositoryError, ValueError):
    """Raised by `add` when the entity reports an empty identifier."""

    def __init__(self, entity: Any = None) -> None:
        super().__init__("empty id not allowed")
        self.entity = entity


class RepositoryClosedError(RepositoryError, RuntimeError):
    """Raised when a repository is used after `close()`."""

    def __init__(self, repo: Any = None) -> None:
        super().__init__(f"{type(repo).__name__} is closed")


class Repository(ABC, Generic[T]):
    """Abstract key-value repository.

    Implementations must be safe to call from multiple threads sharing
    one handle. Backend failures are raised as exceptions; a missing key
    is never an error.
    """

    @abstractmethod
    def get(self, id: str) -> Tuple[Optional[T], bool]:
        """Return ``(entity, True)`` if `id` is stored, else ``(None, False)``."""

    @abstractmethod
    def get_all(self) -> List[T]:
        """Return every stored entity. Order is backend defined."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored entities."""

    @abstractmethod
    def add(self, entity: T) -> None:
        """Store `entity`, overwriting any entity with the same id.

        Raises `EmptyIdentifierError` if ``entity.get_id()`` is empty.
        """

    @abstractmethod
    def remove(self, id: str) -> None:
        """Remove the entity stored under `id`. Removing a missing id is a no-op."""

    @abstractmethod
    def close(self) -> None:
        """Release backend resources. Further calls raise `RepositoryClosedError`."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def require_id(entity: Any) -> str:
    """Return the entity's identifier or raise `EmptyIdentifierError`."""
    key = entity.get_id()
    if not key:
        raise EmptyIdentifierError(entity)
    return key
