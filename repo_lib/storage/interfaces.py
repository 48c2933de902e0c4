from typing import Protocol, Any, List, Optional, Tuple, runtime_checkable


@runtime_checkable
class Identifiable(Protocol):
    """Anything stored in a repository.

    `get_id` must return a non-empty string that stays the same for the
    entity's lifetime; it is the only key every backend uses.
    """

    def get_id(self) -> str: ...


@runtime_checkable
class RepositoryProtocol(Protocol):
    """Repository protocol mirroring `repo_lib.storage.base.Repository`.

    Implementations should follow the semantics documented on the abstract
    base class (``(None, False)`` for missing keys, idempotent remove,
    last-write-wins add, thread-safety).
    """

    def get(self, id: str) -> Tuple[Optional[Any], bool]: ...

    def get_all(self) -> List[Any]: ...

    def count(self) -> int: ...

    def add(self, entity: Any) -> None: ...

    def remove(self, id: str) -> None: ...

    def close(self) -> None: ...
