"""Storage-agnostic key-value repositories."""

from .config import RepositoryConfig, create_repository, create_repository_from_config, load_config
from .storage import (
    EmptyIdentifierError,
    FileOptions,
    FileRepository,
    Identifiable,
    MemoryRepository,
    RedisRepository,
    Repository,
    RepositoryClosedError,
    RepositoryError,
)

__all__ = [
    "Repository",
    "RepositoryError",
    "EmptyIdentifierError",
    "RepositoryClosedError",
    "Identifiable",
    "FileOptions",
    "FileRepository",
    "MemoryRepository",
    "RedisRepository",
    "RepositoryConfig",
    "create_repository",
    "create_repository_from_config",
    "load_config",
]
