"""Storage backends implementing the repository contract."""

from .base import EmptyIdentifierError, Repository, RepositoryClosedError, RepositoryError
from .file_backend import FileOptions, FileRepository
from .interfaces import Identifiable, RepositoryProtocol
from .memory_backend import MemoryRepository
from .redis_backend import RedisRepository
from .serializer import (
    EncryptedSerializer,
    JSONSerializer,
    PickleSerializer,
    Serializer,
    YAMLSerializer,
    get_serializer,
)

__all__ = [
    "Repository",
    "RepositoryError",
    "EmptyIdentifierError",
    "RepositoryClosedError",
    "Identifiable",
    "RepositoryProtocol",
    "FileOptions",
    "FileRepository",
    "MemoryRepository",
    "RedisRepository",
    "Serializer",
    "JSONSerializer",
    "YAMLSerializer",
    "PickleSerializer",
    "EncryptedSerializer",
    "get_serializer",
]
