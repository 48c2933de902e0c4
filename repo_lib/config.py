"""Repository configuration and construction.

`create_repository` builds a ready repository for one entity type from a
backend name, a serializer name and backend options. `load_config` reads
the same settings from a YAML file.
"""
from __future__ import annotations
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from redis import Redis

from repo_lib.storage.base import Repository
from repo_lib.storage.file_backend import FileOptions, FileRepository
from repo_lib.storage.memory_backend import MemoryRepository
from repo_lib.storage.redis_backend import RedisRepository
from repo_lib.storage.serializer import get_serializer

logger = logging.getLogger(__name__)

BACKENDS = ("file", "memory", "redis")


@dataclass
class RepositoryConfig:
    backend: str = "file"
    serializer: str = "json"
    directory: Optional[str] = None
    extension: Optional[str] = None
    atomic_writes: bool = True
    redis_url: Optional[str] = None
    password: Optional[str] = None
    key: Optional[str] = None
    log_level: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RepositoryConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown repository config keys: {', '.join(sorted(unknown))}")
        return cls(**data)


def load_config(path: str | Path) -> RepositoryConfig:
    """Load a `RepositoryConfig` from a YAML file. A missing file yields defaults."""
    cfg_path = Path(path)
    if not cfg_path.exists():
        logger.debug("No repository config at %s, using defaults", cfg_path)
        return RepositoryConfig()
    with cfg_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Repository config {cfg_path} must be a mapping")
    return RepositoryConfig.from_dict(data)


def create_repository(
    entity_type: Optional[type],
    backend: str = "file",
    serializer: str = "json",
    **options: Any,
) -> Repository:
    """Create a repository for `entity_type`.

    Options by backend:
    - file: `directory` (required), `extension`, `atomic_writes`
    - memory: none
    - redis: `client` (a connected `redis.Redis`) or `redis_url`
    Serializer options (`password`, `key`) are passed to the encrypted
    serializer.
    """
    secrets = {"password": options.pop("password", None), "key": options.pop("key", None)}
    ser_opts = {k: v for k, v in secrets.items() if v is not None}
    ser = get_serializer(serializer, entity_type, **ser_opts)

    if backend == "file":
        directory = options.pop("directory", None)
        if not directory:
            raise ValueError("directory cannot be empty")
        extension = options.pop("extension", None)
        if extension is None:
            extension = ser.file_extension
        opts = FileOptions.create(directory, extension, options.pop("atomic_writes", True))
        repo: Repository = FileRepository(entity_type, opts, ser)
    elif backend == "memory":
        repo = MemoryRepository(entity_type, ser)
    elif backend == "redis":
        client = options.pop("client", None)
        if client is None:
            url = options.pop("redis_url", None)
            if not url:
                raise ValueError("redis backend requires `client` or `redis_url`")
            client = Redis.from_url(url)
        repo = RedisRepository(entity_type, client, ser)
    else:
        raise ValueError(f"Unknown backend: {backend!r} (expected one of {', '.join(BACKENDS)})")

    if options:
        logger.warning("Ignoring options not used by %s backend: %s", backend, ", ".join(sorted(options)))
    logger.debug("Created %s repository with %s serializer", backend, serializer)
    return repo


def create_repository_from_config(entity_type: Optional[type], config: RepositoryConfig) -> Repository:
    options = asdict(config)
    options.pop("log_level")
    backend = options.pop("backend")
    serializer = options.pop("serializer")
    options = {k: v for k, v in options.items() if v is not None}
    if backend != "file":
        options.pop("atomic_writes", None)
    return create_repository(entity_type, backend, serializer, **options)
