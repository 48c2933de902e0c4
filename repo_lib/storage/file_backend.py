"""File-backed repository.

Each entity is stored as one file directly under a root directory:
``<root>/<percent-escaped id>[.<extension>]`` holding the raw serializer
output. Access to each file is guarded by a per-key read/write lock from
a `KeyedLockTable`; reads take the shared side, writes and removals the
exclusive side.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, List, Optional, Tuple, TypeVar
from urllib.parse import quote, unquote
import os
import tempfile
import logging

from .base import Repository, RepositoryClosedError, require_id
from .locks import KeyedLockTable
from .serializer import JSONSerializer, Serializer

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FileOptions:
    """Options for `FileRepository`.

    - directory: root directory; resolved to an absolute path by the
      repository at construction.
    - extension: optional filename extension, with or without leading dot.
    - atomic_writes: write through a temp file and rename it over the
      target. When False, files are truncated and rewritten in place and a
      crash mid-write can leave a truncated file behind.
    """

    directory: str
    extension: str = ""
    atomic_writes: bool = True

    @classmethod
    def create(cls, directory: str | Path, extension: str = "", atomic_writes: bool = True) -> "FileOptions":
        return cls(os.path.abspath(directory), extension, atomic_writes)


def key_to_filename(key: str, extension: str = "") -> str:
    """Percent-escape `key` into a single path component.

    A leading dot is escaped too, so no stored name is hidden, ``.`` or
    ``..``, or mistaken for a temp file.
    """
    name = quote(key, safe="")
    if name.startswith("."):
        name = "%2E" + name[1:]
    if extension:
        name = f"{name}.{extension}"
    return name


def filename_to_key(name: str, extension: str = "") -> Optional[str]:
    """Invert `key_to_filename`. Returns None for names it could not produce."""
    if name.startswith("."):
        return None
    if extension:
        suffix = "." + extension
        if not name.endswith(suffix) or len(name) == len(suffix):
            return None
        name = name[: -len(suffix)]
    return unquote(name)


class FileRepository(Repository[T], Generic[T]):
    def __init__(
        self,
        entity_type: Optional[type],
        options: FileOptions,
        serializer: Serializer | None = None,
    ) -> None:
        if not options.directory:
            raise ValueError("directory cannot be empty")

        self.entity_type = entity_type
        self.directory = Path(os.path.abspath(options.directory))
        self.extension = options.extension.lstrip(".")
        self.atomic_writes = options.atomic_writes
        self.serializer = serializer or JSONSerializer(entity_type)

        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        if not self.directory.is_dir():
            raise NotADirectoryError(str(self.directory))

        self._locks: KeyedLockTable | None = KeyedLockTable()
        logger.info("FileRepository opened at %s (extension=%r)", self.directory, self.extension)

    @property
    def lock_count(self) -> int:
        return len(self._lock_table())

    def _lock_table(self) -> KeyedLockTable:
        locks = self._locks
        if locks is None:
            raise RepositoryClosedError(self)
        return locks

    def _path_for(self, key: str) -> Path:
        return self.directory / key_to_filename(key, self.extension)

    def _list_keys(self) -> List[str]:
        keys = []
        with os.scandir(self.directory) as it:
            for entry in it:
                if entry.is_dir():
                    continue
                key = filename_to_key(entry.name, self.extension)
                if key is None:
                    logger.debug("Skipping foreign entry %s", entry.name)
                    continue
                keys.append(key)
        return keys

    def count(self) -> int:
        self._lock_table()
        return len(self._list_keys())

    def get_all(self) -> List[T]:
        self._lock_table()
        entries = []
        for key in self._list_keys():
            entry, found = self.get(key)
            if not found:
                # removed after listing
                continue
            entries.append(entry)
        return entries

    def add(self, entity: T) -> None:
        key = require_id(entity)
        data = self.serializer.dump(entity)
        path = self._path_for(key)

        with self._lock_table().acquire(key).write_locked():
            if self.atomic_writes:
                self._write_atomic(path, data)
            else:
                self._write_in_place(path, data)
        logger.debug("Wrote %s (%d bytes)", path.name, len(data))

    def _write_in_place(self, path: Path, data: bytes) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(data)

    def _write_atomic(self, path: Path, data: bytes) -> None:
        # short random dot-prefixed name, so any storable key also fits as a temp file
        fd, tmp_name = tempfile.mkstemp(prefix=".", dir=self.directory)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    def get(self, id: str) -> Tuple[Optional[T], bool]:
        locks = self._lock_table()
        if not id:
            return None, False
        lock = locks.acquire(id)
        path = self._path_for(id)

        try:
            with lock.read_locked():
                data = path.read_bytes()
        except FileNotFoundError:
            return None, False

        return self.serializer.load(data), True

    def remove(self, id: str) -> None:
        locks = self._lock_table()
        if not id:
            return
        lock = locks.acquire(id)
        path = self._path_for(id)

        with lock.write_locked():
            try:
                path.unlink()
            except FileNotFoundError:
                return
        logger.debug("Removed %s", path.name)

    def close(self) -> None:
        if self._locks is not None:
            self._locks.clear()
            self._locks = None
            logger.info("FileRepository at %s closed", self.directory)
