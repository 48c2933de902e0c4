import fnmatch
from dataclasses import dataclass
from typing import Optional

import pytest
from pydantic import BaseModel

from repo_lib.storage.base import EmptyIdentifierError, Repository


@dataclass
class Foo:
    id: str
    bar: str = ""

    def get_id(self) -> str:
        return self.id


class Widget(BaseModel):
    name: str
    size: int = 0
    tags: list[str] = []
    note: Optional[str] = None

    def get_id(self) -> str:
        return self.name


def check_repo_crud(repo: Repository) -> None:
    """Basic CRUD against any repository holding `Foo` entities."""
    key = "1880"

    val, found = repo.get(key)
    assert found is False, "A value was found, but no value was expected"
    assert val is None

    assert repo.remove(key) is None

    foo = Foo(id=key, bar="baz")
    repo.add(foo)
    repo.add(foo)

    got, found = repo.get(key)
    assert found is True, "No value was found, but should have been"
    assert got == foo

    repo.remove(key)
    repo.remove(key)

    val, found = repo.get(key)
    assert found is False
    assert val is None


def check_repo_get_all(repo: Repository) -> None:
    for i in ("1", "2", "3"):
        repo.add(Foo(id=i))

    assert repo.count() == 3

    vals = repo.get_all()
    assert len(vals) == 3
    assert {v.get_id() for v in vals} == {"1", "2", "3"}


def check_last_write_wins(repo: Repository) -> None:
    repo.add(Foo(id="k", bar="first"))
    repo.add(Foo(id="k", bar="second"))

    got, found = repo.get("k")
    assert found
    assert got.bar == "second"
    assert repo.count() == 1


def check_empty_id_rejected(repo: Repository) -> None:
    before = repo.count()
    with pytest.raises(EmptyIdentifierError):
        repo.add(Foo(id=""))
    assert repo.count() == before


class DummyRedis:
    """In-memory stand-in for the subset of `redis.Redis` the repository uses."""

    def __init__(self):
        self.data = {}
        self.calls = []
        self.closed = False
        self.vanish_on_mget = set()

    def get(self, key):
        self.calls.append("get")
        return self.data.get(key)

    def set(self, key, value):
        self.calls.append("set")
        self.data[key] = value if isinstance(value, bytes) else str(value).encode()
        return True

    def delete(self, *keys):
        self.calls.append("delete")
        return sum(1 for k in keys if self.data.pop(k, None) is not None)

    def keys(self, pattern="*"):
        self.calls.append("keys")
        return [k.encode() for k in self.data if fnmatch.fnmatchcase(k, pattern)]

    def mget(self, keys):
        self.calls.append("mget")
        for k in self.vanish_on_mget:
            self.data.pop(k, None)
        return [self.data.get(k.decode() if isinstance(k, bytes) else k) for k in keys]

    def dbsize(self):
        self.calls.append("dbsize")
        return len(self.data)

    def close(self):
        self.closed = True
