from __future__ import annotations
from typing import Any, Optional, Protocol
import dataclasses
import json
import pickle

import yaml
from pydantic import BaseModel


class Serializer(Protocol):
    """Serialize/deserialize entities for backends that store bytes.

    Implementations should be symmetric: `dump` -> bytes, `load` <- bytes.
    """

    file_extension: str

    def dump(self, value: Any) -> bytes: ...

    def load(self, data: bytes) -> Any: ...


def to_data(value: Any) -> Any:
    """Flatten an entity into plain data suitable for text formats."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (dict, list, tuple, str, int, float, bool)) or value is None:
        return value
    return {k: v for k, v in vars(value).items() if not k.startswith("_")}


def from_data(entity_type: Optional[type], data: Any) -> Any:
    """Rebuild an instance of `entity_type` from plain data.

    Without an entity type the plain data is returned as-is.
    """
    if entity_type is None:
        return data
    if isinstance(entity_type, type) and issubclass(entity_type, BaseModel):
        return entity_type.model_validate(data)
    if not isinstance(data, dict):
        raise TypeError(
            f"cannot build {entity_type.__name__} from {type(data).__name__}"
        )
    return entity_type(**data)


class JSONSerializer:
    """Default serializer using JSON (text).

    Entities are stored as JSON objects of their public fields and rebuilt
    through `entity_type` on load.
    """

    file_extension = "json"

    def __init__(self, entity_type: Optional[type] = None) -> None:
        self.entity_type = entity_type

    def dump(self, value: Any) -> bytes:
        return json.dumps(to_data(value), default=lambda o: o.__dict__).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return from_data(self.entity_type, json.loads(data.decode("utf-8")))


class YAMLSerializer:
    """Serializer using YAML (text). Field values must be YAML-serializable."""

    file_extension = "yaml"

    def __init__(self, entity_type: Optional[type] = None) -> None:
        self.entity_type = entity_type

    def dump(self, value: Any) -> bytes:
        return yaml.safe_dump(to_data(value)).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return from_data(self.entity_type, yaml.safe_load(data.decode("utf-8")))


class PickleSerializer:
    """Serializer using pickle (binary).

    Stores the entity object itself, so private attributes survive a round
    trip. Only load data written by a trusted process.
    """

    file_extension = "pkl"

    def dump(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def load(self, data: bytes) -> Any:
        return pickle.loads(data)


class EncryptedSerializer:
        """Serializer that encrypts payloads using Fernet (symmetric, authenticated).

        Notes:
        - Fernet is AES-CBC + HMAC from the cryptography library; a tampered or
            foreign payload fails to load with `cryptography.fernet.InvalidToken`.
        - `base_serializer` defaults to JSON and is set inside `__init__`.
        - With `password`, each payload carries a random salt and the PBKDF2
            iteration count so the key can be derived again on load.
        """

        file_extension = "enc"

        def __init__(
            self,
            *,
            key: bytes | None = None,
            password: str | None = None,
            iterations: int = 390000,
            base_serializer: Serializer | None = None,
        ) -> None:
            if key is None and password is None:
                raise ValueError("EncryptedSerializer requires either `key` or `password`")
            self._key = key
            self._password = password
            self._iterations = iterations
            self.base_serializer = base_serializer or JSONSerializer()

        def _derive_key(self, password: str, salt: bytes, iterations: int) -> bytes:
            import base64
            from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
            from cryptography.hazmat.primitives import hashes

            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=salt,
                iterations=iterations,
            )
            return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))

        def dump(self, value: Any) -> bytes:
            """Serialize and encrypt value, returning a framed JSON blob."""
            import os
            import base64
            from cryptography.fernet import Fernet
            inner = self.base_serializer.dump(value)

            if self._password is not None:
                salt = os.urandom(16)
                key = self._derive_key(self._password, salt, self._iterations)
                ct = Fernet(key).encrypt(inner)
                frame = {
                    "v": 1,
                    "mode": "password",
                    "kdf": "pbkdf2",
                    "iterations": self._iterations,
                    "salt": base64.urlsafe_b64encode(salt).decode("ascii"),
                    "ct": base64.urlsafe_b64encode(ct).decode("ascii"),
                }
                return json.dumps(frame).encode("utf-8")

            ct = Fernet(self._key).encrypt(inner)
            frame = {"v": 1, "mode": "key", "ct": base64.urlsafe_b64encode(ct).decode("ascii")}
            return json.dumps(frame).encode("utf-8")

        def load(self, data: bytes) -> Any:
            """Parse framed blob, derive key if needed, decrypt and deserialize."""
            import base64
            from cryptography.fernet import Fernet

            frame = json.loads(data.decode("utf-8"))
            mode = frame.get("mode")
            if mode == "password":
                if self._password is None:
                    raise ValueError("serializer was not configured with a password")
                salt = base64.urlsafe_b64decode(frame["salt"].encode("ascii"))
                iterations = frame.get("iterations", self._iterations)
                key = self._derive_key(self._password, salt, iterations)
            elif mode == "key":
                if self._key is None:
                    raise ValueError("serializer was not configured with a key")
                key = self._key
            else:
                raise ValueError("unknown frame format")

            ct = base64.urlsafe_b64decode(frame["ct"].encode("ascii"))
            return self.base_serializer.load(Fernet(key).decrypt(ct))


def get_serializer(name: str = "json", entity_type: Optional[type] = None, **options) -> Serializer:
    """Resolve a serializer by name: json, yaml, pickle or encrypted.

    The encrypted serializer accepts `key`, `password`, `iterations` and an
    inner `base` serializer name (default json).
    """
    name = (name or "json").lower()
    if name == "json":
        return JSONSerializer(entity_type)
    if name in ("yaml", "yml"):
        return YAMLSerializer(entity_type)
    if name == "pickle":
        return PickleSerializer()
    if name == "encrypted":
        base = get_serializer(options.pop("base", "json"), entity_type)
        return EncryptedSerializer(base_serializer=base, **options)
    raise ValueError(f"Unknown serializer: {name!r}")
