import json

import pytest
import yaml
from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from repo_lib.storage.serializer import (
    EncryptedSerializer,
    JSONSerializer,
    PickleSerializer,
    YAMLSerializer,
    from_data,
    get_serializer,
    to_data,
)
from tests.helpers import Foo, Widget


class Plain:
    def __init__(self, id, value=None):
        self.id = id
        self.value = value
        self._cache = "not stored"

    def get_id(self):
        return self.id


def test_to_data_flattens_entities():
    assert to_data(Foo(id="1", bar="b")) == {"id": "1", "bar": "b"}
    assert to_data(Widget(name="w", size=3)) == {"name": "w", "size": 3, "tags": [], "note": None}
    assert to_data(Plain("p", 5)) == {"id": "p", "value": 5}
    assert to_data({"a": 1}) == {"a": 1}


def test_from_data_without_type_returns_plain_data():
    assert from_data(None, {"a": 1}) == {"a": 1}


def test_from_data_rejects_non_mapping():
    with pytest.raises(TypeError):
        from_data(Foo, ["not", "a", "mapping"])


def test_json_serializer_dataclass():
    s = JSONSerializer(Foo)
    data = s.dump(Foo(id="1", bar="baz"))
    assert json.loads(data) == {"id": "1", "bar": "baz"}
    assert s.load(data) == Foo(id="1", bar="baz")


def test_json_serializer_pydantic():
    s = JSONSerializer(Widget)
    w = Widget(name="w", size=2, tags=["x"])
    assert s.load(s.dump(w)) == w
    with pytest.raises(ValidationError):
        s.load(b'{"name": "w", "size": "huge"}')


def test_json_serializer_drops_private_attributes():
    s = JSONSerializer(Plain)
    got = s.load(s.dump(Plain("p", [1, 2])))
    assert got.id == "p" and got.value == [1, 2]
    assert "_cache" not in json.loads(s.dump(got))


def test_json_serializer_decode_error():
    with pytest.raises(ValueError):
        JSONSerializer(Foo).load(b"{broken")


def test_yaml_serializer():
    s = YAMLSerializer(Foo)
    data = s.dump(Foo(id="1", bar="baz"))
    assert yaml.safe_load(data) == {"id": "1", "bar": "baz"}
    assert s.load(data) == Foo(id="1", bar="baz")


def test_pickle_serializer_keeps_private_state():
    s = PickleSerializer()
    got = s.load(s.dump(Plain("p")))
    assert got._cache == "not stored"


def test_encrypted_serializer_with_key():
    key = Fernet.generate_key()
    s = EncryptedSerializer(key=key, base_serializer=JSONSerializer(Foo))
    data = s.dump(Foo(id="1", bar="secret"))
    assert b"secret" not in data
    assert json.loads(data)["mode"] == "key"
    assert s.load(data) == Foo(id="1", bar="secret")

    other = EncryptedSerializer(key=Fernet.generate_key(), base_serializer=JSONSerializer(Foo))
    with pytest.raises(InvalidToken):
        other.load(data)


def test_encrypted_serializer_with_password():
    s = EncryptedSerializer(password="pw", iterations=1000, base_serializer=JSONSerializer(Foo))
    data = s.dump(Foo(id="1", bar="secret"))
    frame = json.loads(data)
    assert frame["mode"] == "password" and frame["iterations"] == 1000
    assert s.load(data) == Foo(id="1", bar="secret")

    with pytest.raises(ValueError):
        EncryptedSerializer(key=Fernet.generate_key()).load(data)


def test_encrypted_serializer_requires_secret():
    with pytest.raises(ValueError):
        EncryptedSerializer()


def test_get_serializer_by_name():
    assert isinstance(get_serializer("json", Foo), JSONSerializer)
    assert isinstance(get_serializer("yaml", Foo), YAMLSerializer)
    assert isinstance(get_serializer("pickle"), PickleSerializer)
    enc = get_serializer("encrypted", Foo, password="pw", base="yaml")
    assert isinstance(enc, EncryptedSerializer)
    assert isinstance(enc.base_serializer, YAMLSerializer)
    with pytest.raises(ValueError):
        get_serializer("xml")
