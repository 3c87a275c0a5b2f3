"""Tests for loading the assistant client by dotted path."""

import pytest

from hark.assistant.registry import get_assistant_client
from hark.core.config import AuthConfig
from tests.conftest import FakeClient


def test_empty_target_is_rejected():
    with pytest.raises(ValueError, match="HARK_ASSISTANT_CLIENT"):
        get_assistant_client("", AuthConfig())


def test_explicit_factory_receives_auth():
    auth = AuthConfig(key_file_path="/tmp/key.json")
    client = get_assistant_client("tests.conftest:create_client", auth)

    assert isinstance(client, FakeClient)
    assert client.auth is auth


def test_default_factory_name():
    client = get_assistant_client("tests.conftest", AuthConfig())
    assert isinstance(client, FakeClient)


def test_factory_must_return_a_client():
    with pytest.raises(TypeError):
        get_assistant_client("builtins:str", AuthConfig())


def test_missing_module_raises():
    with pytest.raises(ModuleNotFoundError):
        get_assistant_client("hark_no_such_module:create_client", AuthConfig())
