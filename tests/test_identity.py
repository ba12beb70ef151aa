"""Tests for keystore-backed signing identities."""

import json

import pytest
from eth_account import Account

from conftest import TEST_PRIVATE_KEY
from publisher.exceptions import ConfigurationError
from publisher.identity import SigningIdentity


@pytest.fixture
def keystore():
    return Account.encrypt(TEST_PRIVATE_KEY, "correct horse", kdf="pbkdf2", iterations=2)


def test_unlocks_keystore_json_text(keystore, identity):
    loaded = SigningIdentity.from_keystore(json.dumps(keystore), "correct horse")

    assert loaded.address == identity.address
    assert loaded == identity


def test_unlocks_parsed_keystore(keystore, identity):
    assert SigningIdentity.from_keystore(keystore, "correct horse").address == identity.address


def test_wrong_passphrase_is_configuration_error(keystore):
    with pytest.raises(ConfigurationError) as exc_info:
        SigningIdentity.from_keystore(json.dumps(keystore), "wrong")

    assert exc_info.value.code == "CONFIGURATION_ERROR"


def test_malformed_keystore_is_configuration_error():
    with pytest.raises(ConfigurationError):
        SigningIdentity.from_keystore("{not json", "pass")


def test_owner_hex_has_no_prefix(identity):
    assert identity.owner_hex == identity.address[2:].lower()
    assert len(identity.owner_hex) == 40


def test_private_key_not_in_repr(identity):
    assert TEST_PRIVATE_KEY[2:] not in repr(identity)
