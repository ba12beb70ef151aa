"""Feed owner identity backed by an Ethereum V3 keystore."""

import json
from dataclasses import dataclass, field
from typing import Any, Union

from eth_account import Account
from eth_account.messages import encode_defunct

from common.logging_config import get_logger
from publisher.exceptions import ConfigurationError

logger = get_logger(__name__)


@dataclass(frozen=True)
class SigningIdentity:
    """
    Private key and the address derived from it.
    """
    address: str
    account: Any = field(repr=False, compare=False)

    @classmethod
    def from_private_key(cls, private_key: Union[str, bytes]) -> "SigningIdentity":
        account = Account.from_key(private_key)
        return cls(address=account.address, account=account)

    @classmethod
    def from_keystore(cls, keystore: Union[str, dict], passphrase: str) -> "SigningIdentity":
        """
        Unlock a V3 keystore.

        Args:
            keystore: Keystore JSON text or the parsed document
            passphrase: Passphrase the keystore was encrypted with

        Returns:
            SigningIdentity for the decrypted key

        Raises:
            ConfigurationError: If the keystore is malformed or the passphrase is wrong
        """
        try:
            document = json.loads(keystore) if isinstance(keystore, str) else keystore
            private_key = Account.decrypt(document, passphrase)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Keystore is not valid JSON: {e.msg}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise ConfigurationError(f"Unable to unlock keystore: {e}") from e

        identity = cls.from_private_key(private_key)
        logger.info(f"Loaded signing identity {identity.address}")
        return identity

    @property
    def owner_hex(self) -> str:
        """Address as lowercase hex without the 0x prefix."""
        return self.address[2:].lower()

    def sign_digest(self, digest: bytes) -> bytes:
        """
        Sign a 32-byte digest with the Ethereum personal-message prefix.

        Returns:
            65-byte r || s || v signature
        """
        signed = self.account.sign_message(encode_defunct(primitive=digest))
        return bytes(signed.signature)
