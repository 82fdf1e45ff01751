"""Memo encryption for depositor-to-recipient messages.

The pool stores memo payloads as opaque bytes. This helper produces those
payloads off-chain: the depositor seals a message to the recipient's X25519
public key, and only the recipient's private key opens it.

Sealed layout:
    ephemeral public key (32) || nonce (12) || AES-256-GCM ciphertext + tag
"""

import os
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from mpool.exceptions import DecryptionError, EncryptionError

HKDF_INFO = b"mpool/memo/v1"


class MemoCipher:
    """
    Seals and opens memo payloads with ephemeral X25519 + AES-GCM.

    Keys are exchanged as raw 32-byte encodings.
    """

    # Constants
    KEY_SIZE = 32
    NONCE_SIZE = 12

    @staticmethod
    def generate_keypair() -> Tuple[bytes, bytes]:
        """
        Generate a recipient key pair.

        Returns:
            Tuple of (private_key, public_key), raw 32 bytes each
        """
        private_key = X25519PrivateKey.generate()
        private_bytes = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return private_bytes, public_bytes

    @classmethod
    def _derive_key(cls, shared_secret: bytes, ephemeral_public: bytes) -> bytes:
        return HKDF(
            algorithm=hashes.SHA256(),
            length=cls.KEY_SIZE,
            salt=ephemeral_public,
            info=HKDF_INFO,
        ).derive(shared_secret)

    @classmethod
    def seal(cls, recipient_public_key: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt ``plaintext`` to the recipient.

        Raises:
            EncryptionError: If the key or plaintext is invalid
        """
        if not isinstance(plaintext, bytes):
            raise EncryptionError("Plaintext must be bytes")
        try:
            recipient = X25519PublicKey.from_public_bytes(recipient_public_key)
        except (ValueError, TypeError) as e:
            raise EncryptionError(f"Invalid recipient public key: {e}")

        ephemeral = X25519PrivateKey.generate()
        ephemeral_public = ephemeral.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        key = cls._derive_key(ephemeral.exchange(recipient), ephemeral_public)
        nonce = os.urandom(cls.NONCE_SIZE)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, ephemeral_public)
        return ephemeral_public + nonce + ciphertext

    @classmethod
    def open(cls, recipient_private_key: bytes, sealed: bytes) -> bytes:
        """
        Decrypt a sealed memo.

        Raises:
            DecryptionError: If the payload is malformed, tampered with or
                sealed to another key
        """
        header = cls.KEY_SIZE + cls.NONCE_SIZE
        if not isinstance(sealed, bytes) or len(sealed) <= header:
            raise DecryptionError("Sealed memo is too short")

        ephemeral_public = sealed[: cls.KEY_SIZE]
        nonce = sealed[cls.KEY_SIZE : header]
        ciphertext = sealed[header:]

        try:
            private_key = X25519PrivateKey.from_private_bytes(recipient_private_key)
            ephemeral = X25519PublicKey.from_public_bytes(ephemeral_public)
            key = cls._derive_key(private_key.exchange(ephemeral), ephemeral_public)
            return AESGCM(key).decrypt(nonce, ciphertext, ephemeral_public)
        except InvalidTag:
            raise DecryptionError("Memo authentication failed")
        except (ValueError, TypeError) as e:
            raise DecryptionError(f"Failed to open memo: {e}")
