"""Archive encryption for remote project copies.

Keys are derived with scrypt from a passphrase and a per-project hex salt.
Archives are AES-256-GCM encrypted and laid out as ``iv | tag | ciphertext``.
"""

import os
import secrets
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..constants import (
    ENCRYPTION_IV_LENGTH,
    ENCRYPTION_KEY_LENGTH,
    ENCRYPTION_TAG_LENGTH,
    SCRYPT_N,
    SCRYPT_P,
    SCRYPT_R,
)


class EncryptionError(Exception):
    """Encryption or decryption failed."""


def generate_salt() -> str:
    return secrets.token_hex(16)


def derive_key(passphrase: str, salt: str) -> bytes:
    """Derive a 256-bit key from a passphrase and a hex salt."""
    try:
        salt_bytes = bytes.fromhex(salt)
    except ValueError as e:
        raise EncryptionError("Encryption salt is not valid hex") from e
    kdf = Scrypt(salt=salt_bytes, length=ENCRYPTION_KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt_bytes(data: bytes, key: bytes) -> bytes:
    iv = os.urandom(ENCRYPTION_IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, data, None)
    # AESGCM appends the tag; store it ahead of the ciphertext.
    ciphertext, tag = sealed[:-ENCRYPTION_TAG_LENGTH], sealed[-ENCRYPTION_TAG_LENGTH:]
    return iv + tag + ciphertext


def decrypt_bytes(payload: bytes, key: bytes) -> bytes:
    """Reverse encrypt_bytes.

    Raises:
        EncryptionError: If the payload is truncated or the key is wrong.
    """
    header = ENCRYPTION_IV_LENGTH + ENCRYPTION_TAG_LENGTH
    if len(payload) < header:
        raise EncryptionError("Encrypted payload is truncated")
    iv = payload[:ENCRYPTION_IV_LENGTH]
    tag = payload[ENCRYPTION_IV_LENGTH:header]
    ciphertext = payload[header:]
    try:
        return AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise EncryptionError("Decryption failed: wrong passphrase or corrupted archive") from e


def encrypt_file(source: Path, destination: Path, key: bytes) -> None:
    destination.write_bytes(encrypt_bytes(source.read_bytes(), key))


def decrypt_file(source: Path, destination: Path, key: bytes) -> None:
    destination.write_bytes(decrypt_bytes(source.read_bytes(), key))
