"""Encryption helpers for the credential store.

Values are sealed with Fernet using a key derived from the master key via
PBKDF2.  Every sealed value carries its own random salt, stored in front of
the Fernet token as ``<urlsafe-b64 salt>$<fernet token>``.
"""

import base64
import os

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PBKDF2_ITERATIONS = 480_000
SALT_BYTES = 16
_SEPARATOR = "$"


def derive_key(master_key: str, salt: bytes) -> bytes:
    """Derive a Fernet-compatible key from *master_key* and *salt*."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(master_key.encode("utf-8")))


def seal(plaintext: str, master_key: str) -> str:
    """Encrypt *plaintext* into a self-contained string with a fresh salt."""
    salt = os.urandom(SALT_BYTES)
    token = Fernet(derive_key(master_key, salt)).encrypt(plaintext.encode("utf-8"))
    encoded_salt = base64.urlsafe_b64encode(salt).decode("ascii")
    return f"{encoded_salt}{_SEPARATOR}{token.decode('ascii')}"


def unseal(sealed: str, master_key: str) -> str:
    """Decrypt a value produced by :func:`seal`.

    Raises:
        ValueError: If *sealed* is not in the expected format.
        cryptography.fernet.InvalidToken: If the key is wrong or data is corrupt.
    """
    encoded_salt, sep, token = sealed.partition(_SEPARATOR)
    if not sep or not token:
        raise ValueError("Sealed credential is missing its salt prefix")
    salt = base64.urlsafe_b64decode(encoded_salt.encode("ascii"))
    return Fernet(derive_key(master_key, salt)).decrypt(token.encode("ascii")).decode(
        "utf-8"
    )
