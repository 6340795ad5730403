"""Password-protected credential vault.

A vault file is a single AES-256-GCM message keyed by Argon2id:

    [0, 16)    salt, random per encryption
    [16, 28)   nonce, random per encryption
    [28, end)  ciphertext followed by the 16-byte GCM tag

There is no version byte and no re-keying; one file holds one profile.
"""

from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path
from typing import Union

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.errors import AuthenticationFailure, CryptoError, VaultError
from core.models import UserProfile

LOGGER = logging.getLogger(__name__)

SALT_SIZE = 16
NONCE_SIZE = 12
KEY_SIZE = 32
TAG_SIZE = 16
HEADER_SIZE = SALT_SIZE + NONCE_SIZE

# Argon2 reference defaults (m=19 MiB, t=2, p=1); vaults written with other
# work factors will not open.
ARGON2_TIME_COST = 2
ARGON2_MEMORY_COST = 19 * 1024
ARGON2_PARALLELISM = 1

DEFAULT_SUFFIX = ".vault"

PathLike = Union[str, "os.PathLike[str]"]


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte AES key from a password with Argon2id."""

    if len(salt) != SALT_SIZE:
        raise CryptoError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")
    try:
        return hash_secret_raw(
            secret=password.encode("utf-8"),
            salt=bytes(salt),
            time_cost=ARGON2_TIME_COST,
            memory_cost=ARGON2_MEMORY_COST,
            parallelism=ARGON2_PARALLELISM,
            hash_len=KEY_SIZE,
            type=Type.ID,
        )
    except HashingError as exc:
        raise CryptoError(f"Key derivation failed: {exc}") from exc


def encrypt(plaintext: bytes, password: str) -> bytes:
    """Encrypt ``plaintext`` into a vault blob with a fresh salt and nonce."""

    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)
    key = derive_key(password, salt)
    try:
        cipher = AESGCM(key)
    except ValueError as exc:
        raise CryptoError(f"Cipher setup failed: {exc}") from exc
    return salt + nonce + cipher.encrypt(nonce, plaintext, None)


def decrypt(blob: bytes, password: str) -> bytes:
    """Decrypt a vault blob.

    Raises AuthenticationFailure for a wrong password or a truncated or
    corrupted blob; nothing is returned unless the tag verifies.
    """

    if len(blob) < HEADER_SIZE + TAG_SIZE:
        raise AuthenticationFailure("Vault is truncated")

    salt = blob[:SALT_SIZE]
    nonce = blob[SALT_SIZE:HEADER_SIZE]
    sealed = blob[HEADER_SIZE:]

    key = derive_key(password, salt)
    try:
        cipher = AESGCM(key)
    except ValueError as exc:
        raise CryptoError(f"Cipher setup failed: {exc}") from exc
    try:
        return cipher.decrypt(nonce, sealed, None)
    except InvalidTag as exc:
        raise AuthenticationFailure("Wrong password or corrupted vault") from exc


def vault_path(directory: PathLike, login: str, suffix: str = DEFAULT_SUFFIX) -> Path:
    """Return the vault file used for a login name."""

    return Path(directory) / f"{login}{suffix}"


def save_profile(profile: UserProfile, path: PathLike, password: str) -> None:
    """Encrypt a profile and write it atomically, readable by the owner only."""

    target = Path(path)
    blob = encrypt(profile.to_json().encode("utf-8"), password)

    tmp = target.with_name(f".{target.name}.tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(blob)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    LOGGER.info("Encrypted profile saved as %s", target)


def load_profile(path: PathLike, password: str) -> UserProfile:
    """Read, decrypt and decode a profile."""

    source = Path(path)
    plaintext = decrypt(source.read_bytes(), password)
    try:
        raw = plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise VaultError("Vault does not contain a text profile") from exc
    profile = UserProfile.from_json(raw)
    LOGGER.info("Decrypted profile %s", source)
    return profile
