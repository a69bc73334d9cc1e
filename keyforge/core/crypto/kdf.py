import logging
import os
import struct
from typing import Optional

import bcrypt

from keyforge.core.utils.secure_buffer import BytesLike, SecretBuffer
from keyforge.exceptions import InvalidInput, KdfFailure, RandomSourceFailure
from keyforge.logger import KeyForgeLogger

KDF_NAME_BCRYPT = "bcrypt"
KDF_NAME_NONE = "none"
KDF_SALT_LENGTH = 16
KDF_ROUNDS = 16

_logger: Optional[KeyForgeLogger] = None


def logger() -> KeyForgeLogger:
    global _logger
    if _logger is None:
        _logger = logging.getLogger(__name__)
    return _logger


def random_bytes(length: int) -> bytes:
    try:
        return os.urandom(length)
    except (OSError, NotImplementedError) as e:
        logger().error(f"System random source failed: {e}")
        raise RandomSourceFailure(f"Failed to read {length} random bytes from the system random source.") from e


def generate_salt() -> bytes:
    return random_bytes(KDF_SALT_LENGTH)


def random_checkint() -> int:
    return struct.unpack(">I", random_bytes(4))[0]


def derive_key(passphrase: BytesLike, salt: BytesLike, rounds: int, output_length: int) -> SecretBuffer:
    """
    bcrypt-pbkdf key derivation as used by OpenSSH private key containers.

    Returns the derived key material (cipher key followed by IV) in a `SecretBuffer` the caller must wipe.
    Raises `KdfFailure` if the primitive fails; partially derived material is never returned.
    """
    if len(passphrase) == 0:
        raise InvalidInput("A non-empty passphrase is required for key derivation.")
    if rounds < 1 or output_length < 1:
        raise KdfFailure(f"Invalid bcrypt parameters (rounds={rounds}, length={output_length}).")
    try:
        # OpenSSH uses 16 rounds, below bcrypt's warning threshold.
        derived = bcrypt.kdf(
            password=bytes(passphrase),
            salt=bytes(salt),
            desired_key_bytes=output_length,
            rounds=rounds,
            ignore_few_rounds=True,
        )
    except (ValueError, TypeError) as e:
        raise KdfFailure(f"OpenSSH bcrypt key derivation failed: {e}") from e
    key_material = SecretBuffer(derived)
    del derived
    if len(key_material) != output_length:
        key_material.wipe()
        raise KdfFailure("OpenSSH bcrypt key derivation returned truncated key material.")
    return key_material
