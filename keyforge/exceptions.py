"""
Exceptions used in the KeyForge codebase.

Every failure raised by the codec, the cipher engine and the conversion pipeline is one of the classes below, so
callers can tell a wrong passphrase from a corrupt container without parsing messages.
"""
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    INVALID_INPUT = "InvalidInput"
    UNSUPPORTED_ALGORITHM = "UnsupportedAlgorithm"
    UNSUPPORTED_COMBINATION = "UnsupportedCombination"
    MALFORMED_CONTAINER = "MalformedContainer"
    PASSPHRASE_REQUIRED = "PassphraseRequired"
    DECRYPTION_FAILED = "DecryptionFailed"
    KDF_FAILURE = "KdfFailure"
    CIPHER_FAILURE = "CipherFailure"
    RANDOM_SOURCE_FAILURE = "RandomSourceFailure"
    ENCODING_FAILURE = "EncodingFailure"
    ALLOCATION_FAILURE = "AllocationFailure"
    BUFFER_TOO_SMALL = "BufferTooSmall"

    def __str__(self):
        return self.value


class KeyForgeBaseException(Exception):
    """
    Most errors raised in KeyForge should inherit this class so we can
    differentiate them from errors that come from dependencies.
    """
    kind: ErrorKind = ErrorKind.INVALID_INPUT
    default_message: str = "Key operation failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(KeyForgeBaseException):
    """
    A required argument is missing or empty, or the key text could not be tokenized
    """
    kind = ErrorKind.INVALID_INPUT
    default_message = "Invalid key input."


class UnsupportedAlgorithm(KeyForgeBaseException):
    """
    The key type, cipher or KDF is not implemented
    """
    kind = ErrorKind.UNSUPPORTED_ALGORITHM
    default_message = "Unsupported key algorithm."


class UnsupportedCombination(UnsupportedAlgorithm):
    """
    The requested output format cannot carry the requested protection (e.g. passphrase-protected PKCS#8)
    """
    kind = ErrorKind.UNSUPPORTED_COMBINATION
    default_message = "Unsupported format and passphrase combination."


class MalformedContainer(KeyForgeBaseException):
    """
    The OpenSSH binary container fails the magic check, a length-prefix bounds check, or is truncated
    """
    kind = ErrorKind.MALFORMED_CONTAINER
    default_message = "Malformed OpenSSH private key container."


class PassphraseRequired(KeyForgeBaseException):
    """
    The key is encrypted and no passphrase was supplied; the caller should prompt and retry
    """
    kind = ErrorKind.PASSPHRASE_REQUIRED
    default_message = "This private key is encrypted. Provide a passphrase to import it."


class DecryptionFailed(KeyForgeBaseException):
    """
    A passphrase was supplied but the key could not be decrypted with it
    """
    kind = ErrorKind.DECRYPTION_FAILED
    default_message = "Failed to decrypt private key. Verify the key format and passphrase."


class KdfFailure(KeyForgeBaseException):
    kind = ErrorKind.KDF_FAILURE
    default_message = "OpenSSH bcrypt key derivation failed."


class CipherFailure(KeyForgeBaseException):
    kind = ErrorKind.CIPHER_FAILURE
    default_message = "Symmetric cipher operation failed."


class RandomSourceFailure(KeyForgeBaseException):
    kind = ErrorKind.RANDOM_SOURCE_FAILURE
    default_message = "The system random source is unavailable."


class EncodingFailure(KeyForgeBaseException):
    kind = ErrorKind.ENCODING_FAILURE
    default_message = "Failed to encode OpenSSH private key output."


class AllocationFailure(KeyForgeBaseException):
    kind = ErrorKind.ALLOCATION_FAILURE
    default_message = "Failed to allocate a key buffer."


class BufferTooSmall(KeyForgeBaseException):
    """
    The caller-provided output buffer cannot hold the result; call again with at least `required_size` bytes
    """
    kind = ErrorKind.BUFFER_TOO_SMALL
    default_message = "Output exceeded buffer size."

    def __init__(self, required_size: int, message: Optional[str] = None):
        self.required_size = required_size
        super().__init__(message or f"Output exceeded buffer size ({required_size} bytes required).")
