"""
Validator functions for KeyForge configuration values. Each takes a raw value and returns an error message when it is
invalid, or None when it is acceptable.
"""
from typing import Optional

from keyforge.core.data_type.common import KeyAlgorithm, KeyFormat, PrivateKeyCipher

RSA_KEY_SIZES = (2048, 3072, 4096, 8192)
LOG_LEVELS = ("DEBUG", "KEY_EVENT", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_int(value: str, min_value: int = None, max_value: int = None) -> Optional[str]:
    """
    Parse an int value from a string. This value can also be clamped.
    """
    try:
        int_value = int(value)
    except (TypeError, ValueError):
        return f"{value} is not in integer format."
    if min_value is not None and int_value < min_value:
        return f"Value cannot be less than {min_value}."
    if max_value is not None and int_value > max_value:
        return f"Value cannot be more than {max_value}."


def validate_rsa_key_size(value) -> Optional[str]:
    error = validate_int(value)
    if error is not None:
        return error
    if int(value) not in RSA_KEY_SIZES:
        return f"Invalid RSA key size, please choose value from {RSA_KEY_SIZES}"


def validate_log_level(value: str) -> Optional[str]:
    if str(value).upper() not in LOG_LEVELS:
        return f"Invalid log level, please choose value from {LOG_LEVELS}"


def validate_key_algorithm(value: str) -> Optional[str]:
    valid_values = tuple(algorithm.value for algorithm in KeyAlgorithm)
    if str(value) not in valid_values:
        return f"Invalid key algorithm, please choose value from {valid_values}"


def validate_key_format(value: str) -> Optional[str]:
    valid_values = tuple(key_format.value for key_format in KeyFormat)
    if str(value) not in valid_values:
        return f"Invalid private key format, please choose value from {valid_values}"


def validate_private_key_cipher(value: str) -> Optional[str]:
    valid_values = (PrivateKeyCipher.AES256_CTR.value, PrivateKeyCipher.CHACHA20_POLY1305.value)
    if str(value) not in valid_values:
        return f"Invalid private key cipher, please choose value from {valid_values}"
