from typing import Union

from pydantic import Field, field_validator

from keyforge.client.config.config_data_types import BaseClientModel
from keyforge.client.config.config_validators import (
    validate_key_algorithm,
    validate_key_format,
    validate_log_level,
    validate_private_key_cipher,
    validate_rsa_key_size,
)
from keyforge.core.data_type.common import KeyAlgorithm, KeyFormat, PrivateKeyCipher


class ClientConfigMap(BaseClientModel):
    log_level: str = Field(
        default="INFO",
        json_schema_extra={"prompt": lambda cm: "Enter the log level (DEBUG, KEY_EVENT, INFO, WARNING, ERROR)"},
    )
    default_key_algorithm: KeyAlgorithm = Field(
        default=KeyAlgorithm.ED25519,
        json_schema_extra={"prompt": lambda cm: "Which algorithm should new keys use by default?"},
    )
    default_rsa_key_size: int = Field(
        default=3072,
        json_schema_extra={"prompt": lambda cm: "Enter the RSA key size in bits (2048, 3072, 4096 or 8192)"},
    )
    default_private_key_format: KeyFormat = Field(
        default=KeyFormat.OPENSSH,
        json_schema_extra={"prompt": lambda cm: "Which format should private keys be written in (openssh/pem/pkcs8)?"},
    )
    default_private_key_cipher: PrivateKeyCipher = Field(
        default=PrivateKeyCipher.AES256_CTR,
        json_schema_extra={"prompt": lambda cm: "Which cipher should protect passphrase-encrypted OpenSSH keys?"},
    )

    # === specific validations ===

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str):
        """Used for client-friendly error output."""
        ret = validate_log_level(v)
        if ret is not None:
            raise ValueError(ret)
        return str(v).upper()

    @field_validator("default_key_algorithm", mode="before")
    @classmethod
    def validate_default_key_algorithm(cls, v: Union[str, KeyAlgorithm]):
        """Used for client-friendly error output."""
        ret = validate_key_algorithm(v)
        if ret is not None:
            raise ValueError(ret)
        return v

    @field_validator("default_rsa_key_size", mode="before")
    @classmethod
    def validate_default_rsa_key_size(cls, v: Union[str, int]):
        """Used for client-friendly error output."""
        ret = validate_rsa_key_size(v)
        if ret is not None:
            raise ValueError(ret)
        return int(v)

    @field_validator("default_private_key_format", mode="before")
    @classmethod
    def validate_default_private_key_format(cls, v: Union[str, KeyFormat]):
        """Used for client-friendly error output."""
        ret = validate_key_format(v)
        if ret is not None:
            raise ValueError(ret)
        return v

    @field_validator("default_private_key_cipher", mode="before")
    @classmethod
    def validate_default_private_key_cipher(cls, v: Union[str, PrivateKeyCipher]):
        """Used for client-friendly error output."""
        ret = validate_private_key_cipher(v)
        if ret is not None:
            raise ValueError(ret)
        return v
