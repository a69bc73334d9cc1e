from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from keyforge.core.data_type.common import KeyAlgorithm, KeyFormat, KeyType, PrivateKeyCipher


class KeyForgeModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class KeyGenerationRequest(KeyForgeModel):
    label: Optional[str] = None
    algorithm: KeyAlgorithm = KeyAlgorithm.ED25519
    rsa_key_size: int = Field(default=3072, ge=1024)
    comment: Optional[str] = None
    private_key_format: KeyFormat = KeyFormat.OPENSSH
    cipher: PrivateKeyCipher = PrivateKeyCipher.AES256_CTR
    passphrase: Optional[SecretStr] = None


class KeyImportRequest(KeyForgeModel):
    key_text: SecretStr
    passphrase: Optional[SecretStr] = None
    label: Optional[str] = None
    comment: Optional[str] = None


class KeyConversionRequest(KeyForgeModel):
    private_key: SecretStr
    current_passphrase: Optional[SecretStr] = None
    output_format: KeyFormat = KeyFormat.OPENSSH
    output_passphrase: Optional[SecretStr] = None
    output_cipher: PrivateKeyCipher = PrivateKeyCipher.AES256_CTR
    comment: Optional[str] = None


class GeneratedKey(KeyForgeModel):
    label: str
    key_type: KeyType
    algorithm: KeyAlgorithm
    bit_length: int
    comment: Optional[str] = None
    private_key: SecretStr
    private_key_format: KeyFormat
    cipher: PrivateKeyCipher
    public_key: str
    sha256_fingerprint: str
    md5_fingerprint: str


class ImportedKey(KeyForgeModel):
    label: str
    key_type: KeyType
    bit_length: int
    comment: Optional[str] = None
    public_key: str
    private_key: Optional[SecretStr] = None
    private_key_format: Optional[KeyFormat] = None
    cipher: PrivateKeyCipher = PrivateKeyCipher.NONE
    passphrase_protected: bool = False
    sha256_fingerprint: str
    md5_fingerprint: str

    @property
    def has_private_key(self) -> bool:
        return self.private_key is not None


class ConvertedKey(KeyForgeModel):
    key_type: KeyType
    bit_length: int
    private_key: SecretStr
    private_key_format: KeyFormat
    cipher: PrivateKeyCipher
    public_key: str
    sha256_fingerprint: str
    md5_fingerprint: str
