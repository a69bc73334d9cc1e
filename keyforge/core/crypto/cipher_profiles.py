from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from keyforge.core.data_type.common import PrivateKeyCipher
from keyforge.exceptions import UnsupportedAlgorithm


@dataclass(frozen=True)
class CipherProfile:
    name: str
    block_size: int
    key_length: int
    iv_length: int
    auth_tag_length: int

    @property
    def key_material_length(self) -> int:
        return self.key_length + self.iv_length

    @property
    def encrypts(self) -> bool:
        return self.key_length > 0


CIPHER_NONE = CipherProfile(
    name=PrivateKeyCipher.NONE.value,
    block_size=8,
    key_length=0,
    iv_length=0,
    auth_tag_length=0,
)

CIPHER_AES256_CTR = CipherProfile(
    name=PrivateKeyCipher.AES256_CTR.value,
    block_size=16,
    key_length=32,
    iv_length=16,
    auth_tag_length=0,
)

# 64 bytes of key material: the first half keys the payload stream, the second half is the
# length-header key of the transport variant and is unused for private keys.
CIPHER_CHACHA20_POLY1305 = CipherProfile(
    name=PrivateKeyCipher.CHACHA20_POLY1305.value,
    block_size=8,
    key_length=64,
    iv_length=0,
    auth_tag_length=16,
)

CIPHER_PROFILES: Mapping[str, CipherProfile] = MappingProxyType({
    profile.name: profile for profile in (CIPHER_NONE, CIPHER_AES256_CTR, CIPHER_CHACHA20_POLY1305)
})


def get_cipher_profile(cipher_name: str) -> CipherProfile:
    try:
        return CIPHER_PROFILES[cipher_name]
    except KeyError:
        raise UnsupportedAlgorithm(f"Unsupported OpenSSH cipher: {cipher_name}") from None


def profile_for_encryption(requested_cipher: PrivateKeyCipher) -> CipherProfile:
    """
    Cipher used when a passphrase is present. ChaCha20-Poly1305 is honoured; anything else falls back to AES-256-CTR.
    """
    if requested_cipher == PrivateKeyCipher.CHACHA20_POLY1305:
        return CIPHER_CHACHA20_POLY1305
    return CIPHER_AES256_CTR
