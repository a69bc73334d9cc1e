"""
Common data types for KeyForge.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class KeyFormat(Enum):
    """Private key armor formats."""
    OPENSSH = "openssh"
    PEM = "pem"
    PKCS8 = "pkcs8"

    def __str__(self):
        return self.value


class PrivateKeyCipher(Enum):
    """Ciphers an OpenSSH private key container may declare."""
    NONE = "none"
    AES256_CTR = "aes256-ctr"
    CHACHA20_POLY1305 = "chacha20-poly1305@openssh.com"

    def __str__(self):
        return self.value

    @classmethod
    def from_cipher_name(cls, cipher_name: str) -> Optional["PrivateKeyCipher"]:
        try:
            return cls(cipher_name)
        except ValueError:
            return None


class KeyAlgorithm(Enum):
    """Algorithms a new key pair can be generated with."""
    RSA = "rsa"
    ED25519 = "ed25519"
    ECDSA_P256 = "ecdsa-p256"
    ECDSA_P384 = "ecdsa-p384"
    ECDSA_P521 = "ecdsa-p521"
    DSA = "dsa"

    def __str__(self):
        return self.value


class KeyType(Enum):
    """Key families reported after import."""
    RSA = "rsa"
    ED25519 = "ed25519"
    ECDSA = "ecdsa"
    DSA = "dsa"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class CipherDetection:
    """Result of inspecting armored key text without a passphrase."""
    key_format: KeyFormat
    cipher: PrivateKeyCipher
    passphrase_required: bool
    cipher_name: Optional[str] = None


@dataclass(frozen=True)
class KeyFingerprints:
    sha256: str
    md5: str
