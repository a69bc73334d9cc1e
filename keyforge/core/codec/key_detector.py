"""
Classifies armored private key text without a passphrase: which armor it uses and whether opening it needs one.
"""
from typing import Union

from keyforge.core.codec.openssh_container import OPENSSH_KEY_MAGIC, dearmor
from keyforge.core.codec.ssh_buffer import SSHBufferReader
from keyforge.core.data_type.common import CipherDetection, KeyFormat, PrivateKeyCipher
from keyforge.exceptions import MalformedContainer

OPENSSH_MARKER = "BEGIN OPENSSH PRIVATE KEY"
PKCS8_MARKERS = ("BEGIN PRIVATE KEY", "BEGIN ENCRYPTED PRIVATE KEY")
PEM_ENCRYPTED_MARKERS = ("BEGIN ENCRYPTED PRIVATE KEY", "Proc-Type: 4,ENCRYPTED", "DEK-Info:")
PUBLIC_KEY_PREFIXES = ("ssh-", "ecdsa-", "sk-")


def _as_text(armored_text: Union[str, bytes]) -> str:
    if isinstance(armored_text, bytes):
        armored_text = armored_text.decode("utf-8", errors="replace")
    return armored_text.strip()


def detect_format(armored_text: Union[str, bytes]) -> KeyFormat:
    text = _as_text(armored_text)
    if OPENSSH_MARKER in text:
        return KeyFormat.OPENSSH
    if any(marker in text for marker in PKCS8_MARKERS):
        return KeyFormat.PKCS8
    return KeyFormat.PEM


def _detect_openssh_cipher(text: str) -> CipherDetection:
    data = dearmor(text)
    if bytes(data[:len(OPENSSH_KEY_MAGIC)]) != OPENSSH_KEY_MAGIC:
        raise MalformedContainer("Missing openssh-key-v1 magic.")
    reader = SSHBufferReader(data)
    reader.get_raw(len(OPENSSH_KEY_MAGIC))
    cipher_name = reader.get_text()
    if not cipher_name:
        raise MalformedContainer("OpenSSH container declares an empty cipher name.")

    cipher = PrivateKeyCipher.from_cipher_name(cipher_name)
    if cipher is None:
        # Unknown cipher: still encrypted, so callers must ask for a passphrase.
        return CipherDetection(KeyFormat.OPENSSH, PrivateKeyCipher.NONE, True, cipher_name)
    return CipherDetection(KeyFormat.OPENSSH, cipher, cipher != PrivateKeyCipher.NONE, cipher_name)


def _detect_pem_cipher(key_format: KeyFormat, text: str) -> CipherDetection:
    encrypted = any(marker in text for marker in PEM_ENCRYPTED_MARKERS)
    cipher = PrivateKeyCipher.NONE
    if encrypted:
        if "AES-256-CTR" in text:
            cipher = PrivateKeyCipher.AES256_CTR
        elif "ChaCha20" in text:
            cipher = PrivateKeyCipher.CHACHA20_POLY1305
    return CipherDetection(key_format, cipher, encrypted)


def detect_cipher(key_format: KeyFormat, armored_text: Union[str, bytes]) -> CipherDetection:
    """
    Reports the cipher a private key is protected with and whether a passphrase is needed to open it.

    OpenSSH containers are decoded far enough to read the declared cipher name and raise `MalformedContainer` when
    that fails. For PEM and PKCS#8 the answer is a substring heuristic and only a hint for prompting.
    """
    text = _as_text(armored_text)
    if key_format == KeyFormat.OPENSSH:
        return _detect_openssh_cipher(text)
    return _detect_pem_cipher(key_format, text)


def looks_like_private_key(armored_text: Union[str, bytes]) -> bool:
    text = _as_text(armored_text)
    return "PRIVATE KEY-----" in text or OPENSSH_MARKER in text


def looks_like_public_key(armored_text: Union[str, bytes]) -> bool:
    return _as_text(armored_text).startswith(PUBLIC_KEY_PREFIXES)
