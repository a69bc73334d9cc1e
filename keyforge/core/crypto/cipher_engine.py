"""
Symmetric primitives for OpenSSH private key containers: AES-256-CTR and the OpenSSH ChaCha20-Poly1305 variant.

The ChaCha20-Poly1305 construction matches the one OpenSSH applies to private keys: sequence number 0, no
associated data, a Poly1305 one-time key taken from the block-counter-0 keystream and the payload encrypted from
block counter 1. Only the first 32 bytes of the 64-byte key material are used.
"""
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.poly1305 import Poly1305

from keyforge.core.crypto.cipher_profiles import CIPHER_AES256_CTR, CIPHER_CHACHA20_POLY1305
from keyforge.core.utils.secure_buffer import BytesLike, SecretBuffer, secure_wipe
from keyforge.exceptions import CipherFailure, DecryptionFailed

CHACHA20_KEY_LENGTH = 32
POLY1305_KEY_LENGTH = 32
POLY1305_TAG_LENGTH = CIPHER_CHACHA20_POLY1305.auth_tag_length

# 16 byte ChaCha20 nonces: little-endian block counter first, then an all-zero nonce.
_CHACHA20_POLY_KEY_NONCE = bytes(16)
_CHACHA20_PAYLOAD_NONCE = (1).to_bytes(8, "little") + bytes(8)


def _aes256_ctr(data: BytesLike, key: BytesLike, iv: BytesLike) -> bytearray:
    if len(key) != CIPHER_AES256_CTR.key_length or len(iv) != CIPHER_AES256_CTR.iv_length:
        raise CipherFailure("AES-256-CTR requires a 32 byte key and a 16 byte IV.")
    try:
        context = Cipher(algorithms.AES(bytes(key)), modes.CTR(bytes(iv))).encryptor()
        output = bytearray(context.update(bytes(data)))
        context.finalize()
    except (ValueError, TypeError) as e:
        raise CipherFailure(f"AES-256-CTR operation failed: {e}") from e
    if len(output) != len(data):
        secure_wipe(output)
        raise CipherFailure("AES-256-CTR produced a short output.")
    return output


def encrypt_aes256_ctr(plaintext: BytesLike, key: BytesLike, iv: BytesLike) -> bytearray:
    """
    Counter-mode encryption without padding; the ciphertext has the same length as the plaintext.
    """
    return _aes256_ctr(plaintext, key, iv)


def decrypt_aes256_ctr(ciphertext: BytesLike, key: BytesLike, iv: BytesLike) -> bytearray:
    return _aes256_ctr(ciphertext, key, iv)


def _chacha20_keystream_xor(data: BytesLike, key: BytesLike, nonce: bytes) -> bytearray:
    try:
        context = Cipher(algorithms.ChaCha20(bytes(key), nonce), mode=None).encryptor()
        output = bytearray(context.update(bytes(data)))
        context.finalize()
    except (ValueError, TypeError) as e:
        raise CipherFailure(f"ChaCha20 keystream generation failed: {e}") from e
    return output


def _poly1305_key(key_material: BytesLike) -> SecretBuffer:
    if len(key_material) < CHACHA20_KEY_LENGTH:
        raise CipherFailure("ChaCha20-Poly1305 requires at least 32 bytes of key material.")
    key = memoryview(key_material)[:CHACHA20_KEY_LENGTH]
    keystream = _chacha20_keystream_xor(bytes(POLY1305_KEY_LENGTH), key, _CHACHA20_POLY_KEY_NONCE)
    poly_key = SecretBuffer(keystream)
    secure_wipe(keystream)
    return poly_key


def encrypt_chacha20_poly1305_openssh(plaintext: BytesLike, key_material: BytesLike) -> bytearray:
    """
    Returns ciphertext || 16 byte Poly1305 tag computed over the ciphertext only.
    """
    with _poly1305_key(key_material) as poly_key:
        output = _chacha20_keystream_xor(
            plaintext, memoryview(key_material)[:CHACHA20_KEY_LENGTH], _CHACHA20_PAYLOAD_NONCE)
        try:
            tag = Poly1305.generate_tag(bytes(poly_key), bytes(output))
        except (ValueError, TypeError) as e:
            secure_wipe(output)
            raise CipherFailure(f"Poly1305 tag computation failed: {e}") from e
    output.extend(tag)
    return output


def decrypt_chacha20_poly1305_openssh(ciphertext_and_tag: BytesLike, key_material: BytesLike) -> bytearray:
    """
    Verifies the trailing Poly1305 tag, then decrypts. A tag mismatch means the wrong passphrase or a corrupted
    container and raises `DecryptionFailed`.
    """
    if len(ciphertext_and_tag) < POLY1305_TAG_LENGTH:
        raise DecryptionFailed("ChaCha20-Poly1305 ciphertext is shorter than its authentication tag.")
    data = memoryview(ciphertext_and_tag)
    ciphertext = bytes(data[:-POLY1305_TAG_LENGTH])
    tag = bytes(data[-POLY1305_TAG_LENGTH:])
    with _poly1305_key(key_material) as poly_key:
        try:
            Poly1305.verify_tag(bytes(poly_key), ciphertext, tag)
        except InvalidSignature:
            raise DecryptionFailed("Incorrect passphrase: the ChaCha20-Poly1305 tag does not match.") from None
        except (ValueError, TypeError) as e:
            raise CipherFailure(f"Poly1305 tag verification failed: {e}") from e
    return _chacha20_keystream_xor(ciphertext, memoryview(key_material)[:CHACHA20_KEY_LENGTH],
                                   _CHACHA20_PAYLOAD_NONCE)
