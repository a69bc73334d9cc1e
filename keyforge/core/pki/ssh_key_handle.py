"""
Adapter over asyncssh: the opaque signing key handle and the conversions KeyForge needs from it.
"""
import base64
import hashlib
import logging
from typing import Dict, Optional, Tuple, Union

import asyncssh
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from keyforge.core.codec.openssh_container import (
    PrivateSection,
    decrypt_private_section,
    encode_private_key,
    parse_container,
)
from keyforge.core.codec.ssh_buffer import SSHBufferReader
from keyforge.core.data_type.common import KeyAlgorithm, KeyFingerprints, KeyFormat, KeyType
from keyforge.exceptions import (
    DecryptionFailed,
    EncodingFailure,
    InvalidInput,
    MalformedContainer,
    PassphraseRequired,
    UnsupportedAlgorithm,
)
from keyforge.logger import KeyForgeLogger

GENERATION_ALGORITHMS: Dict[KeyAlgorithm, str] = {
    KeyAlgorithm.RSA: "ssh-rsa",
    KeyAlgorithm.ED25519: "ssh-ed25519",
    KeyAlgorithm.ECDSA_P256: "ecdsa-sha2-nistp256",
    KeyAlgorithm.ECDSA_P384: "ecdsa-sha2-nistp384",
    KeyAlgorithm.ECDSA_P521: "ecdsa-sha2-nistp521",
    KeyAlgorithm.DSA: "ssh-dss",
}

# SSH key type string -> (key family, bit length when it is fixed by the type)
KNOWN_PUBLIC_KEY_TYPES: Dict[str, Tuple[KeyType, Optional[int]]] = {
    "ssh-rsa": (KeyType.RSA, None),
    "ssh-ed25519": (KeyType.ED25519, 256),
    "ecdsa-sha2-nistp256": (KeyType.ECDSA, 256),
    "ecdsa-sha2-nistp384": (KeyType.ECDSA, 384),
    "ecdsa-sha2-nistp521": (KeyType.ECDSA, 521),
    "ssh-dss": (KeyType.DSA, None),
}

_PEM_EXPORT_FORMAT = "pkcs1-pem"
_PKCS8_EXPORT_FORMAT = "pkcs8-pem"
_OPENSSH_EXPORT_FORMAT = "openssh"


def _mpint_bit_length(value: memoryview) -> int:
    return int.from_bytes(bytes(value), "big").bit_length()


def public_key_type(public_key_blob: bytes) -> str:
    return SSHBufferReader(public_key_blob).get_text()


def public_key_bit_length(public_key_blob: bytes) -> int:
    """
    Bit length of the key described by an SSH public key blob: the RSA modulus, the DSA prime, or the curve size.
    """
    reader = SSHBufferReader(public_key_blob)
    key_type = reader.get_text()
    if key_type not in KNOWN_PUBLIC_KEY_TYPES:
        raise UnsupportedAlgorithm("Unsupported public key type.")
    _, fixed_bits = KNOWN_PUBLIC_KEY_TYPES[key_type]
    if fixed_bits is not None:
        return fixed_bits
    if key_type == "ssh-rsa":
        reader.get_string()  # e
        return _mpint_bit_length(reader.get_string())
    return _mpint_bit_length(reader.get_string())  # DSA p


def fingerprints_for_blob(public_key_blob: bytes) -> KeyFingerprints:
    sha256 = base64.b64encode(hashlib.sha256(public_key_blob).digest()).decode("ascii").rstrip("=")
    md5 = hashlib.md5(public_key_blob).hexdigest()
    return KeyFingerprints(
        sha256=f"SHA256:{sha256}",
        md5="MD5:" + ":".join(md5[i:i + 2] for i in range(0, len(md5), 2)),
    )


def normalize_comment(comment: Optional[str]) -> Optional[str]:
    if comment is None:
        return None
    normalized = " ".join(comment.split())
    return normalized or None


def format_public_key_line(public_key_blob: bytes, comment: Optional[str] = None) -> str:
    line = f"{public_key_type(public_key_blob)} {base64.b64encode(public_key_blob).decode('ascii')}"
    comment = normalize_comment(comment)
    return f"{line} {comment}" if comment else line


def parse_public_key_line(text: str) -> Tuple[str, bytes, Optional[str]]:
    """
    Splits `type base64 [comment]` and checks the blob against the declared type.
    """
    tokens = text.strip().split()
    if len(tokens) < 2:
        raise InvalidInput("Public key must be in OpenSSH format: '<type> <base64> [comment]'.")
    key_type, encoded_blob = tokens[0], tokens[1]
    if key_type not in KNOWN_PUBLIC_KEY_TYPES:
        raise UnsupportedAlgorithm("Unsupported public key type.")
    try:
        blob = base64.b64decode(encoded_blob, validate=True)
    except ValueError:
        raise InvalidInput("Public key data is not valid base64.") from None
    try:
        blob_key_type = public_key_type(blob)
    except MalformedContainer:
        raise InvalidInput("Public key data is truncated.") from None
    if blob_key_type != key_type:
        raise InvalidInput("Public key type does not match the encoded key data.")
    comment = " ".join(tokens[2:]) or None
    return key_type, blob, comment


class SigningKeyHandle:
    """
    Owns one asyncssh private key. The handle is not copyable; use it as a context manager so the reference to the
    underlying key is dropped when the block exits.
    """
    _logger: Optional[KeyForgeLogger] = None

    @classmethod
    def logger(cls) -> KeyForgeLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(KeyForgeLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, ssh_key: asyncssh.SSHKey):
        self._ssh_key: Optional[asyncssh.SSHKey] = ssh_key

    def __enter__(self) -> "SigningKeyHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __copy__(self):
        raise TypeError("SigningKeyHandle cannot be copied.")

    def __deepcopy__(self, memo):
        raise TypeError("SigningKeyHandle cannot be copied.")

    def __repr__(self) -> str:
        state = "closed" if self._ssh_key is None else self.key_type_name
        return f"SigningKeyHandle({state})"

    @property
    def ssh_key(self) -> asyncssh.SSHKey:
        if self._ssh_key is None:
            raise InvalidInput("The signing key handle has been closed.")
        return self._ssh_key

    def close(self):
        self._ssh_key = None

    @classmethod
    def generate(cls, algorithm: KeyAlgorithm, rsa_key_size: int = 3072,
                 comment: Optional[str] = None) -> "SigningKeyHandle":
        alg_name = GENERATION_ALGORITHMS.get(algorithm)
        if alg_name is None:
            raise UnsupportedAlgorithm(f"Unsupported key algorithm: {algorithm}")
        kwargs = {"key_size": rsa_key_size} if algorithm == KeyAlgorithm.RSA else {}
        try:
            ssh_key = asyncssh.generate_private_key(alg_name, comment=normalize_comment(comment), **kwargs)
        except asyncssh.KeyGenerationError as e:
            raise UnsupportedAlgorithm(f"Failed to generate {algorithm} key: {e}") from e
        except ValueError as e:
            raise InvalidInput(f"Invalid key generation parameters: {e}") from e
        cls.logger().debug(f"Generated {alg_name} key.")
        return cls(ssh_key)

    @classmethod
    def import_private_key(cls, private_key_text: str, passphrase: Optional[str] = None) -> "SigningKeyHandle":
        """
        Decrypts private key text in any armor asyncssh reads. Raises `PassphraseRequired` when the key is encrypted
        and no passphrase was given, and `DecryptionFailed` when it cannot be opened with the one that was.
        """
        try:
            ssh_key = asyncssh.import_private_key(private_key_text, passphrase or None)
        except asyncssh.KeyEncryptionError as e:
            raise DecryptionFailed("Failed to import private key. Verify the key format and passphrase.") from e
        except asyncssh.KeyImportError as e:
            if not passphrase and "passphrase" in str(e).lower():
                raise PassphraseRequired() from e
            raise DecryptionFailed("Failed to import private key. Verify the key format and passphrase.") from e
        return cls(ssh_key)

    @classmethod
    def import_openssh_private_key(cls, private_key_text: str,
                                   passphrase: Optional[str] = None) -> "SigningKeyHandle":
        """
        Opens an `openssh-key-v1` container with KeyForge's own codec, then hands the cleartext record to asyncssh.
        """
        container = parse_container(private_key_text)
        with decrypt_private_section(container, passphrase) as section:
            cleartext = encode_private_key(section.key_record.view(), container.public_key_blob,
                                           comment=section.comment)
        return cls.import_private_key(cleartext)

    @property
    def public_key_blob(self) -> bytes:
        return bytes(self.ssh_key.public_data)

    @property
    def key_type_name(self) -> str:
        return public_key_type(self.public_key_blob)

    @property
    def key_type(self) -> KeyType:
        try:
            return KNOWN_PUBLIC_KEY_TYPES[self.key_type_name][0]
        except KeyError:
            raise UnsupportedAlgorithm("Unsupported public key type.") from None

    @property
    def bit_length(self) -> int:
        return public_key_bit_length(self.public_key_blob)

    @property
    def fingerprints(self) -> KeyFingerprints:
        return fingerprints_for_blob(self.public_key_blob)

    def set_comment(self, comment: Optional[str]):
        self.ssh_key.set_comment(normalize_comment(comment))

    def public_key_line(self, comment: Optional[str] = None) -> str:
        return format_public_key_line(self.public_key_blob, comment)

    def private_section(self) -> PrivateSection:
        """
        The inline private key record and comment, read back from an unencrypted OpenSSH export.
        The caller must wipe the result, typically with `with handle.private_section() as section:`.
        """
        return decrypt_private_section(parse_container(self._export(_OPENSSH_EXPORT_FORMAT)))

    def _export(self, format_name: str) -> bytes:
        try:
            return self.ssh_key.export_private_key(format_name)
        except asyncssh.KeyExportError as e:
            raise UnsupportedAlgorithm(f"Export to {format_name} is not supported for {self.key_type_name}.") from e

    def export_unencrypted(self, key_format: KeyFormat) -> str:
        """
        OpenSSH, traditional PEM (PKCS#8 for key types without a traditional form) or PKCS#8 re-encoded through
        cryptography.
        """
        if key_format == KeyFormat.OPENSSH:
            return self._export(_OPENSSH_EXPORT_FORMAT).decode("ascii")
        try:
            pem = self._export(_PEM_EXPORT_FORMAT)
        except UnsupportedAlgorithm:
            self.logger().debug(f"{self.key_type_name} has no traditional PEM form, exporting PKCS#8.")
            pem = self._export(_PKCS8_EXPORT_FORMAT)
        if key_format == KeyFormat.PEM:
            return pem.decode("ascii")
        return self.pem_to_pkcs8(pem)

    @staticmethod
    def pem_to_pkcs8(pem: Union[str, bytes]) -> str:
        if isinstance(pem, str):
            pem = pem.encode("ascii")
        try:
            private_key = load_pem_private_key(pem, password=None)
            return private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            ).decode("ascii")
        except (ValueError, TypeError) as e:
            raise EncodingFailure(f"Failed to re-encode private key as PKCS#8: {e}") from e
