import logging
from typing import Optional, Tuple

from pydantic import SecretStr

from keyforge.core.codec.key_detector import (
    detect_cipher,
    detect_format,
    looks_like_private_key,
    looks_like_public_key,
)
from keyforge.core.codec.openssh_container import encode_private_key
from keyforge.core.crypto.cipher_profiles import CIPHER_PROFILES, profile_for_encryption
from keyforge.core.data_type.common import CipherDetection, KeyFormat, KeyType, PrivateKeyCipher
from keyforge.core.data_type.key_requests import (
    ConvertedKey,
    GeneratedKey,
    ImportedKey,
    KeyConversionRequest,
    KeyGenerationRequest,
    KeyImportRequest,
)
from keyforge.core.pki.ssh_key_handle import (
    KNOWN_PUBLIC_KEY_TYPES,
    SigningKeyHandle,
    fingerprints_for_blob,
    format_public_key_line,
    normalize_comment,
    parse_public_key_line,
    public_key_bit_length,
)
from keyforge.exceptions import InvalidInput, PassphraseRequired, UnsupportedCombination
from keyforge.logger import KeyForgeLogger


def _secret_value(secret: Optional[SecretStr]) -> Optional[str]:
    if secret is None:
        return None
    return secret.get_secret_value() or None


def key_display_name(key_type: KeyType, bit_length: int) -> str:
    if key_type == KeyType.ED25519:
        return "Ed25519"
    if key_type == KeyType.ECDSA:
        return f"ECDSA P-{bit_length}"
    return f"{key_type.value.upper()}-{bit_length}"


class KeyForgeService:
    """
    Generates, imports and converts SSH private keys.

    The service is stateless: every call works on its own inputs, so one instance can be shared between threads.
    """
    _logger: Optional[KeyForgeLogger] = None

    @classmethod
    def logger(cls) -> KeyForgeLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(KeyForgeLogger.logger_name_for_class(cls))
        return cls._logger

    @staticmethod
    def detect_key(private_key_text: str) -> CipherDetection:
        """
        Format and cipher of a private key, for callers deciding whether to prompt for a passphrase.
        """
        text = private_key_text.strip()
        return detect_cipher(detect_format(text), text)

    @staticmethod
    def _check_output_protection(key_format: KeyFormat, passphrase: Optional[str]):
        if not passphrase or key_format == KeyFormat.OPENSSH:
            return
        if key_format == KeyFormat.PKCS8:
            raise UnsupportedCombination("Passphrase encryption is currently unsupported for PKCS#8 export.")
        raise UnsupportedCombination("Passphrase encryption is currently supported for OpenSSH output format only.")

    @staticmethod
    def _open_private_key(text: str, detection: CipherDetection, passphrase: Optional[str]) -> SigningKeyHandle:
        if detection.passphrase_required and not passphrase:
            raise PassphraseRequired()
        # Containers using other OpenSSH ciphers (aes128-ctr, aes256-gcm, ...) are left to asyncssh.
        if detection.key_format == KeyFormat.OPENSSH and detection.cipher_name in CIPHER_PROFILES:
            return SigningKeyHandle.import_openssh_private_key(text, passphrase)
        return SigningKeyHandle.import_private_key(text, passphrase)

    @staticmethod
    def _export_private_key(handle: SigningKeyHandle,
                            key_format: KeyFormat,
                            passphrase: Optional[str],
                            requested_cipher: PrivateKeyCipher) -> Tuple[str, PrivateKeyCipher]:
        if key_format == KeyFormat.OPENSSH and passphrase:
            with handle.private_section() as section:
                armored = encode_private_key(
                    section.key_record.view(),
                    handle.public_key_blob,
                    passphrase=passphrase,
                    requested_cipher=requested_cipher,
                    comment=section.comment,
                )
            return armored, PrivateKeyCipher(profile_for_encryption(requested_cipher).name)
        return handle.export_unencrypted(key_format), PrivateKeyCipher.NONE

    def generate_key(self, request: KeyGenerationRequest) -> GeneratedKey:
        passphrase = _secret_value(request.passphrase)
        self._check_output_protection(request.private_key_format, passphrase)
        comment = normalize_comment(request.comment)

        with SigningKeyHandle.generate(request.algorithm, request.rsa_key_size, comment) as handle:
            private_key, cipher = self._export_private_key(
                handle, request.private_key_format, passphrase, request.cipher)
            key_type, bit_length = handle.key_type, handle.bit_length
            fingerprints = handle.fingerprints
            public_key = handle.public_key_line(comment)

        label = normalize_comment(request.label) or f"{key_display_name(key_type, bit_length)} Key"
        self.logger().key_event("generate", {
            "key_type": key_type,
            "bit_length": bit_length,
            "format": request.private_key_format,
            "cipher": cipher,
            "fingerprint": fingerprints.sha256,
        })
        return GeneratedKey(
            label=label,
            key_type=key_type,
            algorithm=request.algorithm,
            bit_length=bit_length,
            comment=comment,
            private_key=SecretStr(private_key),
            private_key_format=request.private_key_format,
            cipher=cipher,
            public_key=public_key,
            sha256_fingerprint=fingerprints.sha256,
            md5_fingerprint=fingerprints.md5,
        )

    def import_key(self, request: KeyImportRequest) -> ImportedKey:
        """
        Imports private key text (OpenSSH, PEM or PKCS#8) or an OpenSSH public key line.
        """
        text = request.key_text.get_secret_value().strip()
        if not text:
            raise InvalidInput("Key text is empty.")
        if looks_like_private_key(text):
            return self._import_private_key(text, request)
        if looks_like_public_key(text):
            return self._import_public_key(text, request)
        raise InvalidInput("Unrecognized key format. Provide an OpenSSH public key or a private key.")

    def _import_private_key(self, text: str, request: KeyImportRequest) -> ImportedKey:
        detection = self.detect_key(text)
        comment = normalize_comment(request.comment)
        with self._open_private_key(text, detection, _secret_value(request.passphrase)) as handle:
            key_type, bit_length = handle.key_type, handle.bit_length
            fingerprints = handle.fingerprints
            public_key = handle.public_key_line(comment)

        self.logger().key_event("import", {
            "key_type": key_type,
            "bit_length": bit_length,
            "format": detection.key_format,
            "cipher": detection.cipher,
            "fingerprint": fingerprints.sha256,
        })
        return ImportedKey(
            label=normalize_comment(request.label) or f"Imported {key_display_name(key_type, bit_length)} Key",
            key_type=key_type,
            bit_length=bit_length,
            comment=comment,
            public_key=public_key,
            private_key=SecretStr(text),
            private_key_format=detection.key_format,
            cipher=detection.cipher,
            passphrase_protected=detection.passphrase_required,
            sha256_fingerprint=fingerprints.sha256,
            md5_fingerprint=fingerprints.md5,
        )

    def _import_public_key(self, text: str, request: KeyImportRequest) -> ImportedKey:
        key_type_name, public_key_blob, line_comment = parse_public_key_line(text)
        key_type = KNOWN_PUBLIC_KEY_TYPES[key_type_name][0]
        bit_length = public_key_bit_length(public_key_blob)
        comment = normalize_comment(request.comment) or normalize_comment(line_comment)
        fingerprints = fingerprints_for_blob(public_key_blob)

        self.logger().key_event("import", {
            "key_type": key_type,
            "bit_length": bit_length,
            "format": "public",
            "fingerprint": fingerprints.sha256,
        })
        return ImportedKey(
            label=normalize_comment(request.label) or f"Imported {key_display_name(key_type, bit_length)} Key",
            key_type=key_type,
            bit_length=bit_length,
            comment=comment,
            public_key=format_public_key_line(public_key_blob, comment),
            sha256_fingerprint=fingerprints.sha256,
            md5_fingerprint=fingerprints.md5,
        )

    def convert_private_key(self, request: KeyConversionRequest) -> ConvertedKey:
        text = request.private_key.get_secret_value().strip()
        if not text or not looks_like_private_key(text):
            raise InvalidInput("Key conversion requires a private key.")
        output_passphrase = _secret_value(request.output_passphrase)
        self._check_output_protection(request.output_format, output_passphrase)

        detection = self.detect_key(text)
        with self._open_private_key(text, detection, _secret_value(request.current_passphrase)) as handle:
            comment = normalize_comment(request.comment)
            if comment is not None:
                handle.set_comment(comment)
            private_key, cipher = self._export_private_key(
                handle, request.output_format, output_passphrase, request.output_cipher)
            key_type, bit_length = handle.key_type, handle.bit_length
            fingerprints = handle.fingerprints
            public_key = handle.public_key_line(comment)

        self.logger().key_event("convert", {
            "key_type": key_type,
            "from_format": detection.key_format,
            "to_format": request.output_format,
            "cipher": cipher,
            "fingerprint": fingerprints.sha256,
        })
        return ConvertedKey(
            key_type=key_type,
            bit_length=bit_length,
            private_key=SecretStr(private_key),
            private_key_format=request.output_format,
            cipher=cipher,
            public_key=public_key,
            sha256_fingerprint=fingerprints.sha256,
            md5_fingerprint=fingerprints.md5,
        )
