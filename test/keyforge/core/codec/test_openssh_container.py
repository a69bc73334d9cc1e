import base64
import unittest
from test.keyforge.key_fixtures import FIXTURE_PASSPHRASE, read_fixture
from unittest.mock import patch

import asyncssh

from keyforge.core.codec.openssh_container import (
    ARMOR_LINE_WIDTH,
    OPENSSH_BEGIN_MARKER,
    OPENSSH_END_MARKER,
    OpenSSHKeyContainer,
    armor,
    decrypt_private_section,
    encode_private_key,
    encode_private_key_into,
    parse_container,
)
from keyforge.core.codec.ssh_buffer import SSHBufferWriter
from keyforge.core.data_type.common import PrivateKeyCipher
from keyforge.core.utils.secure_buffer import SecretBuffer
from keyforge.exceptions import (
    BufferTooSmall,
    DecryptionFailed,
    InvalidInput,
    MalformedContainer,
    PassphraseRequired,
    RandomSourceFailure,
    UnsupportedAlgorithm,
)


class OpenSSHContainerDecodeTest(unittest.TestCase):
    def test_parse_chacha20_container_written_by_ssh_keygen(self):
        container = parse_container(read_fixture("ed25519_chacha"))

        self.assertEqual("chacha20-poly1305@openssh.com", container.cipher_name)
        self.assertEqual("bcrypt", container.kdf_name)
        self.assertEqual(16, len(container.kdf_parameters.salt))
        self.assertEqual(16, container.kdf_parameters.rounds)
        self.assertEqual(1, container.key_count)
        self.assertEqual(16, len(container.auth_tag))
        self.assertEqual(0, len(container.private_section) % 8)

    def test_decrypt_chacha20_container_written_by_ssh_keygen(self):
        container = parse_container(read_fixture("ed25519_chacha"))

        with decrypt_private_section(container, FIXTURE_PASSPHRASE) as section:
            self.assertEqual("ssh-ed25519", section.key_type)
            self.assertEqual("fixture@keyforge", section.comment)
            self.assertEqual(b"\x00\x00\x00\x0bssh-ed25519", bytes(section.key_record.view(0, 15)))
            self.assertLess(len(section.padding), 8)

        self.assertTrue(section.key_record.wiped)

    def test_decrypt_aes256_ctr_container_written_by_ssh_keygen(self):
        container = parse_container(read_fixture("ed25519_aes"))

        with decrypt_private_section(container, FIXTURE_PASSPHRASE) as section:
            self.assertEqual("ssh-ed25519", section.key_type)
            self.assertEqual("aes@keyforge", section.comment)

    def test_decrypt_unencrypted_rsa_container(self):
        container = parse_container(read_fixture("rsa_plain"))

        with decrypt_private_section(container) as section:
            self.assertEqual("ssh-rsa", section.key_type)
            self.assertEqual("rsa@keyforge", section.comment)

    def test_wrong_passphrase_fails_for_both_ciphers(self):
        for fixture in ("ed25519_chacha", "ed25519_aes"):
            with self.subTest(fixture=fixture):
                container = parse_container(read_fixture(fixture))
                with self.assertRaises(DecryptionFailed):
                    decrypt_private_section(container, "wrong")

    def test_missing_passphrase_on_encrypted_container(self):
        container = parse_container(read_fixture("ed25519_chacha"))

        with self.assertRaises(PassphraseRequired):
            decrypt_private_section(container, None)
        with self.assertRaises(PassphraseRequired):
            decrypt_private_section(container, "")

    def test_unknown_cipher_is_unsupported(self):
        container = OpenSSHKeyContainer(cipher_name="aes128-gcm@openssh.com", kdf_name="bcrypt", kdf_options=b"",
                                        public_key_blob=b"blob", private_section=bytes(16))

        with self.assertRaises(UnsupportedAlgorithm):
            decrypt_private_section(container, "pw")

    def test_parse_rejects_bad_magic(self):
        text = armor(b"openssh-key-v2\0" + bytes(32))

        with self.assertRaises(MalformedContainer):
            parse_container(text)

    def test_parse_rejects_missing_markers_and_bad_base64(self):
        with self.assertRaises(MalformedContainer):
            parse_container("not a key")
        with self.assertRaises(MalformedContainer):
            parse_container(f"{OPENSSH_BEGIN_MARKER}\n{OPENSSH_END_MARKER}\n")
        with self.assertRaises(MalformedContainer):
            parse_container(f"{OPENSSH_BEGIN_MARKER}\nAAAAA\n{OPENSSH_END_MARKER}\n")

    def test_parse_rejects_truncated_container(self):
        data = base64.b64decode("".join(read_fixture("rsa_plain").strip().splitlines()[1:-1]))

        with self.assertRaises(MalformedContainer):
            parse_container(armor(data[:200]))

    def test_parse_rejects_multiple_keys(self):
        container = parse_container(read_fixture("rsa_plain"))
        doubled = OpenSSHKeyContainer(
            cipher_name=container.cipher_name,
            kdf_name=container.kdf_name,
            kdf_options=container.kdf_options,
            public_key_blob=container.public_key_blob,
            private_section=container.private_section,
            key_count=2,
        )

        with self.assertRaises(MalformedContainer):
            parse_container(doubled.armor())

    def test_mismatched_checkints_in_cleartext_container(self):
        container = parse_container(read_fixture("rsa_plain"))
        section = bytearray(container.private_section)
        section[0] ^= 0xFF
        corrupted = OpenSSHKeyContainer(
            cipher_name=container.cipher_name,
            kdf_name=container.kdf_name,
            kdf_options=container.kdf_options,
            public_key_blob=container.public_key_blob,
            private_section=bytes(section),
        )

        with self.assertRaises(MalformedContainer):
            decrypt_private_section(corrupted)

    def test_invalid_padding(self):
        container = parse_container(read_fixture("rsa_plain"))
        section = container.private_section + bytes(8)
        corrupted = OpenSSHKeyContainer(
            cipher_name=container.cipher_name,
            kdf_name=container.kdf_name,
            kdf_options=container.kdf_options,
            public_key_blob=container.public_key_blob,
            private_section=section,
        )

        with self.assertRaises(MalformedContainer):
            decrypt_private_section(corrupted)


    def test_key_type_without_handle_support_is_unsupported(self):
        with SSHBufferWriter() as writer:
            writer.put_uint32(1234).put_uint32(1234)
            writer.put_string("ssh-ed448").put_string(bytes(57)).put_string(bytes(114))
            writer.put_string("ed448@keyforge")
            writer.pad_to_block_size(8)
            container = OpenSSHKeyContainer(cipher_name="none", kdf_name="none", kdf_options=b"",
                                            public_key_blob=b"blob", private_section=bytes(writer.buffer))

        with self.assertRaises(UnsupportedAlgorithm):
            decrypt_private_section(container)

    def test_malformed_comment_leaves_no_unwiped_key_record(self):
        container = parse_container(read_fixture("rsa_plain"))
        with decrypt_private_section(container) as section:
            with SSHBufferWriter() as writer:
                writer.put_uint32(1234).put_uint32(1234)
                writer.put_raw(section.key_record.view())
                writer.put_string(b"\xff\xfe")
                writer.pad_to_block_size(8)
                corrupted = OpenSSHKeyContainer(
                    cipher_name=container.cipher_name,
                    kdf_name=container.kdf_name,
                    kdf_options=container.kdf_options,
                    public_key_blob=container.public_key_blob,
                    private_section=bytes(writer.buffer),
                )

        created = []

        class TrackedSecretBuffer(SecretBuffer):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                created.append(self)

        with patch("keyforge.core.codec.openssh_container.SecretBuffer", TrackedSecretBuffer):
            with self.assertRaises(MalformedContainer):
                decrypt_private_section(corrupted)

        self.assertTrue(all(buffer.wiped for buffer in created))


class OpenSSHContainerEncodeTest(unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        source = parse_container(read_fixture("rsa_plain"))
        self.public_key_blob = source.public_key_blob
        with decrypt_private_section(source) as section:
            self.key_record = bytes(section.key_record)

    def test_unencrypted_export_uses_none_cipher_and_kdf(self):
        for passphrase in (None, ""):
            with self.subTest(passphrase=passphrase):
                container = parse_container(encode_private_key(self.key_record, self.public_key_blob, passphrase))

                self.assertEqual("none", container.cipher_name)
                self.assertEqual("none", container.kdf_name)
                self.assertEqual(b"", container.kdf_options)
                self.assertEqual(b"", container.auth_tag)

    def test_passphrase_round_trip_for_both_ciphers(self):
        for cipher, block_size, tag_length in ((PrivateKeyCipher.AES256_CTR, 16, 0),
                                               (PrivateKeyCipher.CHACHA20_POLY1305, 8, 16)):
            with self.subTest(cipher=cipher):
                armored = encode_private_key(self.key_record, self.public_key_blob, "s3cret",
                                             requested_cipher=cipher, comment="round trip")
                container = parse_container(armored)

                self.assertEqual(cipher.value, container.cipher_name)
                self.assertEqual("bcrypt", container.kdf_name)
                self.assertEqual(16, container.kdf_parameters.rounds)
                self.assertEqual(self.public_key_blob, container.public_key_blob)
                self.assertEqual(0, len(container.private_section) % block_size)
                self.assertEqual(tag_length, len(container.auth_tag))
                with decrypt_private_section(container, "s3cret") as section:
                    self.assertEqual(self.key_record, bytes(section.key_record))
                    self.assertEqual("round trip", section.comment)
                    self.assertEqual(bytes(range(1, len(section.padding) + 1)), section.padding)

    def test_unsupported_requested_cipher_falls_back_to_aes(self):
        armored = encode_private_key(self.key_record, self.public_key_blob, "s3cret",
                                     requested_cipher=PrivateKeyCipher.NONE)

        self.assertEqual("aes256-ctr", parse_container(armored).cipher_name)

    def test_salt_is_fresh_for_every_export(self):
        first = parse_container(encode_private_key(self.key_record, self.public_key_blob, "s3cret"))
        second = parse_container(encode_private_key(self.key_record, self.public_key_blob, "s3cret"))

        self.assertNotEqual(first.kdf_parameters.salt, second.kdf_parameters.salt)
        self.assertNotEqual(first.private_section, second.private_section)

    def test_armor_layout(self):
        armored = encode_private_key(self.key_record, self.public_key_blob, "s3cret")
        lines = armored.split("\n")

        self.assertEqual(OPENSSH_BEGIN_MARKER, lines[0])
        self.assertEqual(OPENSSH_END_MARKER, lines[-2])
        self.assertEqual("", lines[-1])
        self.assertTrue(all(len(line) <= ARMOR_LINE_WIDTH for line in lines[1:-2]))
        self.assertTrue(all(len(line) == ARMOR_LINE_WIDTH for line in lines[1:-3]))

    def test_encrypted_export_is_readable_by_asyncssh(self):
        armored = encode_private_key(self.key_record, self.public_key_blob, "s3cret", comment="interop")

        ssh_key = asyncssh.import_private_key(armored, "s3cret")

        self.assertEqual(self.public_key_blob, bytes(ssh_key.public_data))

    def test_ssh_keygen_key_reencoded_with_chacha20(self):
        source = parse_container(read_fixture("ed25519_chacha"))
        with decrypt_private_section(source, FIXTURE_PASSPHRASE) as section:
            armored = encode_private_key(section.key_record.view(), source.public_key_blob, "other",
                                         requested_cipher=PrivateKeyCipher.CHACHA20_POLY1305,
                                         comment=section.comment)
            original_record = bytes(section.key_record)

        with decrypt_private_section(parse_container(armored), "other") as section:
            self.assertEqual(original_record, bytes(section.key_record))
            self.assertEqual("fixture@keyforge", section.comment)

    def test_rejects_empty_key_material(self):
        with self.assertRaises(InvalidInput):
            encode_private_key(b"", self.public_key_blob)
        with self.assertRaises(InvalidInput):
            encode_private_key(self.key_record, b"")

    @patch("keyforge.core.crypto.kdf.os.urandom")
    def test_random_source_failure_produces_no_output(self, urandom_mock):
        urandom_mock.side_effect = OSError("no entropy")

        with self.assertRaises(RandomSourceFailure):
            encode_private_key(self.key_record, self.public_key_blob, "s3cret")

    def test_encode_into_caller_buffer(self):
        output = bytearray(4096)

        written = encode_private_key_into(output, self.key_record, self.public_key_blob, "s3cret")

        text = bytes(output[:written]).decode("ascii")
        self.assertTrue(text.startswith(OPENSSH_BEGIN_MARKER))
        self.assertTrue(text.endswith(OPENSSH_END_MARKER + "\n"))
        with decrypt_private_section(parse_container(text), "s3cret") as section:
            self.assertEqual(self.key_record, bytes(section.key_record))

    def test_encode_into_small_buffer_reports_required_size(self):
        output = bytearray(64)

        with self.assertRaises(BufferTooSmall) as context:
            encode_private_key_into(output, self.key_record, self.public_key_blob)

        expected_length = len(encode_private_key(self.key_record, self.public_key_blob))
        self.assertEqual(expected_length, context.exception.required_size)
        self.assertEqual(bytes(64), bytes(output))
