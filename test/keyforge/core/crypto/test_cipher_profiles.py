import unittest

from keyforge.core.crypto.cipher_profiles import (
    CIPHER_AES256_CTR,
    CIPHER_CHACHA20_POLY1305,
    CIPHER_NONE,
    CIPHER_PROFILES,
    get_cipher_profile,
    profile_for_encryption,
)
from keyforge.core.data_type.common import PrivateKeyCipher
from keyforge.exceptions import UnsupportedAlgorithm


class CipherProfilesTest(unittest.TestCase):
    def test_profile_table(self):
        self.assertEqual((8, 0, 0, 0), (CIPHER_NONE.block_size, CIPHER_NONE.key_length,
                                        CIPHER_NONE.iv_length, CIPHER_NONE.auth_tag_length))
        self.assertEqual((16, 32, 16, 0), (CIPHER_AES256_CTR.block_size, CIPHER_AES256_CTR.key_length,
                                           CIPHER_AES256_CTR.iv_length, CIPHER_AES256_CTR.auth_tag_length))
        self.assertEqual((8, 64, 0, 16), (CIPHER_CHACHA20_POLY1305.block_size, CIPHER_CHACHA20_POLY1305.key_length,
                                          CIPHER_CHACHA20_POLY1305.iv_length,
                                          CIPHER_CHACHA20_POLY1305.auth_tag_length))
        self.assertEqual(48, CIPHER_AES256_CTR.key_material_length)
        self.assertFalse(CIPHER_NONE.encrypts)

    def test_profiles_are_immutable(self):
        with self.assertRaises(TypeError):
            CIPHER_PROFILES["aes128-ctr"] = CIPHER_AES256_CTR
        with self.assertRaises(AttributeError):
            CIPHER_AES256_CTR.block_size = 8

    def test_get_cipher_profile(self):
        self.assertIs(CIPHER_CHACHA20_POLY1305, get_cipher_profile("chacha20-poly1305@openssh.com"))
        with self.assertRaises(UnsupportedAlgorithm):
            get_cipher_profile("aes128-gcm@openssh.com")

    def test_profile_for_encryption_falls_back_to_aes(self):
        self.assertIs(CIPHER_CHACHA20_POLY1305, profile_for_encryption(PrivateKeyCipher.CHACHA20_POLY1305))
        self.assertIs(CIPHER_AES256_CTR, profile_for_encryption(PrivateKeyCipher.AES256_CTR))
        self.assertIs(CIPHER_AES256_CTR, profile_for_encryption(PrivateKeyCipher.NONE))
