import unittest

from keyforge.exceptions import (
    BufferTooSmall,
    DecryptionFailed,
    ErrorKind,
    KeyForgeBaseException,
    MalformedContainer,
    PassphraseRequired,
    UnsupportedAlgorithm,
    UnsupportedCombination,
)


class ExceptionsTest(unittest.TestCase):
    def test_default_messages(self):
        self.assertEqual("This private key is encrypted. Provide a passphrase to import it.",
                         str(PassphraseRequired()))
        self.assertEqual("custom", str(MalformedContainer("custom")))

    def test_kinds(self):
        self.assertEqual(ErrorKind.DECRYPTION_FAILED, DecryptionFailed().kind)
        self.assertEqual(ErrorKind.UNSUPPORTED_COMBINATION, UnsupportedCombination().kind)
        self.assertEqual("MalformedContainer", str(MalformedContainer.kind))

    def test_hierarchy(self):
        self.assertTrue(issubclass(UnsupportedCombination, UnsupportedAlgorithm))
        self.assertTrue(issubclass(BufferTooSmall, KeyForgeBaseException))

    def test_buffer_too_small_carries_required_size(self):
        error = BufferTooSmall(512)

        self.assertEqual(512, error.required_size)
        self.assertIn("512", error.message)
