"""
QuorumGate Fingerprint Test Suite
"""

import hashlib
import unittest

from quorumgate import (
    FingerprintGenerator,
    InvalidProposalError,
    canonicalize,
    canonicalize_str,
    encode_content,
    fingerprint,
    verify_fingerprint,
)
from quorumgate.fingerprint import FINGERPRINT_LENGTH


class TestCanonicalization(unittest.TestCase):

    def test_keys_sorted_and_compact(self):
        self.assertEqual(canonicalize_str({"b": 1, "a": [1, 2]}), '{"a":[1,2],"b":1}')

    def test_bytes_rendered_as_hex(self):
        self.assertEqual(canonicalize({"p": b"\x00\xff"}), b'{"p":"00ff"}')

    def test_floats_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({"value": 1.5})

    def test_non_string_keys_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({1: "x"})


class TestFingerprint(unittest.TestCase):

    def test_exact_encoding(self):
        self.assertEqual(
            encode_content(10, "vendor-x", b"\x01\x02"),
            b'{"payload":"0102","target":"vendor-x","value":"10"}'
        )

    def test_digest_over_encoding(self):
        expected = "sha256:" + hashlib.sha256(
            b'{"payload":"","target":"vendor-x","value":"10"}'
        ).hexdigest()

        self.assertEqual(fingerprint(10, "vendor-x", b""), expected)

    def test_fixed_size(self):
        short = fingerprint(0, "t", b"")
        long = fingerprint(10 ** 60, "t" * 500, b"\xaa" * 4096)

        self.assertEqual(len(short), FINGERPRINT_LENGTH)
        self.assertEqual(len(long), FINGERPRINT_LENGTH)

    def test_deterministic(self):
        self.assertEqual(
            fingerprint(10, "vendor-x", b"pay"),
            fingerprint(10, "vendor-x", bytearray(b"pay"))
        )

    def test_each_field_changes_fingerprint(self):
        base = fingerprint(10, "vendor-x", b"pay")

        self.assertNotEqual(base, fingerprint(11, "vendor-x", b"pay"))
        self.assertNotEqual(base, fingerprint(10, "vendor-y", b"pay"))
        self.assertNotEqual(base, fingerprint(10, "vendor-x", b"paz"))

    def test_large_values_exact(self):
        self.assertNotEqual(fingerprint(2 ** 256, "t", b""), fingerprint(2 ** 256 + 1, "t", b""))

    def test_invalid_content_rejected(self):
        invalid = [
            (-1, "t", b""),
            (True, "t", b""),
            ("10", "t", b""),
            (10, "", b""),
            (10, None, b""),
            (10, "t", "text"),
        ]
        for value, target, payload in invalid:
            with self.assertRaises(InvalidProposalError):
                fingerprint(value, target, payload)

    def test_invalid_proposal_is_value_error(self):
        with self.assertRaises(ValueError):
            fingerprint(-1, "t", b"")

    def test_verify(self):
        fp = fingerprint(10, "vendor-x", b"")

        self.assertTrue(verify_fingerprint(fp, 10, "vendor-x", b""))
        self.assertFalse(verify_fingerprint(fp, 11, "vendor-x", b""))
        self.assertFalse(verify_fingerprint("md5:abc", 10, "vendor-x", b""))


class TestFingerprintGenerator(unittest.TestCase):

    def test_content_only_by_default(self):
        generator = FingerprintGenerator()

        first, seq1 = generator.derive(10, "t", b"")
        second, seq2 = generator.derive(10, "t", b"")

        self.assertEqual(first, second)
        self.assertEqual(first, fingerprint(10, "t", b""))
        self.assertIsNone(seq1)
        self.assertIsNone(seq2)

    def test_unique_folds_sequence(self):
        generator = FingerprintGenerator(unique=True)

        first, seq1 = generator.derive(10, "t", b"")
        second, seq2 = generator.derive(10, "t", b"")

        self.assertNotEqual(first, second)
        self.assertEqual((seq1, seq2), (1, 2))
        self.assertTrue(verify_fingerprint(second, 10, "t", b"", sequence=2))


if __name__ == "__main__":
    unittest.main()
