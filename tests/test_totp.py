import unittest

from twofa_api.base32 import Base32DecodeError
from twofa_api.totp import (
    build_provisioning_uri,
    generate_base32_secret,
    generate_totp,
    time_step,
    totp_now,
    verify_totp,
)


# base32 of ASCII "12345678901234567890" (RFC 6238 appendix B)
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class TestTotp(unittest.TestCase):
    def test_generate_secret(self):
        s = generate_base32_secret()
        self.assertTrue(isinstance(s, str))
        self.assertEqual(len(s), 32)
        self.assertNotEqual(s, generate_base32_secret())

    def test_rfc6238_vectors(self):
        vectors = {
            59: "94287082",
            1111111109: "07081804",
            1111111111: "14050471",
            1234567890: "89005924",
            2000000000: "69279037",
            20000000000: "65353130",
        }
        for t, expected in vectors.items():
            self.assertEqual(
                generate_totp(RFC_SECRET, time_step(t), digits=8),
                expected,
                msg=f"T={t}",
            )

    def test_six_digit_code_is_truncation_of_rfc_vector(self):
        self.assertEqual(generate_totp(RFC_SECRET, 1), "287082")
        self.assertEqual(generate_totp(RFC_SECRET, time_step(1111111109)), "081804")

    def test_deterministic_and_zero_padded(self):
        for step in range(0, 200):
            a = generate_totp(RFC_SECRET, step)
            self.assertEqual(a, generate_totp(RFC_SECRET, step))
            self.assertEqual(len(a), 6)
            self.assertTrue(a.isdigit())

    def test_time_step(self):
        self.assertEqual(time_step(0), 0)
        self.assertEqual(time_step(29.9), 0)
        self.assertEqual(time_step(30), 1)
        self.assertEqual(time_step(59), 1)

    def test_totp_verify_now(self):
        secret = generate_base32_secret()
        code = totp_now(secret=secret)
        self.assertTrue(verify_totp(secret=secret, code=code))

    def test_totp_verify_rejects_wrong(self):
        self.assertFalse(verify_totp(secret=RFC_SECRET, code="000000", now=59))

    def test_tolerance_window(self):
        n = 40000000
        code = generate_totp(RFC_SECRET, n)
        for delta in (-1, 0, 1):
            now = (n + delta) * 30 + 12
            self.assertTrue(verify_totp(secret=RFC_SECRET, code=code, now=now))
        for delta in (-2, 2):
            now = (n + delta) * 30 + 12
            self.assertFalse(verify_totp(secret=RFC_SECRET, code=code, now=now))

    def test_verify_rejects_malformed_code(self):
        code = generate_totp(RFC_SECRET, 1)
        self.assertTrue(verify_totp(secret=RFC_SECRET, code=f" {code[:3]} {code[3:]} ", now=59))
        self.assertFalse(verify_totp(secret=RFC_SECRET, code=code[:5], now=59))
        self.assertFalse(verify_totp(secret=RFC_SECRET, code="abcdef", now=59))
        self.assertFalse(verify_totp(secret=RFC_SECRET, code="", now=59))

    def test_verify_rejects_non_ascii_digits(self):
        self.assertFalse(verify_totp(secret=RFC_SECRET, code="١" * 6, now=59))
        self.assertFalse(verify_totp(secret=RFC_SECRET, code="२२7082", now=59))
        self.assertFalse(verify_totp(secret=RFC_SECRET, code="２87082", now=59))

    def test_malformed_secret_never_matches(self):
        with self.assertRaises(Base32DecodeError):
            generate_totp("not a secret!", 1)
        self.assertFalse(verify_totp(secret="not a secret!", code="123456", now=59))
        self.assertFalse(verify_totp(secret="", code="123456", now=59))

    def test_provisioning_uri(self):
        uri = build_provisioning_uri(
            secret="JBSWY3DPEHPK3PXP",
            account="alice@example.com",
            issuer="GoldsPay",
        )
        self.assertEqual(
            uri,
            "otpauth://totp/GoldsPay:alice%40example.com"
            "?secret=JBSWY3DPEHPK3PXP&issuer=GoldsPay",
        )

    def test_provisioning_uri_encodes_issuer(self):
        uri = build_provisioning_uri(secret="AAAA", account="bob", issuer="Golds Pay")
        self.assertTrue(uri.startswith("otpauth://totp/Golds%20Pay:bob?"))
        self.assertTrue(uri.endswith("&issuer=Golds%20Pay"))
