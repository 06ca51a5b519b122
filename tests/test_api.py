import os
import tempfile
import unittest

try:
    from fastapi.testclient import TestClient

    from twofa_api.api_app import create_api_app
    from twofa_api.security import issue_access_token
except ModuleNotFoundError:  # pragma: no cover
    TestClient = None
    create_api_app = None
    issue_access_token = None
from twofa_api.totp import totp_now


class TestApi(unittest.TestCase):
    def setUp(self):
        if create_api_app is None:
            self.skipTest("twofa_api web dependencies not installed")
        self._old = {k: os.environ.get(k) for k in ("TWOFA_API_DATA_DIR", "TWOFA_API_TOKEN_SECRET")}
        self._tmp = tempfile.TemporaryDirectory()
        os.environ["TWOFA_API_DATA_DIR"] = self._tmp.name
        os.environ["TWOFA_API_TOKEN_SECRET"] = "test-secret"
        self.client = TestClient(create_api_app())
        token = issue_access_token(user_id="u1", email="alice@example.com")
        self.auth = {"Authorization": f"Bearer {token}"}

    def tearDown(self):
        for k, v in self._old.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
        self._tmp.cleanup()

    def _enroll(self) -> dict:
        r = self.client.post("/2fa/setup", json={"action": "enable"}, headers=self.auth)
        self.assertEqual(r.status_code, 200)
        return r.json()

    def test_healthz(self):
        r = self.client.get("/healthz")
        self.assertEqual(r.json(), {"ok": True})

    def test_requires_bearer_token(self):
        r = self.client.get("/2fa/setup")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json(), {"error": "Unauthorized"})

        r = self.client.post(
            "/2fa/verify",
            json={"code": "123456"},
            headers={"Authorization": "Bearer nope"},
        )
        self.assertEqual(r.status_code, 401)

    def test_enroll_confirm_authenticate_disable(self):
        data = self._enroll()
        self.assertEqual(len(data["backupCodes"]), 10)
        self.assertEqual(
            data["qrCodeUrl"],
            f"otpauth://totp/GoldsPay:alice%40example.com?secret={data['secret']}&issuer=GoldsPay",
        )
        self.assertFalse(self.client.get("/2fa/setup", headers=self.auth).json()["is_enabled"])

        code = totp_now(secret=data["secret"])
        r = self.client.post("/2fa/verify", json={"code": code, "action": "enable"}, headers=self.auth)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"valid": True, "message": "2FA enabled successfully"})
        self.assertTrue(self.client.get("/2fa/setup", headers=self.auth).json()["is_enabled"])

        backup = data["backupCodes"][0]
        r = self.client.post("/2fa/verify", json={"code": backup}, headers=self.auth)
        self.assertEqual(r.json(), {"valid": True, "message": "Code verified successfully"})
        r = self.client.post("/2fa/verify", json={"code": backup}, headers=self.auth)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"valid": False, "error": "Invalid code"})
        status = self.client.get("/2fa/setup", headers=self.auth).json()
        self.assertEqual(status["backup_codes_remaining"], 9)

        r = self.client.post("/2fa/setup", json={"action": "disable"}, headers=self.auth)
        self.assertEqual(r.json(), {"message": "2FA disabled successfully"})
        status = self.client.get("/2fa/setup", headers=self.auth).json()
        self.assertFalse(status["is_enabled"])
        self.assertEqual(status["state"], "not_configured")

    def test_verify_not_configured(self):
        r = self.client.post("/2fa/verify", json={"code": "123456"}, headers=self.auth)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"valid": False, "error": "2FA not configured for this user"})

    def test_verify_requires_code(self):
        r = self.client.post("/2fa/verify", json={}, headers=self.auth)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "Code is required")

    def test_invalid_setup_action(self):
        r = self.client.post("/2fa/setup", json={"action": "explode"}, headers=self.auth)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"error": "Invalid action"})

    def test_qr_svg(self):
        r = self.client.get("/2fa/qr", headers=self.auth)
        self.assertEqual(r.status_code, 404)

        self._enroll()
        r = self.client.get("/2fa/qr", headers=self.auth)
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.headers["content-type"].startswith("image/svg+xml"))
        self.assertIn(b"<svg", r.content)

    def test_verify_non_ascii_code_is_a_client_error(self):
        self._enroll()
        r = self.client.post(
            "/2fa/verify",
            json={"code": "١٢٣٤٥٦", "action": "enable"},
            headers=self.auth,
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"valid": False, "error": "Invalid code"})
