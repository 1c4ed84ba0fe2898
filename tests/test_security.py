import os
import tempfile
import unittest

try:
    from mail_admin.security import (
        Session,
        csrf_token,
        dump_session,
        is_csrf_valid,
        load_session,
    )
except ModuleNotFoundError:  # pragma: no cover
    Session = None
from mail_admin.db import init_db
from mail_admin.settings import load_app_settings, set_setting


class TestSessionAndCsrf(unittest.TestCase):
    def setUp(self):
        if Session is None:
            self.skipTest("mail_admin dependencies not installed")
        self._old = os.environ.get("MAIL_ADMIN_SESSION_SECRET")
        os.environ["MAIL_ADMIN_SESSION_SECRET"] = "abc123"

    def tearDown(self):
        if self._old is None:
            os.environ.pop("MAIL_ADMIN_SESSION_SECRET", None)
        else:
            os.environ["MAIL_ADMIN_SESSION_SECRET"] = self._old

    def test_session_cookie(self):
        cookie = dump_session(Session(username="jane", token="tok"))
        self.assertEqual(load_session(cookie), Session(username="jane", token="tok"))
        self.assertIsNone(load_session(cookie + "x"))
        self.assertIsNone(load_session(""))
        self.assertIsNone(load_session(None))

    def test_csrf_token_bound_to_nonce_and_user(self):
        token = csrf_token("n1", "jane")
        self.assertTrue(is_csrf_valid(token, nonce="n1", username="jane"))
        self.assertFalse(is_csrf_valid(token, nonce="n2", username="jane"))
        self.assertFalse(is_csrf_valid(token, nonce="n1", username=""))
        self.assertFalse(is_csrf_valid("garbage", nonce="n1", username="jane"))
        self.assertFalse(is_csrf_valid("", nonce="n1"))


class TestSettings(unittest.TestCase):
    def test_defaults_and_overrides(self):
        old = {k: os.environ.get(k) for k in ("MAIL_ADMIN_DATA_DIR", "MAIL_ADMIN_BACKEND_URL")}
        with tempfile.TemporaryDirectory() as d:
            os.environ["MAIL_ADMIN_DATA_DIR"] = d
            os.environ.pop("MAIL_ADMIN_BACKEND_URL", None)
            init_db()

            s = load_app_settings()
            self.assertEqual(s.backend_url, "http://127.0.0.1:8080")
            self.assertEqual(s.accounts_page_size, 20)

            set_setting("accounts_page_size", "bogus")
            set_setting("backend_timeout_seconds", "-1")
            os.environ["MAIL_ADMIN_BACKEND_URL"] = "https://mail.example.org/"
            s = load_app_settings()
            self.assertEqual(s.backend_url, "https://mail.example.org")
            self.assertEqual(s.accounts_page_size, 20)
            self.assertEqual(s.backend_timeout_seconds, 15.0)

        for k, v in old.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
