import os
import tempfile
import unittest

from mail_admin import activity_log
from mail_admin.activity_log import log_event, recent_events


class TestActivityLog(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self._old = os.environ.get("MAIL_ADMIN_DATA_DIR")
        os.environ["MAIL_ADMIN_DATA_DIR"] = self._tmp.name

    def tearDown(self):
        if self._old is None:
            os.environ.pop("MAIL_ADMIN_DATA_DIR", None)
        else:
            os.environ["MAIL_ADMIN_DATA_DIR"] = self._old
        self._tmp.cleanup()

    def test_fields_are_single_line(self):
        log_event("LOGIN FAIL", user="jane\nforged line")
        log_event("CRYPTO SAVED", user="jane", type="pgp")
        lines = recent_events()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].endswith("CRYPTO SAVED user=jane type=pgp"))
        self.assertTrue(lines[1].endswith("LOGIN FAIL user=jane forged line"))

    def test_missing_log(self):
        self.assertEqual(recent_events(), [])

    def test_file_is_capped(self):
        old_cap = activity_log.MAX_LOG_BYTES
        activity_log.MAX_LOG_BYTES = 200
        try:
            for i in range(50):
                log_event("EVENT", n=i)
        finally:
            activity_log.MAX_LOG_BYTES = old_cap
        path = os.path.join(self._tmp.name, "activity.log")
        self.assertLessEqual(os.path.getsize(path), 200)
        lines = recent_events()
        self.assertTrue(lines[0].endswith("EVENT n=49"))
        self.assertTrue(all(" EVENT n=" in ln for ln in lines))
