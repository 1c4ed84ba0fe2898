import unittest

from mail_admin.submission import SubmissionGuard, SubmissionPendingError


class TestSubmissionGuard(unittest.TestCase):
    def test_rejects_second_submission(self):
        guard = SubmissionGuard()
        with guard.hold("jane"):
            self.assertTrue(guard.is_pending("jane"))
            self.assertFalse(guard.is_pending("john"))
            with self.assertRaises(SubmissionPendingError):
                with guard.hold("jane"):
                    pass
            self.assertTrue(guard.is_pending("jane"))
        self.assertFalse(guard.is_pending("jane"))

    def test_cleared_on_failure(self):
        guard = SubmissionGuard()
        with self.assertRaises(RuntimeError):
            with guard.hold("jane"):
                raise RuntimeError("backend down")
        self.assertFalse(guard.is_pending("jane"))
        with guard.hold("jane"):
            pass
