from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class SubmissionPendingError(Exception):
    pass


class SubmissionGuard:
    """One in-flight submission per key.

    Only touched from the event loop thread; the slow backend call runs
    in the thread pool while the pending flag stays set.
    """

    def __init__(self) -> None:
        self._pending: set[str] = set()

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        if key in self._pending:
            raise SubmissionPendingError(key)
        self._pending.add(key)
        try:
            yield
        finally:
            self._pending.discard(key)
