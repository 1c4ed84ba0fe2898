from __future__ import annotations

from dataclasses import dataclass, replace

from .backend import BackendError


@dataclass(frozen=True)
class Alert:
    level: str
    title: str
    details: str = ""
    timeout: bool = True

    @classmethod
    def success(cls, title: str, details: str = "") -> Alert:
        return cls(level="success", title=title, details=details)

    @classmethod
    def warning(cls, title: str, details: str = "") -> Alert:
        return cls(level="warning", title=title, details=details)

    @classmethod
    def error(cls, title: str, details: str = "") -> Alert:
        return cls(level="error", title=title, details=details, timeout=False)

    @classmethod
    def from_error(cls, err: BackendError) -> Alert:
        return cls.error(err.message, err.details)

    def without_timeout(self) -> Alert:
        return replace(self, timeout=False)
