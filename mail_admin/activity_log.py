from __future__ import annotations

import os
from datetime import datetime, timezone

from .db import data_dir

MAX_LOG_BYTES = 2 * 1024 * 1024


def _log_path() -> str:
    return os.path.join(data_dir(), "activity.log")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: object) -> str:
    return str(value).replace("\r", " ").replace("\n", " ").strip()


def _truncate_head(path: str, max_bytes: int) -> None:
    try:
        if os.path.getsize(path) <= max_bytes:
            return
        with open(path, "rb") as f:
            f.seek(-max_bytes, os.SEEK_END)
            tail = f.read()
    except OSError:
        return

    # Drop the partial first line.
    nl = tail.find(b"\n")
    if nl != -1:
        tail = tail[nl + 1 :]
    try:
        with open(path, "wb") as f:
            f.write(tail)
    except OSError:
        return


def log_event(event: str, **fields: object) -> None:
    """Append ``EVENT key=value ...`` to the activity log.

    Logging must never break a request, so write failures are dropped.
    """
    parts = [_clean(event)]
    parts.extend(f"{k}={_clean(v)}" for k, v in fields.items())
    line = " ".join(p for p in parts if p)
    if not line:
        return

    path = _log_path()
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"{_now_iso()} {line}\n")
    except OSError:
        return
    _truncate_head(path, MAX_LOG_BYTES)


def recent_events(limit: int = 200) -> list[str]:
    """Newest first."""
    try:
        with open(_log_path(), "r", encoding="utf-8", errors="replace") as f:
            lines = [ln.rstrip("\n") for ln in f if ln.strip()]
    except OSError:
        return []
    return lines[-limit:][::-1]
