from __future__ import annotations

from dataclasses import dataclass
import os
import secrets

from .db import get_conn


@dataclass(frozen=True)
class AppSettings:
    backend_url: str
    backend_timeout_seconds: float
    accounts_page_size: int


DEFAULTS = {
    "backend_url": "http://127.0.0.1:8080",
    "backend_timeout_seconds": "15",
    "accounts_page_size": "20",
    "admin_bind_host": "0.0.0.0",
    "admin_port": "2580",
    "session_secret": "",
}


def get_setting(key: str) -> str:
    with get_conn() as conn:
        row = conn.execute("select value from settings where key = ?", (key,)).fetchone()
        if row is None:
            return DEFAULTS.get(key, "")
        return str(row["value"])


def set_setting(key: str, value: str) -> None:
    with get_conn() as conn:
        conn.execute(
            "insert into settings(key, value) values(?, ?) on conflict(key) do update set value = excluded.value",
            (key, value),
        )
        conn.commit()


def get_or_create_session_secret() -> str:
    existing = get_setting("session_secret").strip()
    if existing:
        return existing
    value = secrets.token_urlsafe(48)
    set_setting("session_secret", value)
    return value


def _positive_int(raw: str, fallback: int) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        return fallback
    return value if value > 0 else fallback


def load_app_settings() -> AppSettings:
    backend_url = (
        os.environ.get("MAIL_ADMIN_BACKEND_URL", "").strip()
        or get_setting("backend_url").strip()
        or DEFAULTS["backend_url"]
    )

    timeout_raw = get_setting("backend_timeout_seconds").strip() or "15"
    try:
        timeout = float(timeout_raw)
    except ValueError:
        timeout = 15.0
    if timeout <= 0:
        timeout = 15.0

    return AppSettings(
        backend_url=backend_url.rstrip("/"),
        backend_timeout_seconds=timeout,
        accounts_page_size=_positive_int(get_setting("accounts_page_size"), 20),
    )
