from __future__ import annotations

from dataclasses import dataclass
import os
import secrets
from typing import Optional

from itsdangerous import BadSignature, URLSafeSerializer

from .settings import get_or_create_session_secret

SESSION_COOKIE = "mail_admin_session"
CSRF_COOKIE = "mail_admin_csrf"


@dataclass(frozen=True)
class Session:
    username: str
    token: str


def _secret() -> str:
    secret = os.environ.get("MAIL_ADMIN_SESSION_SECRET")
    if not secret:
        secret = get_or_create_session_secret()
    return secret


def get_session_serializer() -> URLSafeSerializer:
    return URLSafeSerializer(_secret(), salt="mail_admin_session")


def get_csrf_serializer() -> URLSafeSerializer:
    return URLSafeSerializer(_secret(), salt="mail_admin_csrf")


def dump_session(session: Session) -> str:
    return get_session_serializer().dumps({"u": session.username, "t": session.token})


def load_session(cookie: Optional[str]) -> Optional[Session]:
    if not cookie:
        return None
    try:
        data = get_session_serializer().loads(cookie)
    except (BadSignature, ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    username = str(data.get("u", "")).strip()
    token = str(data.get("t", "")).strip()
    if not username or not token:
        return None
    return Session(username=username, token=token)


def new_csrf_nonce() -> str:
    return secrets.token_urlsafe(24)


def csrf_token(nonce: str, username: str = "") -> str:
    return get_csrf_serializer().dumps({"n": nonce, "u": username})


def is_csrf_valid(token: str, *, nonce: str, username: str = "") -> bool:
    token = (token or "").strip()
    if not token or not nonce:
        return False
    try:
        data = get_csrf_serializer().loads(token)
    except (BadSignature, ValueError, TypeError):
        return False
    if not isinstance(data, dict):
        return False
    if str(data.get("n", "")) != nonce:
        return False
    return str(data.get("u", "")) == username
