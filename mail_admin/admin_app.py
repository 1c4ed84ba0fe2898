from __future__ import annotations

from datetime import datetime, timezone
import os
from typing import Any, Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from .accounts import (
    Pagination,
    PrincipalList,
    avatar_initial,
    display_name,
    fetch_accounts,
    maybe_plural,
    parse_filter,
    parse_page,
    quota_percent,
    type_label,
)
from .activity_log import log_event, recent_events
from .alerts import Alert
from .backend import (
    BackendClient,
    BackendError,
    IncorrectCredentialError,
    UnauthorizedError,
)
from .crypto import (
    CRYPTO_SCHEMA,
    Disabled,
    EncryptionType,
    flatten_encryption,
    method_of,
    unflatten_encryption,
)
from .db import get_conn, init_db
from .form_data import FormData
from .registry import LOGIN_SCHEMA, get_schemas
from .schema import resolve_options
from .security import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    Session,
    csrf_token,
    dump_session,
    is_csrf_valid,
    load_session,
    new_csrf_nonce,
)
from .settings import load_app_settings
from .submission import SubmissionGuard, SubmissionPendingError

CRYPTO_LAYOUT = (
    {
        "name": "password",
        "label": "Current Password",
        "widget": "password",
        "tooltip": "",
    },
    {
        "name": "type",
        "label": "Encryption type",
        "widget": "select",
        "tooltip": "Whether to use OpenPGP or S/MIME for encryption.",
    },
    {
        "name": "algo",
        "label": "Algorithm",
        "widget": "select",
        "tooltip": "The encryption algorithms to use",
    },
    {
        "name": "certs",
        "label": "Certificates",
        "widget": "textarea",
        "tooltip": (
            "The armored OpenPGP certificate or S/MIME certificate in PEM format."
        ),
    },
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _audit(actor: str, action: str, details: str) -> None:
    with get_conn() as conn:
        conn.execute(
            (
                "insert into audit_log(actor, action, details, created_at) "
                "values(?, ?, ?, ?)"
            ),
            (actor, action, details, _now_iso()),
        )
        conn.commit()


def _crypto_saved_alert(changes: EncryptionType) -> Alert:
    if isinstance(changes, Disabled):
        alert = Alert.success(
            "Encryption-at-rest disabled",
            "Automatic encryption of plain text messages has been disabled. "
            "From now on all incoming messages will be stored "
            "in their original form.",
        )
    else:
        alert = Alert.success(
            "Encryption-at-rest enabled",
            "Automatic encryption of plain text messages has been enabled. "
            "From now on all incoming plain-text messages will be encrypted "
            "before they reach your mailbox.",
        )
    return alert.without_timeout()


def _get_current_session(request: Request) -> Optional[Session]:
    return load_session(request.cookies.get(SESSION_COOKIE))


def _require_login(request: Request) -> Session:
    s = _get_current_session(request)
    if s is None:
        raise HTTPException(status_code=302, headers={"Location": "/login"})
    return s


def _session_expired() -> RedirectResponse:
    resp = RedirectResponse(url="/login", status_code=302)
    resp.delete_cookie(SESSION_COOKIE)
    return resp


def create_admin_app(
    client: Optional[BackendClient] = None,
    *,
    page_size: Optional[int] = None,
) -> FastAPI:
    init_db()
    settings = load_app_settings()
    if client is None:
        client = BackendClient(
            settings.backend_url,
            timeout=settings.backend_timeout_seconds,
        )
    if page_size is None:
        page_size = settings.accounts_page_size

    templates_dir = os.path.join(os.path.dirname(__file__), "templates")
    templates = Jinja2Templates(directory=templates_dir)

    app = FastAPI(title="MAIL_ADMIN Console")
    guard = SubmissionGuard()

    @app.middleware("http")
    async def _csrf_middleware(request: Request, call_next):
        nonce = request.cookies.get(CSRF_COOKIE) or ""
        fresh = not nonce
        if fresh:
            nonce = new_csrf_nonce()

        s = _get_current_session(request)
        username = s.username if s else ""
        request.state.csrf_token = csrf_token(nonce, username)

        if request.method.upper() == "POST":
            try:
                # Read the body first so the endpoint can parse it again.
                await request.body()
                form: Any = await request.form()
            except Exception:
                return PlainTextResponse(content="invalid form", status_code=400)
            token = str(form.get("csrf_token", ""))
            if fresh or not is_csrf_valid(token, nonce=nonce, username=username):
                return PlainTextResponse(
                    content="invalid csrf token",
                    status_code=403,
                )

        response = await call_next(request)
        if fresh:
            response.set_cookie(CSRF_COOKIE, nonce, httponly=True, samesite="strict")
        return response

    def _render_login(
        request: Request,
        form: FormData,
        alert: Optional[Alert] = None,
        status_code: int = 200,
    ):
        return templates.TemplateResponse(
            request,
            "login.html",
            {
                "form": form,
                "username": form.value("username") or "",
                "alert": alert,
            },
            status_code=status_code,
        )

    def _render_crypto(
        request: Request,
        s: Session,
        form: Optional[FormData],
        alert: Optional[Alert] = None,
        status_code: int = 200,
    ):
        fields: list[dict[str, Any]] = []
        if form is not None:
            for item in CRYPTO_LAYOUT:
                fd = form.schema.get(item["name"])
                if fd is None:
                    continue
                # Passwords are never echoed back.
                value = "" if item["widget"] == "password" else form.value(fd.name)
                fields.append(
                    {
                        **item,
                        "value": value or "",
                        "visible": form.is_visible(fd.name),
                        "error": form.error(fd.name),
                        "options": resolve_options(fd),
                        "display_if": fd.display_if,
                    }
                )
        return templates.TemplateResponse(
            request,
            "crypto.html",
            {
                "user": s.username,
                "fields": fields,
                "form_available": form is not None,
                "pending": guard.is_pending(s.username),
                "alert": alert,
            },
            status_code=status_code,
        )

    @app.get("/healthz")
    async def healthz():
        try:
            with get_conn() as conn:
                conn.execute("select 1").fetchone()
        except Exception:
            raise HTTPException(status_code=503, detail="db unavailable")
        return {"ok": True}

    @app.get("/")
    async def index(request: Request):
        _require_login(request)
        return RedirectResponse(url="/manage/accounts", status_code=302)

    @app.get("/login", response_class=HTMLResponse)
    async def login_get(request: Request):
        if _get_current_session(request) is not None:
            return RedirectResponse(url="/", status_code=302)
        return _render_login(request, get_schemas().build_form(LOGIN_SCHEMA))

    @app.post("/login", response_class=HTMLResponse)
    async def login_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
    ):
        form = get_schemas().build_form(LOGIN_SCHEMA)
        form.load({"username": username, "password": password})
        if not form.validate():
            return _render_login(request, form, status_code=400)

        username = form.value("username")
        try:
            token = await run_in_threadpool(
                client.authenticate,
                username,
                form.value("password"),
            )
        except IncorrectCredentialError as e:
            log_event("LOGIN FAIL", user=username)
            return _render_login(
                request,
                form,
                Alert.warning(e.message, e.details),
                status_code=401,
            )
        except BackendError as e:
            log_event("LOGIN ERROR", user=username, err=e.message)
            return _render_login(
                request,
                form,
                Alert.from_error(e),
                status_code=502,
            )

        form.mark_submitted()
        resp = RedirectResponse(url="/", status_code=302)
        resp.set_cookie(
            SESSION_COOKIE,
            dump_session(Session(username=username, token=token)),
            httponly=True,
            samesite="strict",
        )
        _audit(username, "login", "")
        return resp

    @app.post("/logout")
    async def logout(request: Request):
        s = _get_current_session(request)
        resp = RedirectResponse(url="/login", status_code=302)
        resp.delete_cookie(SESSION_COOKIE)
        _audit(s.username if s else "unknown", "logout", "")
        return resp

    @app.get("/manage/accounts", response_class=HTMLResponse)
    async def accounts_list(request: Request):
        s = _require_login(request)
        page = parse_page(request.query_params.get("page"))
        flt = parse_filter(request.query_params.get("filter"))

        alert = None
        accounts: PrincipalList = PrincipalList(items=[], total=0)
        try:
            accounts = await run_in_threadpool(
                fetch_accounts,
                client,
                s.token,
                page=page,
                page_size=page_size,
                filter=flt,
            )
        except UnauthorizedError:
            return _session_expired()
        except BackendError as e:
            log_event("ACCOUNTS ERROR", user=s.username, err=e.message)
            alert = Alert.from_error(e)

        rows = [
            {
                "id": p.id,
                "display_name": display_name(p),
                "initial": avatar_initial(p),
                "name": p.name or "unknown",
                "email": p.emails[0] if p.emails else "",
                "emails_label": maybe_plural(len(p.emails), "address", "addresses"),
                "type_label": type_label(p),
                "quota": quota_percent(p),
                "groups_label": maybe_plural(len(p.member_of), "group", "groups"),
            }
            for p in accounts.items
        ]
        return templates.TemplateResponse(
            request,
            "accounts.html",
            {
                "user": s.username,
                "rows": rows,
                "pagination": Pagination(
                    page=page,
                    page_size=page_size,
                    total=accounts.total,
                ),
                "filter": flt or "",
                "alert": alert,
            },
        )

    @app.get("/account/crypto", response_class=HTMLResponse)
    async def crypto_get(request: Request):
        s = _require_login(request)
        try:
            params = await run_in_threadpool(client.get_crypto, s.token)
        except UnauthorizedError:
            return _session_expired()
        except BackendError as e:
            log_event("CRYPTO FETCH ERROR", user=s.username, err=e.message)
            return _render_crypto(request, s, None, Alert.from_error(e), 502)

        form = get_schemas().build_form(CRYPTO_SCHEMA)
        flatten_encryption(params, form)
        return _render_crypto(request, s, form)

    @app.post("/account/crypto", response_class=HTMLResponse)
    async def crypto_post(
        request: Request,
        method: str = Form("", alias="type"),
        algo: str = Form(""),
        certs: str = Form(""),
        password: str = Form(""),
    ):
        s = _require_login(request)
        form = get_schemas().build_form(CRYPTO_SCHEMA)
        form.load(
            {"type": method, "algo": algo, "certs": certs, "password": password}
        )

        changes = unflatten_encryption(form)
        if changes is None:
            return _render_crypto(request, s, form, status_code=400)

        try:
            with guard.hold(s.username):
                await run_in_threadpool(
                    client.set_crypto,
                    s.username,
                    form.value("password"),
                    changes,
                )
        except SubmissionPendingError:
            return _render_crypto(
                request,
                s,
                form,
                Alert.warning(
                    "Save in progress",
                    "A previous change is still being saved.",
                ),
                409,
            )
        except IncorrectCredentialError:
            log_event("CRYPTO DENIED", user=s.username)
            return _render_crypto(
                request,
                s,
                form,
                Alert.warning(
                    "Incorrect password",
                    "The password you entered is incorrect",
                ),
                401,
            )
        except BackendError as e:
            log_event("CRYPTO SAVE ERROR", user=s.username, err=e.message)
            return _render_crypto(request, s, form, Alert.from_error(e), 502)

        form.mark_submitted()
        method_name = method_of(changes)
        summary = method_name.value if method_name else "disabled"
        _audit(s.username, "update_crypto", f"type={summary}")
        log_event("CRYPTO SAVED", user=s.username, type=summary)

        fresh = get_schemas().build_form(CRYPTO_SCHEMA)
        flatten_encryption(changes, fresh)
        return _render_crypto(request, s, fresh, _crypto_saved_alert(changes))

    @app.get("/logs", response_class=HTMLResponse)
    async def logs_get(request: Request):
        s = _require_login(request)
        return templates.TemplateResponse(
            request,
            "logs.html",
            {
                "user": s.username,
                "lines": recent_events(),
            },
        )

    return app
