from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import requests

from .accounts import Principal, PrincipalList, principal_from_json
from .crypto import EncryptionType, encryption_from_json, encryption_to_json


class BackendError(Exception):
    def __init__(self, message: str, details: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class UnauthorizedError(BackendError):
    pass


class IncorrectCredentialError(BackendError):
    pass


class BackendClient:
    """Client for the mail server's management REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = float(timeout)
        self._http = session or requests.Session()

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            return self._http.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendError("Request failed", str(exc)) from exc

    def _data(
        self,
        resp: requests.Response,
        *,
        unauthorized: type[BackendError] = UnauthorizedError,
    ) -> Any:
        if resp.status_code == 401:
            raise unauthorized("Unauthorized")
        if resp.status_code == 404:
            raise BackendError("Not found", resp.url)

        try:
            payload = resp.json()
        except ValueError:
            raise BackendError(f"Invalid response ({resp.status_code})")

        if not isinstance(payload, dict):
            raise BackendError(f"Invalid response ({resp.status_code})")
        if "error" in payload:
            raise BackendError(
                str(payload.get("error") or "Server error"),
                str(payload.get("details") or ""),
            )
        if resp.status_code >= 400:
            raise BackendError(f"Server error ({resp.status_code})")
        return payload.get("data")

    @staticmethod
    def _bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def authenticate(self, username: str, password: str) -> str:
        resp = self._send(
            "POST",
            "/auth/token",
            data={
                "grant_type": "password",
                "username": username,
                "password": password,
            },
        )
        if resp.status_code in {400, 401}:
            raise IncorrectCredentialError(
                "Incorrect credentials",
                "The username or password you entered is incorrect",
            )
        if resp.status_code >= 400:
            raise BackendError(f"Server error ({resp.status_code})")
        try:
            payload = resp.json()
        except ValueError:
            raise BackendError("Invalid token response")

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise BackendError("Invalid token response")
        return token

    def get_crypto(self, token: str) -> EncryptionType:
        data = self._data(self._send("GET", "/api/crypto", headers=self._bearer(token)))
        try:
            return encryption_from_json(data)
        except ValueError as exc:
            raise BackendError("Invalid encryption settings", str(exc)) from exc

    def set_crypto(
        self,
        username: str,
        password: str,
        params: EncryptionType,
    ) -> None:
        # A 401 here means the re-entered password was wrong, not that the
        # session expired.
        resp = self._send(
            "POST",
            "/api/crypto",
            auth=(username, password),
            json=encryption_to_json(params),
        )
        self._data(resp, unauthorized=IncorrectCredentialError)

    def list_principals(
        self,
        token: str,
        *,
        page: int,
        limit: int,
        typ: str = "individual",
        filter: Optional[str] = None,
    ) -> PrincipalList:
        params = {"page": str(page), "limit": str(limit), "type": typ}
        if filter:
            params["filter"] = filter
        data = self._data(
            self._send("GET", "/api/principal", headers=self._bearer(token), params=params)
        )
        if not isinstance(data, dict):
            raise BackendError("Invalid principal list")
        try:
            total = int(data.get("total", 0))
        except (TypeError, ValueError):
            raise BackendError("Invalid principal list")
        items = [str(i) for i in (data.get("items") or [])]
        return PrincipalList(items=items, total=total)

    def get_principal(self, token: str, name: str) -> Principal:
        data = self._data(
            self._send(
                "GET",
                f"/api/principal/{quote(name, safe='')}",
                headers=self._bearer(token),
            )
        )
        if not isinstance(data, dict):
            raise BackendError("Invalid principal", name)
        return principal_from_json(data)
