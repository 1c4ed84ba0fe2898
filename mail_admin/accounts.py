from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

if TYPE_CHECKING:
    from .backend import BackendClient

T = TypeVar("T")


@dataclass(frozen=True)
class Principal:
    id: int
    typ: Optional[str]
    name: Optional[str]
    description: Optional[str] = None
    quota: Optional[int] = None
    used_quota: Optional[int] = None
    emails: list[str] = field(default_factory=list)
    member_of: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PrincipalList(Generic[T]):
    items: list[T]
    total: int


def _opt_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _opt_str(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw)
    return s if s else None


def _str_list(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [raw]
    if not isinstance(raw, list):
        return []
    return [str(v) for v in raw]


def principal_from_json(data: dict[str, Any]) -> Principal:
    return Principal(
        id=_opt_int(data.get("id")) or 0,
        typ=_opt_str(data.get("type")),
        name=_opt_str(data.get("name")),
        description=_opt_str(data.get("description")),
        quota=_opt_int(data.get("quota")),
        used_quota=_opt_int(data.get("usedQuota")),
        emails=_str_list(data.get("emails")),
        member_of=_str_list(data.get("memberOf")),
    )


def parse_page(raw: Optional[str]) -> int:
    try:
        page = int((raw or "").strip())
    except ValueError:
        return 1
    return page if page > 0 else 1


def parse_filter(raw: Optional[str]) -> Optional[str]:
    s = (raw or "").strip()
    return s or None


def total_pages(total: int, page_size: int) -> int:
    if total <= 0 or page_size <= 0:
        return 0
    return -(-total // page_size)


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total: int
    pending: bool = False

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.page_size)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return not self.pending and self.page < self.total_pages

    @property
    def pages(self) -> list[int]:
        return list(range(1, self.total_pages + 1))


def fetch_accounts(
    client: BackendClient,
    token: str,
    *,
    page: int,
    page_size: int,
    filter: Optional[str] = None,
) -> PrincipalList[Principal]:
    names = client.list_principals(
        token,
        page=page,
        limit=page_size,
        typ="individual",
        filter=filter,
    )
    items = [client.get_principal(token, name) for name in names.items]
    return PrincipalList(items=items, total=names.total)


def maybe_plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def display_name(p: Principal) -> str:
    return p.description or p.name or "Unknown"


def avatar_initial(p: Principal) -> str:
    name = display_name(p)
    return name[0].upper() if name else ""


def quota_percent(p: Principal) -> str:
    if p.quota is not None and p.used_quota is not None and p.quota > 0:
        return f"{round(p.used_quota / p.quota * 100)}%"
    return "N/A"


def type_label(p: Principal) -> str:
    return "Admin" if p.typ == "superuser" else "Individual"
