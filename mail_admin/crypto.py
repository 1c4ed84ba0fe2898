from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .form_data import FormData
from .schema import (
    FieldDefinition,
    Required,
    Select,
    Static,
    Text,
    display_if_eq,
)

CRYPTO_SCHEMA = "crypto-at-rest"


class EncryptionMethod(Enum):
    PGP = "pgp"
    SMIME = "smime"


class Algorithm(Enum):
    AES128 = "aes128"
    AES256 = "aes256"


@dataclass(frozen=True)
class Disabled:
    pass


@dataclass(frozen=True)
class PGP:
    algo: Algorithm
    certs: str


@dataclass(frozen=True)
class SMIME:
    algo: Algorithm
    certs: str


EncryptionType = Union[PGP, SMIME, Disabled]

_VARIANTS = {EncryptionMethod.PGP: PGP, EncryptionMethod.SMIME: SMIME}

# Names used by the mail server's JSON API.
_WIRE_TAGS = {PGP: "PGP", SMIME: "SMIME", Disabled: "Disabled"}
_WIRE_ALGOS = {Algorithm.AES128: "Aes128", Algorithm.AES256: "Aes256"}

METHOD_OPTIONS = (
    (EncryptionMethod.PGP.value, "OpenPGP"),
    (EncryptionMethod.SMIME.value, "S/MIME"),
    ("", "Disabled"),
)
ALGO_OPTIONS = (
    (Algorithm.AES128.value, "AES-128"),
    (Algorithm.AES256.value, "AES-256"),
)


def method_of(params: EncryptionType) -> Optional[EncryptionMethod]:
    for method, cls in _VARIANTS.items():
        if isinstance(params, cls):
            return method
    return None


def crypto_fields() -> list[FieldDefinition]:
    encrypted = display_if_eq(
        "type",
        [EncryptionMethod.PGP.value, EncryptionMethod.SMIME.value],
    )
    return [
        FieldDefinition(
            name="type",
            typ=Select(source=Static(METHOD_OPTIONS)),
            default="",
        ),
        FieldDefinition(
            name="algo",
            typ=Select(source=Static(ALGO_OPTIONS)),
            default=Algorithm.AES256.value,
            display_if=encrypted,
        ),
        FieldDefinition(
            name="certs",
            typ=Text(),
            validators=(Required(),),
            display_if=encrypted,
        ),
        # Required even when disabling: every change is re-authenticated.
        FieldDefinition(
            name="password",
            typ=Text(),
            validators=(Required(),),
        ),
    ]


def flatten_encryption(params: EncryptionType, form: FormData) -> None:
    """Write ``params`` into ``form``.

    Disabling only blanks the method; algorithm and certificates keep
    whatever they held and are hidden by their display condition.
    """
    method = method_of(params)
    if method is None:
        form.set("type", "")
    else:
        form.set("type", method.value)
        form.set("algo", params.algo.value)
        form.set("certs", params.certs)
    form.mark_populated()


def unflatten_encryption(form: FormData) -> Optional[EncryptionType]:
    if not form.validate():
        return None

    method = form.value("type", EncryptionMethod)
    if method is None:
        return Disabled()

    algo = form.value("algo", Algorithm)
    if algo is None:
        form.set_error("algo", "Invalid algorithm")
        return None
    return _VARIANTS[method](algo=algo, certs=form.value("certs"))


def encryption_to_json(params: EncryptionType) -> dict[str, Any]:
    out: dict[str, Any] = {"type": _WIRE_TAGS[type(params)]}
    if not isinstance(params, Disabled):
        out["algo"] = _WIRE_ALGOS[params.algo]
        out["certs"] = params.certs
    return out


def encryption_from_json(data: Any) -> EncryptionType:
    if not isinstance(data, dict):
        raise ValueError("encryption settings must be an object")

    tag = str(data.get("type", "")).strip()
    if tag == "Disabled":
        return Disabled()

    for cls, name in _WIRE_TAGS.items():
        if name == tag and cls is not Disabled:
            break
    else:
        raise ValueError(f"unknown encryption type: {tag!r}")

    algo_name = str(data.get("algo", "")).strip()
    for algo, wire in _WIRE_ALGOS.items():
        if wire == algo_name:
            break
    else:
        raise ValueError(f"unknown algorithm: {algo_name!r}")

    certs = data.get("certs")
    if not isinstance(certs, str):
        raise ValueError("invalid certs")
    return cls(algo=algo, certs=certs)
