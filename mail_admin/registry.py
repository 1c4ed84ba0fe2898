from __future__ import annotations

from typing import Optional

from .crypto import CRYPTO_SCHEMA, crypto_fields
from .schema import FieldDefinition, Required, Schemas, Text, Transformer

LOGIN_SCHEMA = "login"

_schemas: Optional[Schemas] = None


def _login_fields() -> list[FieldDefinition]:
    return [
        FieldDefinition(
            name="username",
            typ=Text(),
            transformers=(Transformer.TRIM,),
            validators=(Required(),),
        ),
        FieldDefinition(
            name="password",
            typ=Text(),
            validators=(Required(),),
        ),
    ]


def build_schemas() -> Schemas:
    schemas = Schemas()
    schemas.register(LOGIN_SCHEMA, _login_fields())
    schemas.register(CRYPTO_SCHEMA, crypto_fields())
    return schemas


def get_schemas() -> Schemas:
    global _schemas
    if _schemas is None:
        _schemas = build_schemas()
    return _schemas
