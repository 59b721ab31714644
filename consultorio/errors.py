"""
Resultado de las operaciones de escritura y traducción de errores de la base.

Los repositorios no lanzan excepciones para fallos esperados (validación,
claves foráneas, duplicados): devuelven un Resultado con el mensaje para el
formulario.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError

# SQLSTATE de PostgreSQL
FK_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"


@dataclass(frozen=True)
class Resultado:
    ok: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def exito(cls, data: Any = None) -> "Resultado":
        return cls(True, data, None)

    @classmethod
    def fallo(cls, error: str) -> "Resultado":
        return cls(False, None, error)


def es_uuid_valido(valor: str | None) -> bool:
    if not valor:
        return False
    try:
        uuid.UUID(str(valor))
    except ValueError:
        return False
    return True


def codigo_integridad(exc: IntegrityError) -> str | None:
    """SQLSTATE del error (psycopg2 / psycopg) o, en SQLite, deducido del mensaje."""
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code

    msg = str(orig).upper()
    if "FOREIGN KEY" in msg:
        return FK_VIOLATION
    if "UNIQUE" in msg:
        return UNIQUE_VIOLATION
    return None


def menciona(exc: IntegrityError, columna: str) -> bool:
    """True si el nombre de la restricción o el mensaje del error nombran la columna."""
    orig = exc.orig
    diag = getattr(orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None) or ""
    return columna in constraint or columna in str(orig)
