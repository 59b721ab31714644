from __future__ import annotations

from typing import Iterable

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

# largo mínimo de una búsqueda por texto
MIN_BUSQUEDA = 2


def busqueda_valida(query: str | None, minimo: int = MIN_BUSQUEDA) -> bool:
    return bool(query) and len(query) >= minimo


def ilike_cualquiera(columnas: Iterable, query: str) -> ColumnElement[bool]:
    """`col1 ILIKE %q% OR col2 ILIKE %q% ...`"""
    patron = f"%{query}%"
    return or_(*(c.ilike(patron) for c in columnas))
