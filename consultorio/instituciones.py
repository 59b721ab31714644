from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from .consultas import busqueda_valida, ilike_cualquiera
from .db import db_session
from .errors import Resultado, es_uuid_valido
from .models import Institucion, ahora

logger = logging.getLogger(__name__)

CAMPOS_EDITABLES = {"nombre", "descripcion", "direccion", "telefono", "email", "sitio_web", "logo_url"}


def buscar_instituciones(query: str = "", limit: int = 20, offset: int = 0) -> list[Institucion]:
    if not busqueda_valida(query):
        return []

    with db_session() as s:
        q = (
            select(Institucion)
            .where(ilike_cualquiera([Institucion.nombre], query))
            .order_by(Institucion.creado_el.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(s.scalars(q))


def listar_instituciones(query: str = "", limit: int = 50, offset: int = 0) -> list[Institucion]:
    if query:
        return buscar_instituciones(query, limit=limit, offset=offset)

    with db_session() as s:
        q = select(Institucion).order_by(Institucion.creado_el.desc()).limit(limit).offset(offset)
        return list(s.scalars(q))


def obtener_institucion(institucion_id: str) -> Institucion | None:
    if not es_uuid_valido(institucion_id):
        return None
    with db_session() as s:
        return s.get(Institucion, institucion_id)


def primera_institucion() -> Institucion | None:
    """La institución que da nombre al sistema (la primera registrada)."""
    with db_session() as s:
        return s.scalars(select(Institucion).order_by(Institucion.creado_el).limit(1)).first()


def crear_institucion(datos: dict[str, Any]) -> Resultado:
    try:
        with db_session() as s:
            i = Institucion(**{k: v for k, v in datos.items() if k in CAMPOS_EDITABLES})
            s.add(i)
            s.flush()
        return Resultado.exito(i)
    except SQLAlchemyError:
        logger.exception("Error al crear institución")
        return Resultado.fallo("Error al crear la institución. Por favor, intente nuevamente.")


def actualizar_institucion(institucion_id: str, datos: dict[str, Any]) -> Resultado:
    if not es_uuid_valido(institucion_id):
        return Resultado.fallo("ID de institución inválido")

    try:
        with db_session() as s:
            i = s.get(Institucion, institucion_id)
            if i is None:
                return Resultado.fallo("Institución no encontrada")
            for campo, valor in datos.items():
                if campo in CAMPOS_EDITABLES:
                    setattr(i, campo, valor)
            i.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(i)
    except SQLAlchemyError:
        logger.exception("Error al actualizar institución %s", institucion_id)
        return Resultado.fallo("Error al actualizar la institución. Por favor, intente nuevamente.")


def eliminar_institucion(institucion_id: str) -> Resultado:
    if not es_uuid_valido(institucion_id):
        return Resultado.fallo("ID de institución inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(Institucion).where(Institucion.id == institucion_id)).rowcount
        if not borrados:
            return Resultado.fallo("Institución no encontrada")
        return Resultado.exito()
    except SQLAlchemyError:
        logger.exception("Error al eliminar institución %s", institucion_id)
        return Resultado.fallo("Error al eliminar la institución. Por favor, intente nuevamente.")
