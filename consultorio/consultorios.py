from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .consultas import busqueda_valida, ilike_cualquiera
from .db import db_session
from .errors import FK_VIOLATION, Resultado, codigo_integridad, es_uuid_valido
from .models import Consultorio, ahora

logger = logging.getLogger(__name__)

CAMPOS_EDITABLES = {"nombre", "descripcion"}


def buscar_consultorios(query: str = "", limit: int = 20, offset: int = 0) -> list[Consultorio]:
    if not busqueda_valida(query):
        return []

    with db_session() as s:
        q = (
            select(Consultorio)
            .where(ilike_cualquiera([Consultorio.nombre], query))
            .order_by(Consultorio.creado_el.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(s.scalars(q))


def listar_consultorios(query: str = "", limit: int = 50, offset: int = 0) -> list[Consultorio]:
    if query:
        return buscar_consultorios(query, limit=limit, offset=offset)

    with db_session() as s:
        q = select(Consultorio).order_by(Consultorio.creado_el.desc()).limit(limit).offset(offset)
        return list(s.scalars(q))


def obtener_consultorio(consultorio_id: str) -> Consultorio | None:
    if not es_uuid_valido(consultorio_id):
        return None
    with db_session() as s:
        return s.get(Consultorio, consultorio_id)


def crear_consultorio(datos: dict[str, Any]) -> Resultado:
    try:
        with db_session() as s:
            c = Consultorio(**{k: v for k, v in datos.items() if k in CAMPOS_EDITABLES})
            s.add(c)
            s.flush()
        return Resultado.exito(c)
    except SQLAlchemyError:
        logger.exception("Error al crear consultorio")
        return Resultado.fallo("Error al crear el consultorio. Por favor, intente nuevamente.")


def actualizar_consultorio(consultorio_id: str, datos: dict[str, Any]) -> Resultado:
    if not es_uuid_valido(consultorio_id):
        return Resultado.fallo("ID de consultorio inválido")

    try:
        with db_session() as s:
            c = s.get(Consultorio, consultorio_id)
            if c is None:
                return Resultado.fallo("Consultorio no encontrado")
            for campo, valor in datos.items():
                if campo in CAMPOS_EDITABLES:
                    setattr(c, campo, valor)
            c.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(c)
    except SQLAlchemyError:
        logger.exception("Error al actualizar consultorio %s", consultorio_id)
        return Resultado.fallo("Error al actualizar el consultorio. Por favor, intente nuevamente.")


def eliminar_consultorio(consultorio_id: str) -> Resultado:
    if not es_uuid_valido(consultorio_id):
        return Resultado.fallo("ID de consultorio inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(Consultorio).where(Consultorio.id == consultorio_id)).rowcount
        if not borrados:
            return Resultado.fallo("Consultorio no encontrado")
        return Resultado.exito()
    except IntegrityError as exc:
        if codigo_integridad(exc) == FK_VIOLATION:
            return Resultado.fallo("No se puede eliminar el consultorio porque tiene turnos asociados")
        logger.exception("Error al eliminar consultorio %s", consultorio_id)
        return Resultado.fallo("Error al eliminar el consultorio. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al eliminar consultorio %s", consultorio_id)
        return Resultado.fallo("Error al eliminar el consultorio. Por favor, intente nuevamente.")
