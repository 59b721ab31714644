from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .consultas import busqueda_valida, ilike_cualquiera
from .db import db_session
from .errors import FK_VIOLATION, Resultado, codigo_integridad, es_uuid_valido
from .models import TipoTurno, ahora

logger = logging.getLogger(__name__)

CAMPOS_EDITABLES = {"nombre", "descripcion", "duracion_minutos"}


def buscar_tipos_turno(query: str = "", limit: int = 20, offset: int = 0) -> list[TipoTurno]:
    if not busqueda_valida(query):
        return []

    with db_session() as s:
        q = (
            select(TipoTurno)
            .where(ilike_cualquiera([TipoTurno.nombre], query))
            .order_by(TipoTurno.creado_el.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(s.scalars(q))


def listar_tipos_turno(query: str = "", limit: int = 50, offset: int = 0) -> list[TipoTurno]:
    if query:
        return buscar_tipos_turno(query, limit=limit, offset=offset)

    with db_session() as s:
        q = select(TipoTurno).order_by(TipoTurno.creado_el.desc()).limit(limit).offset(offset)
        return list(s.scalars(q))


def obtener_tipo_turno(tipo_turno_id: str) -> TipoTurno | None:
    if not es_uuid_valido(tipo_turno_id):
        return None
    with db_session() as s:
        return s.get(TipoTurno, tipo_turno_id)


def crear_tipo_turno(datos: dict[str, Any]) -> Resultado:
    try:
        with db_session() as s:
            t = TipoTurno(**{k: v for k, v in datos.items() if k in CAMPOS_EDITABLES})
            s.add(t)
            s.flush()
        return Resultado.exito(t)
    except SQLAlchemyError:
        logger.exception("Error al crear tipo de turno")
        return Resultado.fallo("Error al crear el tipo de turno. Por favor, intente nuevamente.")


def actualizar_tipo_turno(tipo_turno_id: str, datos: dict[str, Any]) -> Resultado:
    if not es_uuid_valido(tipo_turno_id):
        return Resultado.fallo("ID de tipo de turno inválido")

    try:
        with db_session() as s:
            t = s.get(TipoTurno, tipo_turno_id)
            if t is None:
                return Resultado.fallo("Tipo de turno no encontrado")
            for campo, valor in datos.items():
                if campo in CAMPOS_EDITABLES:
                    setattr(t, campo, valor)
            t.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(t)
    except SQLAlchemyError:
        logger.exception("Error al actualizar tipo de turno %s", tipo_turno_id)
        return Resultado.fallo("Error al actualizar el tipo de turno. Por favor, intente nuevamente.")


def eliminar_tipo_turno(tipo_turno_id: str) -> Resultado:
    if not es_uuid_valido(tipo_turno_id):
        return Resultado.fallo("ID de tipo de turno inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(TipoTurno).where(TipoTurno.id == tipo_turno_id)).rowcount
        if not borrados:
            return Resultado.fallo("Tipo de turno no encontrado")
        return Resultado.exito()
    except IntegrityError as exc:
        if codigo_integridad(exc) == FK_VIOLATION:
            return Resultado.fallo("No se puede eliminar el tipo de turno porque tiene turnos asociados")
        logger.exception("Error al eliminar tipo de turno %s", tipo_turno_id)
        return Resultado.fallo("Error al eliminar el tipo de turno. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al eliminar tipo de turno %s", tipo_turno_id)
        return Resultado.fallo("Error al eliminar el tipo de turno. Por favor, intente nuevamente.")
