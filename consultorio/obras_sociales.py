from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .consultas import busqueda_valida, ilike_cualquiera
from .db import db_session
from .errors import FK_VIOLATION, UNIQUE_VIOLATION, Resultado, codigo_integridad, es_uuid_valido
from .models import ObraSocial, ahora

logger = logging.getLogger(__name__)

CAMPOS_EDITABLES = {"nombre", "codigo", "descripcion", "telefono", "email", "sitio_web", "activa"}


def buscar_obras_sociales(
    query: str = "", limit: int = 20, offset: int = 0, activa: bool | None = None
) -> list[ObraSocial]:
    """Busca por nombre o código; `activa` filtra además por estado."""
    if not busqueda_valida(query):
        return []

    condiciones = [ilike_cualquiera([ObraSocial.nombre, ObraSocial.codigo], query)]
    if activa is not None:
        condiciones.append(ObraSocial.activa.is_(activa))

    with db_session() as s:
        q = (
            select(ObraSocial)
            .where(and_(*condiciones))
            .order_by(ObraSocial.creado_el.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(s.scalars(q))


def listar_obras_sociales(
    query: str = "", limit: int = 50, offset: int = 0, activa: bool | None = None
) -> list[ObraSocial]:
    if query:
        return buscar_obras_sociales(query, limit=limit, offset=offset, activa=activa)

    with db_session() as s:
        q = select(ObraSocial)
        if activa is not None:
            q = q.where(ObraSocial.activa.is_(activa))
        q = q.order_by(ObraSocial.creado_el.desc()).limit(limit).offset(offset)
        return list(s.scalars(q))


def obtener_obra_social(obra_social_id: str) -> ObraSocial | None:
    if not es_uuid_valido(obra_social_id):
        return None
    with db_session() as s:
        return s.get(ObraSocial, obra_social_id)


def crear_obra_social(datos: dict[str, Any]) -> Resultado:
    try:
        with db_session() as s:
            o = ObraSocial(**{k: v for k, v in datos.items() if k in CAMPOS_EDITABLES})
            s.add(o)
            s.flush()
        return Resultado.exito(o)
    except IntegrityError as exc:
        if codigo_integridad(exc) == UNIQUE_VIOLATION:
            return Resultado.fallo("Ya existe una obra social con ese nombre")
        logger.exception("Error al crear obra social")
        return Resultado.fallo("Error al crear la obra social. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al crear obra social")
        return Resultado.fallo("Error al crear la obra social. Por favor, intente nuevamente.")


def actualizar_obra_social(obra_social_id: str, datos: dict[str, Any]) -> Resultado:
    if not es_uuid_valido(obra_social_id):
        return Resultado.fallo("ID de obra social inválido")

    try:
        with db_session() as s:
            o = s.get(ObraSocial, obra_social_id)
            if o is None:
                return Resultado.fallo("Obra social no encontrada")
            for campo, valor in datos.items():
                if campo in CAMPOS_EDITABLES:
                    setattr(o, campo, valor)
            o.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(o)
    except IntegrityError as exc:
        if codigo_integridad(exc) == UNIQUE_VIOLATION:
            return Resultado.fallo("Ya existe una obra social con ese nombre")
        logger.exception("Error al actualizar obra social %s", obra_social_id)
        return Resultado.fallo("Error al actualizar la obra social. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al actualizar obra social %s", obra_social_id)
        return Resultado.fallo("Error al actualizar la obra social. Por favor, intente nuevamente.")


def eliminar_obra_social(obra_social_id: str) -> Resultado:
    if not es_uuid_valido(obra_social_id):
        return Resultado.fallo("ID de obra social inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(ObraSocial).where(ObraSocial.id == obra_social_id)).rowcount
        if not borrados:
            return Resultado.fallo("Obra social no encontrada")
        return Resultado.exito()
    except IntegrityError as exc:
        if codigo_integridad(exc) == FK_VIOLATION:
            return Resultado.fallo("No se puede eliminar la obra social porque tiene pacientes asociados")
        logger.exception("Error al eliminar obra social %s", obra_social_id)
        return Resultado.fallo("Error al eliminar la obra social. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al eliminar obra social %s", obra_social_id)
        return Resultado.fallo("Error al eliminar la obra social. Por favor, intente nuevamente.")
