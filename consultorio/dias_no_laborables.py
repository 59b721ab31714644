"""Días no laborables de la institución (feriados, cierres)."""
from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .db import db_session
from .errors import UNIQUE_VIOLATION, Resultado, codigo_integridad, es_uuid_valido
from .models import InstitucionDiaNoLaborable

logger = logging.getLogger(__name__)


def listar_dias(desde: date | None = None, hasta: date | None = None) -> list[InstitucionDiaNoLaborable]:
    condiciones = []
    if desde:
        condiciones.append(InstitucionDiaNoLaborable.fecha >= desde)
    if hasta:
        condiciones.append(InstitucionDiaNoLaborable.fecha <= hasta)

    with db_session() as s:
        q = select(InstitucionDiaNoLaborable)
        if condiciones:
            q = q.where(and_(*condiciones))
        return list(s.scalars(q.order_by(InstitucionDiaNoLaborable.fecha)))


def agregar_dia(fecha: date, motivo: str | None = None) -> Resultado:
    try:
        with db_session() as s:
            d = InstitucionDiaNoLaborable(fecha=fecha, motivo=motivo)
            s.add(d)
            s.flush()
        return Resultado.exito(d)
    except IntegrityError as exc:
        if codigo_integridad(exc) == UNIQUE_VIOLATION:
            return Resultado.fallo("Este día ya está marcado como no laborable")
        logger.exception("Error al agregar día no laborable %s", fecha)
        return Resultado.fallo("Error al agregar el día no laborable. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al agregar día no laborable %s", fecha)
        return Resultado.fallo("Error al agregar el día no laborable. Por favor, intente nuevamente.")


def quitar_dia(dia_id: str) -> Resultado:
    if not es_uuid_valido(dia_id):
        return Resultado.fallo("ID inválido")

    try:
        with db_session() as s:
            borrados = s.execute(
                delete(InstitucionDiaNoLaborable).where(InstitucionDiaNoLaborable.id == dia_id)
            ).rowcount
    except SQLAlchemyError:
        logger.exception("Error al quitar día no laborable %s", dia_id)
        return Resultado.fallo("Error al quitar el día no laborable. Por favor, intente nuevamente.")
    if not borrados:
        return Resultado.fallo("Día no laborable no encontrado")
    return Resultado.exito()
