from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .consultas import busqueda_valida, ilike_cualquiera
from .db import db_session
from .errors import FK_VIOLATION, UNIQUE_VIOLATION, Resultado, codigo_integridad, es_uuid_valido, menciona
from .models import Medico, MedicoDiaNoLaborable, MedicoTipoTurno, TipoTurno, ahora

logger = logging.getLogger(__name__)

CAMPOS_EDITABLES = {
    "nombre",
    "apellido",
    "tipo_documento",
    "numero_documento",
    "matricula",
    "especialidad",
    "practica",
    "foto_url",
    "firma_url",
    "plantilla_atencion",
    "ventana_atencion_inicio",
    "ventana_atencion_fin",
}


# =========================
# Médicos
# =========================
def buscar_medicos(query: str = "", limit: int = 20, offset: int = 0) -> list[Medico]:
    """Busca por nombre, apellido, documento, matrícula, especialidad o práctica."""
    if not busqueda_valida(query):
        return []

    columnas = [
        Medico.nombre,
        Medico.apellido,
        Medico.numero_documento,
        Medico.matricula,
        Medico.especialidad,
        Medico.practica,
    ]
    with db_session() as s:
        q = (
            select(Medico)
            .where(ilike_cualquiera(columnas, query))
            .order_by(Medico.creado_el.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(s.scalars(q))


def listar_medicos(query: str = "", limit: int = 50, offset: int = 0) -> list[Medico]:
    if query:
        return buscar_medicos(query, limit=limit, offset=offset)

    with db_session() as s:
        q = select(Medico).order_by(Medico.creado_el.desc()).limit(limit).offset(offset)
        return list(s.scalars(q))


def obtener_medico(medico_id: str) -> Medico | None:
    if not es_uuid_valido(medico_id):
        return None
    with db_session() as s:
        return s.get(Medico, medico_id)


def crear_medico(datos: dict[str, Any]) -> Resultado:
    datos = {k: v for k, v in datos.items() if k in CAMPOS_EDITABLES}
    try:
        with db_session() as s:
            m = Medico(**datos)
            s.add(m)
            s.flush()
        return Resultado.exito(m)
    except SQLAlchemyError:
        logger.exception("Error al crear médico")
        return Resultado.fallo("Error al crear el médico. Por favor, intente nuevamente.")


def actualizar_medico(medico_id: str, datos: dict[str, Any]) -> Resultado:
    if not es_uuid_valido(medico_id):
        return Resultado.fallo("ID de médico inválido")

    try:
        with db_session() as s:
            m = s.get(Medico, medico_id)
            if m is None:
                return Resultado.fallo("Médico no encontrado")
            for campo, valor in datos.items():
                if campo in CAMPOS_EDITABLES:
                    setattr(m, campo, valor)
            m.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(m)
    except SQLAlchemyError:
        logger.exception("Error al actualizar médico %s", medico_id)
        return Resultado.fallo("Error al actualizar el médico. Por favor, intente nuevamente.")


def eliminar_medico(medico_id: str) -> Resultado:
    """Los días no laborables y los tipos de turno asociados se borran en cascada."""
    if not es_uuid_valido(medico_id):
        return Resultado.fallo("ID de médico inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(Medico).where(Medico.id == medico_id)).rowcount
        if not borrados:
            return Resultado.fallo("Médico no encontrado")
        return Resultado.exito()
    except IntegrityError as exc:
        if codigo_integridad(exc) == FK_VIOLATION:
            return Resultado.fallo("No se puede eliminar el médico porque tiene turnos asociados")
        logger.exception("Error al eliminar médico %s", medico_id)
        return Resultado.fallo("Error al eliminar el médico. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al eliminar médico %s", medico_id)
        return Resultado.fallo("Error al eliminar el médico. Por favor, intente nuevamente.")


# =========================
# Días no laborables del médico
# =========================
def listar_dias_no_laborables(
    medico_id: str, desde: date | None = None, hasta: date | None = None
) -> list[MedicoDiaNoLaborable]:
    if not es_uuid_valido(medico_id):
        return []

    condiciones = [MedicoDiaNoLaborable.medico_id == medico_id]
    if desde:
        condiciones.append(MedicoDiaNoLaborable.fecha >= desde)
    if hasta:
        condiciones.append(MedicoDiaNoLaborable.fecha <= hasta)

    with db_session() as s:
        q = select(MedicoDiaNoLaborable).where(and_(*condiciones)).order_by(MedicoDiaNoLaborable.fecha.desc())
        return list(s.scalars(q))


def agregar_dia_no_laborable(medico_id: str, fecha: date, motivo: str | None = None) -> Resultado:
    if not es_uuid_valido(medico_id):
        return Resultado.fallo("ID de médico inválido")

    try:
        with db_session() as s:
            d = MedicoDiaNoLaborable(medico_id=medico_id, fecha=fecha, motivo=motivo)
            s.add(d)
            s.flush()
        return Resultado.exito(d)
    except IntegrityError as exc:
        code = codigo_integridad(exc)
        if code == UNIQUE_VIOLATION:
            return Resultado.fallo("Este día ya está marcado como no laborable para el médico")
        if code == FK_VIOLATION:
            return Resultado.fallo("El médico seleccionado no existe")
        logger.exception("Error al agregar día no laborable del médico %s", medico_id)
        return Resultado.fallo("Error al agregar el día no laborable. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al agregar día no laborable del médico %s", medico_id)
        return Resultado.fallo("Error al agregar el día no laborable. Por favor, intente nuevamente.")


def quitar_dia_no_laborable(dia_id: str) -> Resultado:
    if not es_uuid_valido(dia_id):
        return Resultado.fallo("ID inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(MedicoDiaNoLaborable).where(MedicoDiaNoLaborable.id == dia_id)).rowcount
    except SQLAlchemyError:
        logger.exception("Error al quitar día no laborable %s", dia_id)
        return Resultado.fallo("Error al quitar el día no laborable. Por favor, intente nuevamente.")
    if not borrados:
        return Resultado.fallo("Día no laborable no encontrado")
    return Resultado.exito()


# =========================
# Tipos de turno que atiende el médico
# =========================
def listar_tipos_turno_del_medico(medico_id: str) -> list[dict]:
    if not es_uuid_valido(medico_id):
        return []

    with db_session() as s:
        rows = s.execute(
            select(MedicoTipoTurno.id, MedicoTipoTurno.medico_id, TipoTurno)
            .join(TipoTurno, TipoTurno.id == MedicoTipoTurno.tipo_turno_id)
            .where(MedicoTipoTurno.medico_id == medico_id)
            .order_by(TipoTurno.nombre)
        ).all()
        return [
            {
                "id": r.id,
                "medico_id": r.medico_id,
                "tipo_turno_id": r.TipoTurno.id,
                "tipo_turno": {
                    "id": r.TipoTurno.id,
                    "nombre": r.TipoTurno.nombre,
                    "descripcion": r.TipoTurno.descripcion,
                    "duracion_minutos": r.TipoTurno.duracion_minutos,
                },
            }
            for r in rows
        ]


def asociar_tipo_turno(medico_id: str, tipo_turno_id: str) -> Resultado:
    if not es_uuid_valido(medico_id):
        return Resultado.fallo("ID de médico inválido")
    if not es_uuid_valido(tipo_turno_id):
        return Resultado.fallo("ID de tipo de turno inválido")

    try:
        with db_session() as s:
            rel = MedicoTipoTurno(medico_id=medico_id, tipo_turno_id=tipo_turno_id)
            s.add(rel)
            s.flush()
        return Resultado.exito(rel)
    except IntegrityError as exc:
        code = codigo_integridad(exc)
        if code == UNIQUE_VIOLATION:
            return Resultado.fallo("Este tipo de turno ya está asociado al médico")
        if code == FK_VIOLATION:
            if menciona(exc, "medico_id"):
                return Resultado.fallo("El médico seleccionado no existe")
            if menciona(exc, "tipo_turno_id"):
                return Resultado.fallo("El tipo de turno seleccionado no existe")
            return Resultado.fallo("Uno de los datos seleccionados no es válido")
        logger.exception("Error al asociar tipo de turno %s al médico %s", tipo_turno_id, medico_id)
        return Resultado.fallo("Error al asociar el tipo de turno. Por favor, intente nuevamente.")
    except SQLAlchemyError:
        logger.exception("Error al asociar tipo de turno %s al médico %s", tipo_turno_id, medico_id)
        return Resultado.fallo("Error al asociar el tipo de turno. Por favor, intente nuevamente.")


def desasociar_tipo_turno(asociacion_id: str) -> Resultado:
    if not es_uuid_valido(asociacion_id):
        return Resultado.fallo("ID inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(MedicoTipoTurno).where(MedicoTipoTurno.id == asociacion_id)).rowcount
    except SQLAlchemyError:
        logger.exception("Error al quitar tipo de turno asociado %s", asociacion_id)
        return Resultado.fallo("Error al quitar el tipo de turno. Por favor, intente nuevamente.")
    if not borrados:
        return Resultado.fallo("Asociación no encontrada")
    return Resultado.exito()
