from __future__ import annotations

import logging
from datetime import date, time
from typing import Any

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .db import db_session
from .errors import FK_VIOLATION, UNIQUE_VIOLATION, Resultado, codigo_integridad, es_uuid_valido, menciona
from .models import Consultorio, EstadoTurno, Medico, Paciente, TipoTurno, Turno, ahora

logger = logging.getLogger(__name__)

LIMITE_LISTADO = 100

CAMPOS_EDITABLES = {
    "paciente_id",
    "medico_id",
    "consultorio_id",
    "tipo_turno_id",
    "fecha",
    "hora",
    "estado",
    "sobre_turno",
    "notas",
    "hora_recepcion",
    "motivo_inasistencia",
    "seguimiento_inasistencia",
}

# columna FK -> mensaje para el formulario
_MENSAJES_FK = {
    "paciente_id": "El paciente seleccionado no existe",
    "medico_id": "El médico seleccionado no existe",
    "consultorio_id": "El consultorio seleccionado no existe",
    "tipo_turno_id": "El tipo de turno seleccionado no existe",
}


def _error_integridad(exc: IntegrityError, accion: str) -> Resultado:
    code = codigo_integridad(exc)
    if code == FK_VIOLATION:
        for columna, mensaje in _MENSAJES_FK.items():
            if menciona(exc, columna):
                return Resultado.fallo(mensaje)
        return Resultado.fallo("Uno de los datos seleccionados no es válido")
    if code == UNIQUE_VIOLATION:
        return Resultado.fallo("Ya existe un turno con estos datos")

    logger.exception("Error al %s turno", accion)
    return Resultado.fallo(f"Error al {accion} el turno. Por favor, intente nuevamente.")


def _hhmm(valor: time | None) -> str | None:
    return valor.strftime("%H:%M") if valor else None


# =========================
# Lectura
# =========================
def obtener_turno(turno_id: str) -> Turno | None:
    if not es_uuid_valido(turno_id):
        return None
    with db_session() as s:
        return s.get(Turno, turno_id)


def listar_turnos(
    fecha: date | None = None,
    desde: date | None = None,
    hasta: date | None = None,
    medico_id: str | None = None,
    paciente_id: str | None = None,
    estado: EstadoTurno | str | None = None,
    obra_social: str | None = None,
    limit: int = LIMITE_LISTADO,
    offset: int = 0,
) -> list[dict]:
    """
    Versión 'flat' de los turnos con paciente, médico, consultorio y tipo.
    Ordenados por hora y luego por fecha.
    """
    condiciones = []
    if fecha:
        condiciones.append(Turno.fecha == fecha)
    else:
        if desde:
            condiciones.append(Turno.fecha >= desde)
        if hasta:
            condiciones.append(Turno.fecha <= hasta)
    if medico_id:
        condiciones.append(Turno.medico_id == medico_id)
    if paciente_id:
        condiciones.append(Turno.paciente_id == paciente_id)
    if estado:
        try:
            condiciones.append(Turno.estado == EstadoTurno(estado))
        except ValueError:
            return []
    if obra_social:
        condiciones.append(Paciente.obra_social == obra_social)

    q = (
        select(
            Turno,
            Paciente.nombre.label("paciente_nombre"),
            Paciente.apellido.label("paciente_apellido"),
            Paciente.numero_documento.label("paciente_documento"),
            Paciente.numero_historia_clinica.label("paciente_hc"),
            Paciente.obra_social.label("obra_social"),
            Medico.nombre.label("medico_nombre"),
            Medico.apellido.label("medico_apellido"),
            Medico.especialidad.label("medico_especialidad"),
            Consultorio.nombre.label("consultorio_nombre"),
            TipoTurno.nombre.label("tipo_turno_nombre"),
            TipoTurno.duracion_minutos.label("tipo_turno_duracion"),
        )
        .outerjoin(Paciente, Paciente.id == Turno.paciente_id)
        .outerjoin(Medico, Medico.id == Turno.medico_id)
        .outerjoin(Consultorio, Consultorio.id == Turno.consultorio_id)
        .outerjoin(TipoTurno, TipoTurno.id == Turno.tipo_turno_id)
    )
    if condiciones:
        q = q.where(and_(*condiciones))
    q = q.order_by(Turno.hora.asc(), Turno.fecha.asc()).limit(limit).offset(offset)

    with db_session() as s:
        rows = s.execute(q).all()
        return [
            {
                "id": r.Turno.id,
                "fecha": r.Turno.fecha.isoformat(),
                "hora": _hhmm(r.Turno.hora),
                "estado": r.Turno.estado.value,
                "sobre_turno": r.Turno.sobre_turno,
                "notas": r.Turno.notas,
                "hora_recepcion": _hhmm(r.Turno.hora_recepcion),
                "motivo_inasistencia": r.Turno.motivo_inasistencia,
                "seguimiento_inasistencia": r.Turno.seguimiento_inasistencia,
                "paciente_id": r.Turno.paciente_id,
                "paciente_nombre": r.paciente_nombre,
                "paciente_apellido": r.paciente_apellido,
                "paciente_documento": r.paciente_documento,
                "paciente_hc": r.paciente_hc,
                "obra_social": r.obra_social,
                "medico_id": r.Turno.medico_id,
                "medico_nombre": r.medico_nombre,
                "medico_apellido": r.medico_apellido,
                "medico_especialidad": r.medico_especialidad,
                "consultorio_id": r.Turno.consultorio_id,
                "consultorio_nombre": r.consultorio_nombre,
                "tipo_turno_id": r.Turno.tipo_turno_id,
                "tipo_turno_nombre": r.tipo_turno_nombre,
                "tipo_turno_duracion": r.tipo_turno_duracion,
            }
            for r in rows
        ]


# =========================
# Alta / modificación / baja
# =========================
def crear_turno(datos: dict[str, Any]) -> Resultado:
    """Nuevo turno: queda 'scheduled' y no es sobreturno salvo que se indique."""
    datos = {k: v for k, v in datos.items() if k in CAMPOS_EDITABLES}
    datos.setdefault("estado", EstadoTurno.PROGRAMADO)
    datos.setdefault("sobre_turno", False)
    if not datos.get("paciente_id") or not datos.get("fecha") or not datos.get("hora"):
        return Resultado.fallo("Paciente, fecha y hora son obligatorios")

    try:
        with db_session() as s:
            t = Turno(**datos)
            s.add(t)
            s.flush()
        logger.info("Turno %s creado para el paciente %s", t.id, t.paciente_id)
        return Resultado.exito(t)
    except IntegrityError as exc:
        return _error_integridad(exc, "crear")
    except SQLAlchemyError:
        logger.exception("Error al crear turno")
        return Resultado.fallo("Error al crear el turno. Por favor, intente nuevamente.")


def actualizar_turno(turno_id: str, cambios: dict[str, Any]) -> Resultado:
    """
    Patch parcial restringido a las columnas conocidas.
    El estado solo cambia desde 'scheduled': atendido, cancelado y ausente son finales.
    """
    if not es_uuid_valido(turno_id):
        return Resultado.fallo("ID de turno inválido")

    cambios = {k: v for k, v in cambios.items() if k in CAMPOS_EDITABLES}
    if "estado" in cambios:
        try:
            cambios["estado"] = EstadoTurno(cambios["estado"])
        except ValueError:
            return Resultado.fallo("Estado de turno inválido")

    try:
        with db_session() as s:
            t = s.get(Turno, turno_id)
            if t is None:
                return Resultado.fallo("Turno no encontrado")

            nuevo = cambios.get("estado", t.estado)
            if nuevo != t.estado and t.estado != EstadoTurno.PROGRAMADO:
                return Resultado.fallo("Solo se puede cambiar el estado de un turno programado")

            for campo, valor in cambios.items():
                setattr(t, campo, valor)
            t.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(t)
    except IntegrityError as exc:
        return _error_integridad(exc, "actualizar")
    except SQLAlchemyError:
        logger.exception("Error al actualizar turno %s", turno_id)
        return Resultado.fallo("Error al actualizar el turno. Por favor, intente nuevamente.")


def eliminar_turno(turno_id: str) -> Resultado:
    if not es_uuid_valido(turno_id):
        return Resultado.fallo("ID de turno inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(Turno).where(Turno.id == turno_id)).rowcount
        if not borrados:
            return Resultado.fallo("Turno no encontrado")
        return Resultado.exito()
    except SQLAlchemyError:
        logger.exception("Error al eliminar turno %s", turno_id)
        return Resultado.fallo("Error al eliminar el turno. Por favor, intente nuevamente.")


# =========================
# Ciclo de vida
# =========================
def marcar_atendido(turno_id: str, hora_recepcion: time | None = None) -> Resultado:
    cambios: dict[str, Any] = {"estado": EstadoTurno.ATENDIDO}
    if hora_recepcion is not None:
        cambios["hora_recepcion"] = hora_recepcion
    return actualizar_turno(turno_id, cambios)


def cancelar_turno(turno_id: str, notas: str | None = None) -> Resultado:
    """Cancela sin tocar paciente, médico, fecha ni hora: el turno queda como registro."""
    cambios: dict[str, Any] = {"estado": EstadoTurno.CANCELADO}
    if notas is not None:
        cambios["notas"] = notas
    return actualizar_turno(turno_id, cambios)


def marcar_inasistencia(turno_id: str, motivo: str | None = None, seguimiento: str | None = None) -> Resultado:
    cambios: dict[str, Any] = {"estado": EstadoTurno.AUSENTE}
    if motivo is not None:
        cambios["motivo_inasistencia"] = motivo
    if seguimiento is not None:
        cambios["seguimiento_inasistencia"] = seguimiento
    return actualizar_turno(turno_id, cambios)
