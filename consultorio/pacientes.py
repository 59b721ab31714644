from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .consultas import busqueda_valida, ilike_cualquiera
from .db import db_session
from .errors import FK_VIOLATION, UNIQUE_VIOLATION, Resultado, codigo_integridad, es_uuid_valido, menciona
from .models import Paciente, ahora

logger = logging.getLogger(__name__)

FILTROS = ("all", "name", "document", "hc", "insurance")

CAMPOS_EDITABLES = {
    "nombre",
    "apellido",
    "tipo_documento",
    "numero_documento",
    "fecha_nacimiento",
    "genero",
    "telefono",
    "whatsapp",
    "email",
    "direccion",
    "numero_historia_clinica",
    "obra_social",
    "numero_afiliado",
}


def _columnas(filtro: str) -> list:
    if filtro == "name":
        return [Paciente.nombre, Paciente.apellido]
    if filtro == "document":
        return [Paciente.numero_documento]
    if filtro == "hc":
        return [Paciente.numero_historia_clinica]
    if filtro == "insurance":
        return [Paciente.obra_social]
    return [
        Paciente.nombre,
        Paciente.apellido,
        Paciente.numero_documento,
        Paciente.numero_historia_clinica,
        Paciente.obra_social,
    ]


def buscar_pacientes(query: str = "", limit: int = 20, offset: int = 0, filtro: str = "all") -> list[Paciente]:
    """
    Busca pacientes por nombre, documento, HC u obra social.
    Con el filtro "document" alcanza con un carácter, el resto pide dos.
    """
    if filtro not in FILTROS:
        filtro = "all"
    if not busqueda_valida(query, 1 if filtro == "document" else 2):
        return []

    with db_session() as s:
        q = (
            select(Paciente)
            .where(ilike_cualquiera(_columnas(filtro), query))
            .order_by(Paciente.creado_el.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(s.scalars(q))


def listar_pacientes(query: str = "", limit: int = 50, offset: int = 0, filtro: str = "all") -> list[Paciente]:
    if query:
        return buscar_pacientes(query, limit=limit, offset=offset, filtro=filtro)

    with db_session() as s:
        q = select(Paciente).order_by(Paciente.creado_el.desc()).limit(limit).offset(offset)
        return list(s.scalars(q))


def contar_pacientes() -> int:
    with db_session() as s:
        return s.scalar(select(func.count()).select_from(Paciente)) or 0


def obtener_paciente(paciente_id: str) -> Paciente | None:
    if not es_uuid_valido(paciente_id):
        return None
    with db_session() as s:
        return s.get(Paciente, paciente_id)


def obtener_paciente_por_documento(numero_documento: str) -> Paciente | None:
    with db_session() as s:
        return s.scalars(select(Paciente).where(Paciente.numero_documento == numero_documento).limit(1)).first()


def obtener_paciente_por_hc(numero_historia_clinica: str) -> Paciente | None:
    with db_session() as s:
        q = select(Paciente).where(Paciente.numero_historia_clinica == numero_historia_clinica).limit(1)
        return s.scalars(q).first()


def _error_integridad(exc: IntegrityError, accion: str) -> Resultado:
    code = codigo_integridad(exc)
    if code == UNIQUE_VIOLATION:
        if menciona(exc, "numero_historia_clinica"):
            return Resultado.fallo("Ya existe un paciente con ese número de historia clínica")
        return Resultado.fallo("Ya existe un paciente con ese número de documento")
    if code == FK_VIOLATION:
        return Resultado.fallo("La obra social seleccionada no existe")

    logger.exception("Error al %s paciente", accion)
    return Resultado.fallo(f"Error al {accion} el paciente. Por favor, intente nuevamente.")


def crear_paciente(datos: dict[str, Any]) -> Resultado:
    datos = {k: v for k, v in datos.items() if k in CAMPOS_EDITABLES}
    try:
        with db_session() as s:
            p = Paciente(**datos)
            s.add(p)
            s.flush()
        return Resultado.exito(p)
    except IntegrityError as exc:
        return _error_integridad(exc, "crear")
    except SQLAlchemyError:
        logger.exception("Error al crear paciente")
        return Resultado.fallo("Error al crear el paciente. Por favor, intente nuevamente.")


def actualizar_paciente(paciente_id: str, datos: dict[str, Any]) -> Resultado:
    if not es_uuid_valido(paciente_id):
        return Resultado.fallo("ID de paciente inválido")

    try:
        with db_session() as s:
            p = s.get(Paciente, paciente_id)
            if p is None:
                return Resultado.fallo("Paciente no encontrado")
            for campo, valor in datos.items():
                if campo in CAMPOS_EDITABLES:
                    setattr(p, campo, valor)
            p.actualizado_el = ahora()
            s.flush()
        return Resultado.exito(p)
    except IntegrityError as exc:
        return _error_integridad(exc, "actualizar")
    except SQLAlchemyError:
        logger.exception("Error al actualizar paciente %s", paciente_id)
        return Resultado.fallo("Error al actualizar el paciente. Por favor, intente nuevamente.")


def eliminar_paciente(paciente_id: str) -> Resultado:
    """Borrado físico: los turnos y facturas del paciente se borran en cascada."""
    if not es_uuid_valido(paciente_id):
        return Resultado.fallo("ID de paciente inválido")

    try:
        with db_session() as s:
            borrados = s.execute(delete(Paciente).where(Paciente.id == paciente_id)).rowcount
        if not borrados:
            return Resultado.fallo("Paciente no encontrado")
        return Resultado.exito()
    except SQLAlchemyError:
        logger.exception("Error al eliminar paciente %s", paciente_id)
        return Resultado.fallo("Error al eliminar el paciente. Por favor, intente nuevamente.")
