"""
Listados y reportes del dashboard.

Todo sale de `turnos.listar_turnos` (filas 'flat') y se resume en memoria:
los volúmenes por listado están acotados por el límite de cada consulta.
"""
from __future__ import annotations

import csv
import io
from collections import Counter
from datetime import date
from typing import Iterable

from sqlalchemy import select

from .db import db_session
from .models import EstadoTurno, Medico, MedicoDiaNoLaborable
from .pacientes import contar_pacientes
from .turnos import listar_turnos

LIMITE_REPORTE = 200
LIMITE_PANEL = 500


def _nombre(nombre: str | None, apellido: str | None) -> str:
    return f"{nombre or ''} {apellido or ''}".strip()


def _fecha_es(iso: str) -> str:
    return date.fromisoformat(iso).strftime("%d/%m/%Y")


# =========================
# Panel de control
# =========================
def panel_control(hoy: date | None = None) -> dict[str, int]:
    hoy = hoy or date.today()
    turnos = listar_turnos(fecha=hoy, limit=LIMITE_PANEL)
    por_estado = Counter(t["estado"] for t in turnos)
    return {
        "turnos_hoy": len(turnos),
        "programados": por_estado[EstadoTurno.PROGRAMADO.value],
        "atendidos": por_estado[EstadoTurno.ATENDIDO.value],
        "cancelados": por_estado[EstadoTurno.CANCELADO.value],
        "ausentes": por_estado[EstadoTurno.AUSENTE.value],
        "total_pacientes": contar_pacientes(),
    }


# =========================
# Listados de turnos
# =========================
def pool_atencion(fecha: date | None = None, medico_id: str | None = None) -> list[dict]:
    """Turnos del día (hoy si no se indica), opcionalmente de un médico."""
    return listar_turnos(fecha=fecha or date.today(), medico_id=medico_id or None, limit=LIMITE_REPORTE)


def agenda_medico(medico_id: str | None, fecha: date | None = None) -> list[dict]:
    if not medico_id:
        return []
    return listar_turnos(fecha=fecha or date.today(), medico_id=medico_id, limit=LIMITE_REPORTE)


def pacientes_atendidos(fecha: date | None = None, medico_id: str | None = None) -> list[dict]:
    return listar_turnos(
        fecha=fecha, medico_id=medico_id or None, estado=EstadoTurno.ATENDIDO, limit=LIMITE_REPORTE
    )


def pacientes_no_atendidos(fecha: date | None = None, medico_id: str | None = None) -> list[dict]:
    return listar_turnos(
        fecha=fecha, medico_id=medico_id or None, estado=EstadoTurno.AUSENTE, limit=LIMITE_REPORTE
    )


def pacientes_por_obra_social(fecha: date | None = None, obra_social: str | None = None) -> dict:
    """
    Pacientes atendidos agrupados por obra social, de mayor a menor.
    top3_porcentaje: qué parte del total concentran las tres primeras (redondeado).
    """
    turnos = listar_turnos(
        fecha=fecha, obra_social=obra_social or None, estado=EstadoTurno.ATENDIDO, limit=LIMITE_REPORTE
    )
    conteo = Counter(t["obra_social"] or "Sin obra social" for t in turnos)
    por_os = [{"obra_social": os_, "cantidad": n} for os_, n in conteo.most_common()]

    total = sum(r["cantidad"] for r in por_os)
    top3 = sum(r["cantidad"] for r in por_os[:3])
    return {
        "turnos": turnos,
        "por_obra_social": por_os,
        "resumen": {
            "total_atendidos": total,
            "cantidad_os": len(por_os),
            "top3_porcentaje": round(top3 * 100 / total) if total else 0,
        },
    }


def turnos_anulados(
    fecha: date | None = None,
    desde: date | None = None,
    hasta: date | None = None,
    medico_id: str | None = None,
) -> dict:
    """Turnos cancelados con total y cantidad por médico. Una fecha exacta pisa el rango."""
    if fecha:
        desde = hasta = None
    turnos = listar_turnos(
        fecha=fecha,
        desde=desde,
        hasta=hasta,
        medico_id=medico_id or None,
        estado=EstadoTurno.CANCELADO,
        limit=LIMITE_PANEL,
    )
    conteo = Counter(
        _nombre(t["medico_nombre"], t["medico_apellido"]) if t["medico_id"] else "Sin médico" for t in turnos
    )
    return {
        "turnos": turnos,
        "resumen": {
            "total": len(turnos),
            "por_medico": [{"medico": m, "cantidad": n} for m, n in conteo.most_common()],
        },
    }


# =========================
# Disponibilidad de médicos
# =========================
def disponibilidad_medicos(hoy: date | None = None) -> list[dict]:
    """Por médico: días no laborables cargados y cuántos quedan por delante (desde hoy)."""
    hoy = hoy or date.today()
    with db_session() as s:
        medicos = list(s.scalars(select(Medico).order_by(Medico.apellido, Medico.nombre).limit(100)))
        dias = s.execute(select(MedicoDiaNoLaborable.medico_id, MedicoDiaNoLaborable.fecha)).all()

    total: Counter = Counter()
    futuros: Counter = Counter()
    for medico_id, fecha in dias:
        total[medico_id] += 1
        if fecha >= hoy:
            futuros[medico_id] += 1

    return [
        {
            "medico_id": m.id,
            "medico": _nombre(m.nombre, m.apellido),
            "especialidad": m.especialidad,
            "dias_no_laborables": total[m.id],
            "dias_futuros": futuros[m.id],
        }
        for m in medicos
    ]


# =========================
# CSV
# =========================
def a_csv(encabezados: list[str], filas: Iterable[list]) -> str:
    """CSV para Excel: BOM UTF-8, todas las celdas entre comillas."""
    buf = io.StringIO()
    buf.write("\ufeff")
    w = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    w.writerow(encabezados)
    for fila in filas:
        w.writerow(["" if c is None else c for c in fila])
    return buf.getvalue()


def csv_pacientes_atendidos(turnos: list[dict]) -> str:
    return a_csv(
        ["Fecha", "Hora", "Paciente", "DNI", "HC", "Médico"],
        (
            [
                _fecha_es(t["fecha"]),
                t["hora"],
                _nombre(t["paciente_nombre"], t["paciente_apellido"]),
                t["paciente_documento"],
                t["paciente_hc"],
                _nombre(t["medico_nombre"], t["medico_apellido"]),
            ]
            for t in turnos
        ),
    )


def csv_turnos_anulados(turnos: list[dict]) -> str:
    return a_csv(
        ["Fecha", "Hora", "Paciente", "DNI", "Médico", "Motivo / Notas"],
        (
            [
                _fecha_es(t["fecha"]),
                t["hora"],
                _nombre(t["paciente_nombre"], t["paciente_apellido"]),
                t["paciente_documento"],
                _nombre(t["medico_nombre"], t["medico_apellido"]),
                t["notas"],
            ]
            for t in turnos
        ),
    )
