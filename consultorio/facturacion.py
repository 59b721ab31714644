"""
Facturas y pagos.

Los importes se manejan siempre como Decimal. Una factura pasa a 'paid'
solo cuando la suma de sus pagos alcanza el monto, y esa comparación se
hace en la misma transacción que inserta el pago, con la factura bloqueada.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Numeric, and_, case, func, select, type_coerce
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db import db_session
from .errors import FK_VIOLATION, Resultado, codigo_integridad, es_uuid_valido
from .models import EstadoFactura, Factura, Pago, Paciente, ahora

logger = logging.getLogger(__name__)

CENTAVOS = Decimal("0.01")
CERO = Decimal("0.00")


def parse_monto(valor: Any) -> Decimal | None:
    """'1500,50' / '1500.50' / 1500 -> Decimal('1500.50'); None si no es un importe positivo."""
    if valor is None or isinstance(valor, bool):
        return None
    texto = str(valor).strip().replace(",", ".")
    if not texto:
        return None
    try:
        monto = Decimal(texto)
    except InvalidOperation:
        return None
    if not monto.is_finite() or monto <= 0:
        return None
    return monto.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def _suma(columna):
    # SUM sobre Numeric: en SQLite vuelve como float, así se convierte a Decimal
    return type_coerce(func.coalesce(func.sum(columna), 0), Numeric(14, 2))


# =========================
# Facturas
# =========================
def obtener_factura(factura_id: str) -> Factura | None:
    if not es_uuid_valido(factura_id):
        return None
    with db_session() as s:
        return s.get(Factura, factura_id)


def listar_facturas(
    paciente_id: str | None = None,
    estado: EstadoFactura | str | None = None,
    desde: date | None = None,
    hasta: date | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[dict]:
    condiciones = []
    if paciente_id and es_uuid_valido(paciente_id):
        condiciones.append(Factura.paciente_id == paciente_id)
    if estado:
        try:
            condiciones.append(Factura.estado == EstadoFactura(estado))
        except ValueError:
            return []
    if desde:
        condiciones.append(Factura.fecha >= desde)
    if hasta:
        condiciones.append(Factura.fecha <= hasta)

    pagado = (
        select(Pago.factura_id, _suma(Pago.monto).label("total_pagado"))
        .group_by(Pago.factura_id)
        .subquery()
    )
    q = (
        select(
            Factura,
            Paciente.nombre.label("paciente_nombre"),
            Paciente.apellido.label("paciente_apellido"),
            pagado.c.total_pagado,
        )
        .outerjoin(Paciente, Paciente.id == Factura.paciente_id)
        .outerjoin(pagado, pagado.c.factura_id == Factura.id)
    )
    if condiciones:
        q = q.where(and_(*condiciones))
    q = q.order_by(Factura.fecha.desc(), Factura.creado_el.desc()).limit(limit).offset(offset)

    with db_session() as s:
        rows = s.execute(q).all()
        out = []
        for r in rows:
            fila = r.Factura.a_dict()
            fila["paciente_nombre"] = r.paciente_nombre
            fila["paciente_apellido"] = r.paciente_apellido
            fila["total_pagado"] = str(r.total_pagado if r.total_pagado is not None else CERO)
            out.append(fila)
        return out


def crear_factura(
    paciente_id: str, monto: Any, notas: str | None = None, fecha: date | None = None
) -> Resultado:
    if not es_uuid_valido(paciente_id):
        return Resultado.fallo("ID de paciente inválido")
    importe = parse_monto(monto)
    if importe is None:
        return Resultado.fallo("El monto debe ser un número mayor a cero")

    try:
        with db_session() as s:
            f = Factura(paciente_id=paciente_id, monto=importe, notas=notas, estado=EstadoFactura.PENDIENTE)
            if fecha:
                f.fecha = fecha
            s.add(f)
            s.flush()
        logger.info("Factura %s creada por %s", f.id, importe)
        return Resultado.exito(f)
    except IntegrityError as exc:
        if codigo_integridad(exc) == FK_VIOLATION:
            return Resultado.fallo("El paciente seleccionado no existe")
        logger.exception("Error al crear factura")
        return Resultado.fallo("Error al crear factura")
    except SQLAlchemyError:
        logger.exception("Error al crear factura")
        return Resultado.fallo("Error al crear factura")


def anular_factura(factura_id: str) -> Resultado:
    if not es_uuid_valido(factura_id):
        return Resultado.fallo("ID de factura inválido")

    try:
        with db_session() as s:
            f = s.get(Factura, factura_id)
            if f is None:
                return Resultado.fallo("Factura no encontrada")
            if f.estado != EstadoFactura.PENDIENTE:
                return Resultado.fallo("Solo se pueden anular facturas pendientes")
            f.estado = EstadoFactura.ANULADA
            f.actualizado_el = ahora()
        return Resultado.exito(f)
    except SQLAlchemyError:
        logger.exception("Error al anular la factura %s", factura_id)
        return Resultado.fallo("Error al anular la factura. Por favor, intente nuevamente.")


# =========================
# Pagos
# =========================
def listar_pagos(factura_id: str) -> list[Pago]:
    if not es_uuid_valido(factura_id):
        return []
    with db_session() as s:
        q = select(Pago).where(Pago.factura_id == factura_id).order_by(Pago.fecha.desc(), Pago.creado_el.desc())
        return list(s.scalars(q))


def _pagado(s: Session, factura_id: str) -> Decimal:
    return s.scalar(select(_suma(Pago.monto)).where(Pago.factura_id == factura_id)) or CERO


def total_pagado(factura_id: str) -> Decimal:
    if not es_uuid_valido(factura_id):
        return CERO
    with db_session() as s:
        return _pagado(s, factura_id)


def _factura_bloqueada(s: Session, factura_id: str) -> Factura | None:
    # FOR UPDATE: dos pagos simultáneos no pueden leer la misma suma
    return s.scalars(select(Factura).where(Factura.id == factura_id).with_for_update()).first()


def _insertar_pago(s: Session, f: Factura, monto: Decimal, metodo: str | None, fecha: date | None) -> Pago:
    p = Pago(factura_id=f.id, monto=monto, metodo=metodo)
    if fecha:
        p.fecha = fecha
    s.add(p)
    s.flush()

    suma = _pagado(s, f.id)
    if f.estado == EstadoFactura.PENDIENTE and suma >= f.monto:
        f.estado = EstadoFactura.PAGADA
        f.actualizado_el = ahora()
        logger.info("Factura %s saldada (%s / %s)", f.id, suma, f.monto)
    return p


def registrar_pago(factura_id: str, monto: Any, metodo: str | None = None, fecha: date | None = None) -> Resultado:
    if not es_uuid_valido(factura_id):
        return Resultado.fallo("ID de factura inválido")
    importe = parse_monto(monto)
    if importe is None:
        return Resultado.fallo("El monto debe ser un número mayor a cero")

    try:
        with db_session() as s:
            f = _factura_bloqueada(s, factura_id)
            if f is None:
                return Resultado.fallo("Factura no encontrada")
            if f.estado == EstadoFactura.ANULADA:
                return Resultado.fallo("No se pueden registrar pagos en una factura anulada")
            p = _insertar_pago(s, f, importe, metodo, fecha)
        return Resultado.exito(p)
    except SQLAlchemyError:
        logger.exception("Error al registrar pago de la factura %s", factura_id)
        return Resultado.fallo("Error al registrar pago")


def saldar_factura(factura_id: str, metodo: str | None = None) -> Resultado:
    """Registra un pago por el saldo pendiente; el cambio a 'paid' lo decide la suma de pagos."""
    if not es_uuid_valido(factura_id):
        return Resultado.fallo("ID de factura inválido")

    try:
        with db_session() as s:
            f = _factura_bloqueada(s, factura_id)
            if f is None:
                return Resultado.fallo("Factura no encontrada")
            if f.estado == EstadoFactura.ANULADA:
                return Resultado.fallo("No se pueden registrar pagos en una factura anulada")
            if f.estado == EstadoFactura.PAGADA:
                return Resultado.fallo("La factura ya está pagada")

            saldo = (f.monto - _pagado(s, f.id)).quantize(CENTAVOS)
            if saldo <= 0:
                # pagos previos ya cubren el monto
                f.estado = EstadoFactura.PAGADA
                f.actualizado_el = ahora()
                return Resultado.exito(f)
            _insertar_pago(s, f, saldo, metodo, None)
        return Resultado.exito(f)
    except SQLAlchemyError:
        logger.exception("Error al saldar la factura %s", factura_id)
        return Resultado.fallo("Error al registrar pago")


# =========================
# Reporte
# =========================
def reporte_facturacion(desde: date | None = None, hasta: date | None = None) -> dict[str, Any]:
    """Cantidad de facturas, total facturado y total de las facturas pagadas en el período."""
    condiciones = []
    if desde:
        condiciones.append(Factura.fecha >= desde)
    if hasta:
        condiciones.append(Factura.fecha <= hasta)

    pagadas = case((Factura.estado == EstadoFactura.PAGADA, Factura.monto), else_=0)
    q = select(func.count(Factura.id), _suma(Factura.monto), _suma(pagadas))
    if condiciones:
        q = q.where(and_(*condiciones))

    with db_session() as s:
        cantidad, facturado, pagado = s.execute(q).one()
    return {
        "cantidad": cantidad or 0,
        "total_facturado": facturado or CERO,
        "total_pagado": pagado or CERO,
    }
