"""Con la base caída las operaciones devuelven el mensaje genérico, no un 500."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from consultorio import dias_no_laborables, facturacion, medicos

ID = "8f7c1d9e-1111-4a2b-9c3d-000000000000"


@contextmanager
def _sesion_caida():
    raise OperationalError("SELECT 1", {}, Exception("database is locked"))
    yield


@pytest.mark.parametrize(
    "modulo, operacion, mensaje",
    [
        (facturacion, lambda: facturacion.anular_factura(ID), "Error al anular la factura."),
        (medicos, lambda: medicos.quitar_dia_no_laborable(ID), "Error al quitar el día no laborable."),
        (medicos, lambda: medicos.desasociar_tipo_turno(ID), "Error al quitar el tipo de turno."),
        (medicos, lambda: medicos.agregar_dia_no_laborable(ID, date.today()), "Error al agregar el día no laborable."),
        (medicos, lambda: medicos.asociar_tipo_turno(ID, ID), "Error al asociar el tipo de turno."),
        (dias_no_laborables, lambda: dias_no_laborables.quitar_dia(ID), "Error al quitar el día no laborable."),
    ],
)
def test_error_generico_y_log(monkeypatch, caplog, modulo, operacion, mensaje):
    monkeypatch.setattr(modulo, "db_session", _sesion_caida)

    with caplog.at_level(logging.ERROR, logger=modulo.__name__):
        resultado = operacion()

    assert not resultado.ok
    assert resultado.error == f"{mensaje} Por favor, intente nuevamente."
    assert any(r.exc_info for r in caplog.records)


def test_anular_por_la_api(monkeypatch, auth_client):
    monkeypatch.setattr(facturacion, "db_session", _sesion_caida)

    r = auth_client.post("/dashboard/listados/facturacion", data={"intent": "cancelInvoice", "factura_id": ID})
    assert r.status_code == 200
    assert r.json()["error"] == "Error al anular la factura. Por favor, intente nuevamente."
