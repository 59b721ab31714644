from __future__ import annotations

import sys

import pytest

from consultorio import cli, consultorios, obras_sociales, tipos_turno
from consultorio.auth_service import verificar_token
from consultorio.pacientes import obtener_paciente_por_documento
from consultorio.seed import seed_base


def _correr(monkeypatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["consultorio", *args])
    cli.main()


def test_seed_idempotente():
    seed_base()
    seed_base()
    assert {t.nombre for t in tipos_turno.listar_tipos_turno()} == {"Consulta", "Control", "Primera vez"}
    assert len(consultorios.listar_consultorios()) == 2
    assert {o.nombre for o in obras_sociales.listar_obras_sociales()} == {"Particular", "OSDE", "PAMI"}


def test_init_y_listado(monkeypatch, capsys):
    _correr(monkeypatch, "init")
    _correr(monkeypatch, "list", "tipos_turno")
    salida = capsys.readouterr().out
    assert "Base inicializada" in salida
    assert "Primera vez (45 min)" in salida


def test_create_token(monkeypatch, capsys):
    _correr(monkeypatch, "create-token", "--tipo", "recepcion", "--token", "abc123")
    assert "recepcion" in capsys.readouterr().out
    assert verificar_token("abc123") == "recepcion"
    assert verificar_token("otro") is None


def test_add_patient_y_duplicado(monkeypatch, capsys):
    _correr(monkeypatch, "add-patient", "--nombre", "Ana", "--apellido", "Gil", "--documento", "777")
    assert obtener_paciente_por_documento("777") is not None

    _correr(monkeypatch, "add-patient", "--nombre", "Otra", "--apellido", "Gil", "--documento", "777")
    assert "Ya existe un paciente con ese número de documento" in capsys.readouterr().out


def test_attend_turno_inexistente(monkeypatch, capsys):
    _correr(monkeypatch, "attend", "--turno-id", "8f7c1d9e-1111-4a2b-9c3d-000000000000")
    assert "Turno no encontrado" in capsys.readouterr().out


def test_billing_report(monkeypatch, capsys, nuevo_paciente):
    from consultorio.facturacion import crear_factura

    crear_factura(nuevo_paciente().id, "150,5")
    _correr(monkeypatch, "billing-report")
    salida = capsys.readouterr().out
    assert "Facturas: 1" in salida
    assert "Total facturado: 150.50" in salida
    assert "Total pagado: 0.00" in salida


def test_sin_comando(monkeypatch):
    with pytest.raises(SystemExit):
        _correr(monkeypatch)
