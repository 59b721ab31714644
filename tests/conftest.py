"""
Fixtures compartidas.

La base de los tests es un SQLite temporal: la variable DATABASE_URL tiene que
estar definida antes de importar el paquete, porque el engine se crea al importar.
"""
from __future__ import annotations

import os
import tempfile
from datetime import date, time
from typing import Callable

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="consultorio-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.sqlite')}"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["APP_ENV"] = "test"

from fastapi.testclient import TestClient  # noqa: E402

from consultorio import auth_models, models  # noqa: E402,F401
from consultorio.api_main import app  # noqa: E402
from consultorio.auth_service import crear_token  # noqa: E402
from consultorio.db import Base, engine  # noqa: E402
from consultorio.consultorios import crear_consultorio  # noqa: E402
from consultorio.medicos import crear_medico  # noqa: E402
from consultorio.obras_sociales import crear_obra_social  # noqa: E402
from consultorio.pacientes import crear_paciente  # noqa: E402
from consultorio.tipos_turno import crear_tipo_turno  # noqa: E402
from consultorio.turnos import crear_turno  # noqa: E402

TOKEN_ADMIN = "token-de-prueba"


# ============================================================================
# BASE DE DATOS
# ============================================================================


@pytest.fixture(autouse=True)
def db():
    """Tablas limpias en cada test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# ============================================================================
# CLIENTE HTTP
# ============================================================================


@pytest.fixture
def client() -> TestClient:
    """Cliente sin sesión (no ejecuta el startup de la app)."""
    return TestClient(app)


@pytest.fixture
def auth_client(client: TestClient) -> TestClient:
    """Cliente con la cookie de sesión de un token 'admin'."""
    crear_token("admin", TOKEN_ADMIN)
    r = client.post("/login", data={"password": TOKEN_ADMIN}, follow_redirects=False)
    assert r.status_code == 303
    return client


# ============================================================================
# DATOS
# ============================================================================


@pytest.fixture
def nuevo_paciente() -> Callable:
    contador = iter(range(1, 10_000))

    def _crear(**datos):
        n = next(contador)
        base = {"nombre": "Ana", "apellido": "García", "numero_documento": f"3000000{n}"}
        base.update(datos)
        resultado = crear_paciente(base)
        assert resultado.ok, resultado.error
        return resultado.data

    return _crear


@pytest.fixture
def nuevo_medico() -> Callable:
    def _crear(**datos):
        base = {"nombre": "Juan", "apellido": "Pérez", "numero_documento": "20111222", "especialidad": "Clínica"}
        base.update(datos)
        resultado = crear_medico(base)
        assert resultado.ok, resultado.error
        return resultado.data

    return _crear


@pytest.fixture
def un_consultorio():
    resultado = crear_consultorio({"nombre": "Consultorio 1"})
    assert resultado.ok
    return resultado.data


@pytest.fixture
def tipo_turno():
    resultado = crear_tipo_turno({"nombre": "Consulta", "duracion_minutos": 30})
    assert resultado.ok
    return resultado.data


@pytest.fixture
def obra_social():
    resultado = crear_obra_social({"nombre": "OSDE", "codigo": "OSDE"})
    assert resultado.ok
    return resultado.data


@pytest.fixture
def nuevo_turno() -> Callable:
    def _crear(paciente_id: str, fecha: date | None = None, hora: time | None = None, **datos):
        base = {"paciente_id": paciente_id, "fecha": fecha or date.today(), "hora": hora or time(9, 0)}
        base.update(datos)
        resultado = crear_turno(base)
        assert resultado.ok, resultado.error
        return resultado.data

    return _crear
