from __future__ import annotations

from sqlalchemy import select

from .db import db_session
from .models import Consultorio, ObraSocial, TipoTurno


def seed_base() -> None:
    """
    Carga datos mínimos (idempotente):
    - tipos de turno
    - consultorios
    - obras sociales
    """
    with db_session() as s:
        # Tipos de turno
        tipos = [
            ("Consulta", 30),
            ("Control", 20),
            ("Primera vez", 45),
        ]
        for nombre, duracion in tipos:
            if s.execute(select(TipoTurno).where(TipoTurno.nombre == nombre)).scalar_one_or_none() is None:
                s.add(TipoTurno(nombre=nombre, duracion_minutos=duracion))

        # Consultorios
        for nombre in ["Consultorio 1", "Consultorio 2"]:
            if s.execute(select(Consultorio).where(Consultorio.nombre == nombre)).scalar_one_or_none() is None:
                s.add(Consultorio(nombre=nombre))

        # Obras sociales
        obras = [
            ("Particular", None),
            ("OSDE", "OSDE"),
            ("PAMI", "PAMI"),
        ]
        for nombre, codigo in obras:
            if s.execute(select(ObraSocial).where(ObraSocial.nombre == nombre)).scalar_one_or_none() is None:
                s.add(ObraSocial(nombre=nombre, codigo=codigo, activa=True))
