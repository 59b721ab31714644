from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select

from consultorio.auth_models import Token
from consultorio.auth_security import hash_token, verify_token_hash
from consultorio.db import db_session
from consultorio.instituciones import primera_institucion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InfoUsuario:
    nombre_usuario: str
    nombre_institucion: str
    nombre_consultorio: str


def crear_token(tipo: str, token: str) -> str:
    """Crea (o reemplaza) el token de acceso de un tipo."""
    tipo = tipo.strip()
    if not tipo or not token:
        raise ValueError("Tipo y token son obligatorios.")

    with db_session() as s:
        borrados = s.execute(delete(Token).where(Token.tipo == tipo)).rowcount
        if borrados:
            logger.warning("Ya existía un token de tipo %r: se reemplaza", tipo)

        t = Token(tipo=tipo, token_hash=hash_token(token))
        s.add(t)
        s.flush()
        return t.id


def verificar_token(token: str) -> str | None:
    """
    Compara el token ingresado contra todos los registrados.
    Devuelve el tipo del token que coincide, o None.
    """
    if not token:
        return None

    with db_session() as s:
        registros = list(s.scalars(select(Token)))

    for t in registros:
        if verify_token_hash(token, t.token_hash):
            return t.tipo
    return None


def info_usuario(tipo: str | None) -> InfoUsuario:
    """Nombres a mostrar en la UI a partir del tipo de token de la sesión."""
    institucion = primera_institucion()

    return InfoUsuario(
        nombre_usuario=tipo or "Usuario",
        nombre_institucion=institucion.nombre if institucion else "Institución",
        nombre_consultorio="Consultorio",
    )
