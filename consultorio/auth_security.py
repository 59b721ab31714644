from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from consultorio import config

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_token(token: str) -> str:
    return pwd_context.hash(token)


def verify_token_hash(token: str, token_hash: str) -> bool:
    try:
        return pwd_context.verify(token, token_hash)
    except ValueError:
        # hash corrupto o con formato desconocido
        return False


def create_session_token(tipo: str, extra: dict[str, Any] | None = None) -> str:
    """
    Valor firmado que viaja en la cookie de sesión.
    subject: el tipo de token con el que se inició sesión.
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(seconds=config.SESSION_MAX_AGE_SECONDS)

    payload: dict[str, Any] = {
        "sub": tipo,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)

    return jwt.encode(payload, config.SESSION_SECRET, algorithm=config.SESSION_ALG)


def decode_session_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, config.SESSION_SECRET, algorithms=[config.SESSION_ALG])


def get_tipo(token: str | None) -> str | None:
    if not token:
        return None
    try:
        payload = decode_session_token(token)
        return payload.get("sub")
    except JWTError:
        return None
