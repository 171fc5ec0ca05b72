from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from sqlalchemy.orm import Session

from procarni.auth.jwt import decode_token
from procarni.core.errors import AuthorizationError
from procarni.core.logging_config import logger
from procarni.db import get_db
from procarni.models.user import User

security = HTTPBearer(auto_error=False)  # <- no auto error, we answer 401 with a JSON body ourselves


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if not creds or not creds.credentials:
        logger.warning("auth_rejected", reason="missing_bearer")
        raise AuthorizationError("No autorizado: falta el token de acceso.")

    try:
        payload = decode_token(creds.credentials)
    except PyJWTError:
        logger.warning("auth_rejected", reason="invalid_token")
        raise AuthorizationError("No autorizado: sesión inválida o expirada.")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthorizationError("No autorizado: sesión inválida.")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning("auth_rejected", reason="unknown_user", user_id=user_id)
        raise AuthorizationError("No autorizado: usuario no encontrado o inactivo.")

    return user
