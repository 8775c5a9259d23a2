from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.config import settings
from sitestock.app.core.errors import PermissionDenied
from sitestock.app.db.models.core_types import Role
from sitestock.app.db.models.models_v1 import User
from sitestock.app.schemas.auth import Actor

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# auto_error=False : on renvoie nous-mêmes un 401 homogène
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user: User) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "name": user.name,
        "role": user.role.value,
        "exp": expires,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Actor:
    """Décode le token et recharge l'utilisateur (un compte désactivé perd l'accès)."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise _unauthorized("Invalid or expired token")

    user = db.get(User, user_id)
    if not user or not user.active:
        raise _unauthorized("User inactive or unknown")

    return Actor(user_id=user.id, name=user.name, role=user.role)


def require_role(*roles: Role) -> Callable[..., Actor]:
    allowed = set(roles)

    def _checker(actor: Actor = Depends(get_current_user)) -> Actor:
        if actor.role not in allowed:
            raise PermissionDenied(
                f"Role {actor.role.value} is not allowed to perform this action",
                field="role",
            )
        return actor

    return _checker
