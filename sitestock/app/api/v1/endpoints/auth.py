from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.config import settings
from sitestock.app.core.security import create_access_token, get_current_user, verify_password
from sitestock.app.db.models.models_v1 import User
from sitestock.app.schemas.auth import Actor, TokenRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


@router.post("/token", response_model=TokenRead)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.execute(select(User).where(User.email == payload.email.lower())).scalar_one_or_none()
    if not user or not user.active or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return TokenRead(
        access_token=create_access_token(user),
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )


@router.get("/me", response_model=Actor)
def me(actor: Actor = Depends(get_current_user)):
    return actor
