from __future__ import annotations

from pydantic import BaseModel

from sitestock.app.db.models.core_types import Role


class Actor(BaseModel):
    """Identité issue du token signé (jamais des headers bruts)."""

    user_id: int
    name: str
    role: Role


class TokenRead(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
