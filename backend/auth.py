from __future__ import annotations

import hashlib
from dataclasses import dataclass

from fastapi import Header, HTTPException

from backend.settings import get_settings


@dataclass(frozen=True)
class Identity:
    id: str
    email: str

    @property
    def name(self) -> str:
        return self.email.split("@")[0].title()


def identity_for_email(email: str) -> Identity:
    clean = email.strip().lower()
    user_id = hashlib.sha256(clean.encode("utf-8")).hexdigest()[:24]
    return Identity(id=user_id, email=clean)


async def require_identity(
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_backend_token: str | None = Header(default=None, alias="X-Backend-Token"),
) -> Identity:
    settings = get_settings()
    if not x_backend_token or x_backend_token != settings.backend_session_secret:
        raise HTTPException(status_code=401, detail="Invalid backend token")
    if not x_user_email or not x_user_email.strip():
        raise HTTPException(status_code=401, detail="Missing user email")
    identity = identity_for_email(x_user_email)
    if settings.allowed_emails and identity.email not in settings.allowed_emails:
        raise HTTPException(status_code=403, detail="User not allowed")
    return identity
