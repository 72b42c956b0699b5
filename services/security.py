from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
import re

import logging
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from core.config import settings
from db.database import get_database
from models.caller import Caller
from models.role import Role
from repositories.base import BaseRepository


password_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)
logger = logging.getLogger(__name__)

ROLES_COLLECTION = "roles"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return password_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return password_context.hash(password)


def create_access_token(subject: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = subject.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def token_for(user: Role) -> str:
    # The role claim is what grants admin rights; nothing compares emails
    return create_access_token({"sub": str(user.id or user.email), "email": user.email, "role": user.role})


def decode_caller(token: str) -> Caller:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        logger.warning("auth.jwt_error")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    subject: str | None = payload.get("sub")
    if not subject:
        logger.error("auth.token_missing_subject")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Caller(id=subject, is_admin=payload.get("role") == "admin", email=payload.get("email"))


async def get_user_by_email(email: str) -> Optional[Role]:
    db = await get_database()
    repo = BaseRepository(db)
    # Case-insensitive exact match on email to avoid login failures due to casing
    email_ci = {"$regex": f"^{re.escape(str(email))}$", "$options": "i"}
    doc = await repo.find_one(ROLES_COLLECTION, {"email": email_ci})
    if not doc:
        logger.warning("auth.user_not_found", extra={"email": email})
        return None
    return Role(**doc)


async def get_caller(
    token: Optional[str] = Depends(oauth2_scheme),
    client_id: Optional[str] = Header(default=None, alias="X-Client-Id"),
) -> Caller:
    """Credentialed callers come from the bearer token, anonymous ones from X-Client-Id."""
    if token:
        return decode_caller(token)
    if client_id and client_id.strip():
        return Caller(id=client_id.strip(), is_admin=False)
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Caller identity required",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        logger.warning("auth.admin_required", extra={"caller_id": caller.id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return caller
