from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
import logging
from fastapi.security import OAuth2PasswordRequestForm

from models.caller import Caller
from schemas.auth import Token, UserDisplay
from services.security import (
    get_caller,
    get_user_by_email,
    token_for,
    verify_password,
)


router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/auth/login", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends()) -> Token:
    username = (form_data.username or "").strip()
    logger.info("auth.login_attempt", extra={"email": username})
    user = await get_user_by_email(username)
    if not user:
        logger.warning("auth.login_user_not_found", extra={"email": username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    if not verify_password(form_data.password, user.hashed_password):
        logger.warning("auth.login_invalid_password", extra={"email": username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    logger.info("auth.login_success", extra={"email": user.email, "role": user.role})
    return Token(access_token=token_for(user))


@router.get("/users/me", response_model=UserDisplay)
async def read_users_me(caller: Caller = Depends(get_caller)) -> UserDisplay:
    return UserDisplay(user_id=caller.id, email=caller.email, is_admin=caller.is_admin)
