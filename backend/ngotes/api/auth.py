from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError

from ngotes import config
from ngotes.models.auth import ConfirmRequest, LoginRequest, SignupRequest, TokenResponse, UserOut
from ngotes.storage.users_store import UserRecord, UsersStore
from ngotes.utils.auth_hash import hash_password, verify_password
from ngotes.utils.jwt_auth import CONFIRM, create_access_token, create_confirmation_token, decode_token, get_current_claims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _log_confirmation(email: str, token: str) -> None:
    # no mailer: the link is left in the log for the operator
    logger.info("confirmation link for %s: /#confirmation_token=%s", email, token)


# swapped out by deployments (and tests) that deliver the token elsewhere
confirmation_sender: Callable[[str, str], None] = _log_confirmation


def get_users() -> UsersStore:
    return UsersStore(config.data_dir())


def _token_response(rec: UserRecord) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(subject=rec.user_id, email=rec.email),
        user=UserOut(user_id=rec.user_id, email=rec.email),
    )


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserOut)
def signup(req: SignupRequest, users: UsersStore = Depends(get_users)) -> UserOut:
    if users.get(req.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email address has already been registered")

    rec = users.create(req.email, hash_password(req.password))
    confirmation_sender(rec.email, create_confirmation_token(rec.email))
    logger.info("user signed up user=%s", rec.user_id)
    return UserOut(user_id=rec.user_id, email=rec.email)


@router.post("/confirm", response_model=TokenResponse)
def confirm(req: ConfirmRequest, users: UsersStore = Depends(get_users)) -> TokenResponse:
    try:
        payload = decode_token(req.token, purpose=CONFIRM)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired confirmation token")

    rec = users.confirm(str(payload.get("sub", "")))
    if rec is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _token_response(rec)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, users: UsersStore = Depends(get_users)) -> TokenResponse:
    rec = users.get(req.email)
    if rec is None or not verify_password(req.password, rec.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    if not rec.confirmed:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Email not confirmed")

    return _token_response(rec)


@router.get("/user", response_model=UserOut)
def current_user(claims: dict = Depends(get_current_claims)) -> UserOut:
    return UserOut(user_id=str(claims["sub"]), email=str(claims.get("email", "")))
