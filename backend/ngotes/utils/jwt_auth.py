from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ngotes import config
from ngotes.errors import Unauthorized

bearer = HTTPBearer(auto_error=False)

ACCESS = "access"
CONFIRM = "confirm"


def _encode(claims: dict, minutes: int) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=minutes)
    payload = {**claims, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, config.jwt_secret(), algorithm=config.jwt_algorithm())


def create_access_token(subject: str, email: str | None = None) -> str:
    claims = {"sub": subject, "purpose": ACCESS}
    if email:
        claims["email"] = email
    return _encode(claims, config.access_token_minutes())


def create_confirmation_token(email: str) -> str:
    return _encode({"sub": email, "purpose": CONFIRM}, config.confirm_token_minutes())


def decode_token(token: str, purpose: str = ACCESS) -> dict:
    """Decode a token and check its purpose. Raises JWTError when invalid."""
    payload = jwt.decode(token, config.jwt_secret(), algorithms=[config.jwt_algorithm()])
    if payload.get("purpose", ACCESS) != purpose:
        raise JWTError("Wrong token purpose")
    return payload


def get_current_claims(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> dict:
    """
    Caller claims from `Authorization: Bearer <token>`.

    - no header -> 401 "No authorization token provided"
    - bad signature, expired, wrong purpose or no `sub` -> 401
    """
    if creds is None or creds.scheme.lower() != "bearer":
        raise Unauthorized()
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise Unauthorized("Invalid or expired token")
    if not payload.get("sub"):
        raise Unauthorized("Invalid token")
    return payload


def get_current_user(claims: dict = Depends(get_current_claims)) -> str:
    return str(claims["sub"])
