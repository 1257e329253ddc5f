"""Password hashing helpers using passlib.

Used by the signup/login flow of the identity endpoints:
- hash_password(plain: str) -> str
- verify_password(plain: str, hashed: str) -> bool

bcrypt is preferred. When the installed bcrypt backend cannot be
initialized, pbkdf2_sha256 is used instead. The cost can be set with
`BCRYPT_ROUNDS`.
"""
from __future__ import annotations

import logging

from passlib.context import CryptContext

from ngotes import config

logger = logging.getLogger(__name__)


def _build_context(rounds: int | None) -> CryptContext:
    try:
        if rounds:
            ctx = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        else:
            ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")
        ctx.hash("probe")
        return ctx
    except Exception as exc:
        logger.warning("bcrypt backend unavailable, falling back to pbkdf2_sha256: %s", exc)

    if rounds:
        return CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto", pbkdf2_sha256__rounds=rounds)
    return CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


pwd_context = _build_context(config.bcrypt_rounds())


def hash_password(plain: str) -> str:
    """Hash a plaintext password and return the encoded hash string."""
    if plain is None:
        raise ValueError("Password must not be None")
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against a stored hash.

    Malformed hashes count as a mismatch.
    """
    if plain is None or hashed is None:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False
