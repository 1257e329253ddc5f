"""
Identity client: the auth collaborator used by the notes view-model.

Talks to the /auth endpoints and holds the signed-in session. One instance
is created per process and passed to whatever needs the bearer token;
call aclose() on shutdown.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when the identity service rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass
class User:
    user_id: str
    email: str
    access_token: str


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list) and detail:
        # FastAPI validation errors
        return str(detail[0].get("msg", "Invalid request"))
    if detail:
        return str(detail)
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


class IdentityClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        session_path: Optional[Path] = None,
        auth_prefix: str = "/auth",
    ):
        self._http = http
        self._prefix = auth_prefix.rstrip("/")
        self._session_path = session_path
        self._user: Optional[User] = self._load_session()

    # ── Session ──────────────────────────────────────────

    def current_user(self) -> Optional[User]:
        return self._user

    def _load_session(self) -> Optional[User]:
        if self._session_path is None or not self._session_path.exists():
            return None
        try:
            raw = json.loads(self._session_path.read_text(encoding="utf-8"))
            return User(user_id=raw["user_id"], email=raw["email"], access_token=raw["access_token"])
        except (OSError, ValueError, KeyError):
            logger.warning("Ignoring unreadable session file %s", self._session_path)
            return None

    def _start_session(self, body: dict, remember: bool) -> User:
        user = User(
            user_id=body["user"]["user_id"],
            email=body["user"]["email"],
            access_token=body["access_token"],
        )
        self._user = user
        if remember and self._session_path is not None:
            self._session_path.parent.mkdir(parents=True, exist_ok=True)
            self._session_path.write_text(json.dumps(asdict(user)), encoding="utf-8")
        return user

    # ── Calls ────────────────────────────────────────────

    async def _post(self, path: str, payload: dict) -> dict:
        response = await self._http.post(f"{self._prefix}{path}", json=payload)
        if response.status_code >= 400:
            raise AuthError(_error_message(response), response.status_code)
        return response.json()

    async def signup(self, email: str, password: str) -> dict:
        """Register a new account; it stays unusable until confirmed."""
        return await self._post("/signup", {"email": email, "password": password})

    async def confirm(self, token: str, remember: bool = False) -> User:
        """Confirm a signup; this also signs the user in."""
        body = await self._post("/confirm", {"token": token})
        return self._start_session(body, remember)

    async def login(self, email: str, password: str, remember: bool = False) -> User:
        body = await self._post("/login", {"email": email, "password": password})
        return self._start_session(body, remember)

    async def logout(self) -> None:
        # tokens are stateless; forgetting them ends the session
        self._user = None
        if self._session_path is not None:
            self._session_path.unlink(missing_ok=True)

    def bearer_token(self) -> str:
        if self._user is None:
            raise AuthError("Not signed in", 401)
        return self._user.access_token

    async def aclose(self) -> None:
        await self._http.aclose()
