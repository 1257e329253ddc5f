from __future__ import annotations

from typing import Any, Optional

import httpx

from ngotes.client.identity import IdentityClient


class RequestError(Exception):
    """Raised when the notes endpoint answers with status 0."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotesAPI:
    """Thin wrapper over the /notes endpoints returning decoded envelopes."""

    def __init__(self, http: httpx.AsyncClient, identity: IdentityClient, prefix: str = "/notes"):
        self._http = http
        self._identity = identity
        self._prefix = prefix.rstrip("/")

    async def request(self, method: str, note_id: Optional[str] = None, body: Optional[dict] = None,
                      params: Optional[dict] = None) -> dict[str, Any]:
        url = f"{self._prefix}/{note_id}" if note_id else self._prefix
        headers = {"Authorization": f"Bearer {self._identity.bearer_token()}"}

        response = await self._http.request(method, url, headers=headers, json=body, params=params)
        try:
            res = response.json()
        except ValueError:
            raise RequestError(f"Unexpected response ({response.status_code})", response.status_code)

        if not isinstance(res, dict) or not res.get("status"):
            message = res.get("message") if isinstance(res, dict) else None
            raise RequestError(message or f"Request failed ({response.status_code})", response.status_code)
        return res

    async def list_notes(self, offset: int = 0, limit: int = 0) -> dict[str, Any]:
        params = {}
        if offset:
            params["offset"] = offset
        if limit:
            params["limit"] = limit
        return await self.request("GET", params=params or None)

    async def create_note(self, title: str, content: str = "", pinned: bool = False) -> dict[str, Any]:
        return await self.request("POST", body={"title": title, "content": content, "pinned": pinned})

    async def update_note(self, note_id: str, **fields: Any) -> dict[str, Any]:
        return await self.request("PATCH", note_id, body=fields)

    async def delete_note(self, note_id: str) -> dict[str, Any]:
        return await self.request("DELETE", note_id)
