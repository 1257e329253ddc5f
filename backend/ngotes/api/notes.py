import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ngotes import config
from ngotes.errors import NotesError, ValidationError
from ngotes.models.notes import NoteCreate, NoteOut, NoteUpdate
from ngotes.storage.notes_store import NotesStore
from ngotes.utils.jwt_auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


@dataclass(frozen=True)
class RequestContext:
    user_id: str
    timestamp: int


def envelope(status_code: int, user_id: Optional[str], timestamp: int, **payload: Any) -> JSONResponse:
    """Uniform response body: status flag, caller, server timestamp, payload.

    Payload keys set to None are left out.
    """
    body: dict[str, Any] = {"status": 1 if status_code < 400 else 0}
    if user_id is not None:
        body["user_id"] = user_id
    body["timestamp"] = timestamp
    body.update({k: v for k, v in payload.items() if v is not None})
    return JSONResponse(status_code=status_code, content=body)


def error_envelope(request: Request, status_code: int, message: str) -> JSONResponse:
    ctx: Optional[RequestContext] = getattr(request.state, "context", None)
    if ctx is None:
        return envelope(status_code, None, _now(), message=message)
    return envelope(status_code, ctx.user_id, ctx.timestamp, message=message)


def notes_error_envelope(request: Request, exc: NotesError) -> JSONResponse:
    return error_envelope(request, exc.status_code, exc.message)


def get_context(request: Request, user_id: str = Depends(get_current_user)) -> RequestContext:
    ctx = RequestContext(user_id=user_id, timestamp=_now())
    request.state.context = ctx
    return ctx


def get_store(ctx: RequestContext = Depends(get_context)) -> Iterator[NotesStore]:
    # one connection per request, released on every exit path
    store = NotesStore(config.data_dir() / config.db_name())
    try:
        store.connect()
        yield store
    finally:
        store.close()


@router.get("")
def list_notes(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=0, ge=0, description="0 means no limit"),
    ctx: RequestContext = Depends(get_context),
    store: NotesStore = Depends(get_store),
) -> JSONResponse:
    notes = store.find(owner=ctx.user_id, offset=offset, limit=limit)
    data = [NoteOut(**n.to_public()).model_dump() for n in notes]
    return envelope(200, ctx.user_id, ctx.timestamp, data=data)


@router.post("", status_code=201)
def create_note(
    payload: Optional[NoteCreate] = None,
    ctx: RequestContext = Depends(get_context),
    store: NotesStore = Depends(get_store),
) -> JSONResponse:
    payload = payload or NoteCreate()
    if not payload.title:
        raise ValidationError('Note "title" not specified')

    note = store.insert_one(
        owner=ctx.user_id,
        title=payload.title,
        content=payload.content,
        pinned=payload.pinned,
        timestamp=ctx.timestamp,
    )
    logger.info("note created user=%s note=%s", ctx.user_id, note.id)

    return envelope(
        201, ctx.user_id, ctx.timestamp,
        message="Note inserted successfully",
        inserted_id=note.id,
    )


@router.api_route("/{note_id}", methods=["PATCH", "PUT"])
def update_note(
    note_id: UUID,
    payload: Optional[NoteUpdate] = None,
    ctx: RequestContext = Depends(get_context),
    store: NotesStore = Depends(get_store),
) -> JSONResponse:
    fields = payload.supplied() if payload else {}
    if not fields:
        raise ValidationError('At least specify one of "title", "content" or "pinned" to update')
    if "title" in fields and not fields["title"]:
        raise ValidationError('Note "title" must not be empty')

    nid = str(note_id)
    modified = store.update_one(nid, owner=ctx.user_id, fields=fields, timestamp=ctx.timestamp)
    if modified:
        logger.info("note updated user=%s note=%s fields=%s", ctx.user_id, nid, sorted(fields))

    return envelope(
        200, ctx.user_id, ctx.timestamp,
        message="Note updated successfully" if modified else "No notes are updated",
        updated_id=nid if modified else None,
    )


@router.delete("/{note_id}")
def delete_note(
    note_id: UUID,
    ctx: RequestContext = Depends(get_context),
    store: NotesStore = Depends(get_store),
) -> JSONResponse:
    nid = str(note_id)
    deleted = store.delete_one(nid, owner=ctx.user_id)
    if deleted:
        logger.info("note deleted user=%s note=%s", ctx.user_id, nid)

    return envelope(
        200, ctx.user_id, ctx.timestamp,
        message="Note deleted successfully" if deleted else "No notes are deleted",
        deleted_id=nid if deleted else None,
    )
