"""
Notes view-model: the state behind the notes UI.

State changes only after a request resolves successfully, and observers
registered with subscribe() are called after every change. Failed requests
leave the notes untouched; their message is logged and kept in
`last_error` (or shown in the relevant modal).
"""
from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional

import httpx

from ngotes.client.api import NotesAPI, RequestError
from ngotes.client.identity import AuthError, IdentityClient
from ngotes.client.text import (
    is_savable,
    is_valid_email,
    is_valid_password,
    join_note_text,
    split_note_text,
    truncate,
)
from ngotes.ordering import sort_notes

logger = logging.getLogger(__name__)

_HASH_TOKEN = re.compile(r"(confirmation|recovery)_token=([^&]+)")


@dataclass
class NoteView:
    id: str
    title: str
    content: str = ""
    pinned: bool = False
    created: int = 0
    last_modified: int = 0

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> "NoteView":
        return cls(
            id=str(raw["id"]),
            title=raw["title"],
            content=raw.get("content", ""),
            pinned=bool(raw.get("pinned", False)),
            created=int(raw.get("created", 0)),
            last_modified=int(raw.get("lastModified", 0)),
        )

    def preview(self, max_length: int = 150) -> str:
        """Shortened content for the note list."""
        return truncate(self.content, max_length)


@dataclass
class EntryModal:
    email: str = ""
    password: str = ""
    remember: bool = False
    message: Optional[str] = None


@dataclass
class NewNoteDraft:
    text: str = ""

    @property
    def savable(self) -> bool:
        return is_savable(self.text)


@dataclass
class EditNoteModal:
    note_id: Optional[str] = None
    # title + "\n" + content
    value: str = ""
    value_changed: bool = False
    message: Optional[str] = None

    @property
    def savable(self) -> bool:
        return is_savable(self.value)


@dataclass
class DeleteNoteModal:
    note_id: Optional[str] = None
    note_title: str = ""


Observer = Callable[["NotesViewModel"], None]


class NotesViewModel:
    def __init__(self, identity: IdentityClient, api: NotesAPI):
        self.identity = identity
        self.api = api

        self.entry_modal = EntryModal()
        self.email: Optional[str] = None
        self.notes: Optional[list[NoteView]] = None
        self.fetching_notes = False
        self.new_note = NewNoteDraft()
        self.edit_modal = EditNoteModal()
        self.delete_modal = DeleteNoteModal()
        self.last_error: Optional[str] = None

        self._observers: list[Observer] = []

    # ── Observers ────────────────────────────────────────

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register `observer`; returns a function that unregisters it."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def _changed(self) -> None:
        for observer in list(self._observers):
            observer(self)

    def _failed(self, action: str, exc: Exception) -> None:
        message = getattr(exc, "message", str(exc))
        logger.error("%s failed: %s", action, message)
        self.last_error = message
        self._changed()

    def _find(self, note_id: str) -> Optional[NoteView]:
        for note in self.notes or []:
            if note.id == note_id:
                return note
        return None

    # ── Session ──────────────────────────────────────────

    async def init(self, url_hash: str = "") -> None:
        """Start-up: confirm a signup from the URL hash, or resume a stored session."""
        match = _HASH_TOKEN.search(re.sub(r"^#/?", "", url_hash or ""))
        if match:
            if match.group(1) == "confirmation":
                self.entry_modal.message = "Checking user confirmation token …"
                self._changed()
                try:
                    user = await self.identity.confirm(match.group(2), self.entry_modal.remember)
                except AuthError as exc:
                    self.entry_modal.message = exc.message
                    self._changed()
                    return
                self.entry_modal.message = None
                self.email = user.email
                self._changed()
                await self.fetch_notes()
            return

        user = self.identity.current_user()
        if user is not None:
            self.email = user.email
            self._changed()
            await self.fetch_notes()

    def validate(self) -> bool:
        """Check e-mail/password format before calling the identity service."""
        if not is_valid_email(self.entry_modal.email):
            self.entry_modal.message = "Invalid email address"
        elif not is_valid_password(self.entry_modal.password):
            self.entry_modal.message = "Password must be between 6-24 characters"
        else:
            return True
        self._changed()
        return False

    async def login(self) -> bool:
        if not self.validate():
            return False
        entry = self.entry_modal
        try:
            user = await self.identity.login(entry.email, entry.password, entry.remember)
        except AuthError as exc:
            entry.message = exc.message
            self._changed()
            return False

        entry.message = None
        entry.password = ""
        self.email = user.email
        self._changed()
        await self.fetch_notes()
        return True

    async def signup(self) -> bool:
        if not self.validate():
            return False
        entry = self.entry_modal
        try:
            await self.identity.signup(entry.email, entry.password)
        except AuthError as exc:
            entry.message = exc.message
            self._changed()
            return False

        entry.message = "A verification link has been sent to your email, open it up to activate your account"
        self._changed()
        return True

    async def logout(self) -> None:
        await self.identity.logout()
        self.email = None
        self.notes = None
        self._changed()

    # ── Notes ────────────────────────────────────────────

    async def fetch_notes(self) -> None:
        self.fetching_notes = True
        self._changed()
        try:
            res = await self.api.list_notes()
            self.notes = sort_notes(NoteView.from_wire(n) for n in res.get("data", []))
            self.last_error = None
        except (RequestError, AuthError) as exc:
            self._failed("fetch notes", exc)
        finally:
            self.fetching_notes = False
            self._changed()

    async def create_note(self) -> Optional[NoteView]:
        if not self.new_note.savable:
            return None

        title, content = split_note_text(self.new_note.text)
        try:
            res = await self.api.create_note(title, content)
        except (RequestError, AuthError) as exc:
            self._failed("create note", exc)
            return None

        note = NoteView(
            id=res["inserted_id"],
            title=title,
            content=content,
            pinned=False,
            created=res["timestamp"],
            last_modified=res["timestamp"],
        )
        self.new_note.text = ""
        if self.notes is None:
            self.notes = []
        self.notes.append(note)
        self.reorder()
        return note

    def open_edit(self, note_id: str) -> None:
        note = self._find(note_id)
        if note is None:
            return
        self.edit_modal = EditNoteModal(note_id=note_id, value=join_note_text(note.title, note.content))
        self._changed()

    def set_edit_value(self, value: str) -> None:
        self.edit_modal.value = value
        self.edit_modal.value_changed = True
        self._changed()

    def close_edit(self) -> None:
        self.edit_modal = EditNoteModal()
        self._changed()

    async def edit_note(self, note_id: str) -> bool:
        """Save the edit modal's text; unchanged text just closes the modal."""
        note = self._find(note_id)
        if note is None or not self.edit_modal.savable:
            return False

        title, content = split_note_text(self.edit_modal.value)
        if note.title == title and note.content == content:
            self.close_edit()
            return False

        try:
            res = await self.api.update_note(note_id, title=title, content=content)
        except (RequestError, AuthError) as exc:
            self.edit_modal.message = getattr(exc, "message", str(exc))
            self._failed("edit note", exc)
            return False

        # the note may have been removed while the request was in flight
        note = self._find(note_id)
        if self.edit_modal.note_id == note_id:
            self.edit_modal = EditNoteModal()
        if note is not None:
            note.title = title
            note.content = content
            note.last_modified = res["timestamp"]
        self.reorder()
        return True

    async def toggle_pin(self, note_id: str) -> bool:
        note = self._find(note_id)
        if note is None:
            return False

        pinned = not note.pinned
        try:
            res = await self.api.update_note(note_id, pinned=pinned)
        except (RequestError, AuthError) as exc:
            self._failed("toggle pin", exc)
            return False

        note = self._find(note_id)
        if note is not None:
            note.pinned = pinned
            note.last_modified = res["timestamp"]
        self.reorder()
        return True

    def open_delete(self, note_id: str) -> None:
        note = self._find(note_id)
        if note is None:
            return
        self.delete_modal = DeleteNoteModal(note_id=note_id, note_title=note.title)
        self._changed()

    async def delete_note(self, note_id: str) -> bool:
        try:
            await self.api.delete_note(note_id)
        except (RequestError, AuthError) as exc:
            self._failed("delete note", exc)
            return False

        if self.delete_modal.note_id == note_id:
            self.delete_modal = DeleteNoteModal()
        if self.notes is not None:
            self.notes = [n for n in self.notes if n.id != note_id]
        self._changed()
        return True

    def reorder(self) -> None:
        if self.notes is not None:
            self.notes = sort_notes(self.notes)
        self._changed()

    def ask_before_unload(self) -> bool:
        """True while there is unsaved text: a savable draft or a changed edit."""
        editing = self.edit_modal.note_id is not None and self.edit_modal.value_changed
        return self.new_note.savable or editing


@asynccontextmanager
async def notes_session(
    base_url: str,
    session_path: Optional[Path] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[NotesViewModel]:
    """Wire one identity client, API and view-model over a shared HTTP client."""
    http = httpx.AsyncClient(base_url=base_url, transport=transport)
    identity = IdentityClient(http, session_path=session_path)
    try:
        yield NotesViewModel(identity, NotesAPI(http, identity))
    finally:
        await identity.aclose()
