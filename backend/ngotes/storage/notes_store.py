import json
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ngotes.ordering import sort_notes

logger = logging.getLogger(__name__)

COLLECTION = "notes"


class StoreError(Exception):
    """Raised when the store is used without an open connection or a write fails."""


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)


@dataclass(frozen=True)
class Note:
    id: str
    owner: str
    title: str
    content: str
    pinned: bool
    created: int
    last_modified: int

    def to_document(self) -> dict[str, Any]:
        doc = self.to_public()
        doc["owner"] = self.owner
        return doc

    def to_public(self) -> dict[str, Any]:
        # owner is a filter key only and never leaves the store
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "pinned": self.pinned,
            "created": self.created,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> "Note":
        return cls(
            id=str(raw["id"]),
            owner=str(raw["owner"]),
            title=raw["title"],
            content=raw.get("content", ""),
            pinned=bool(raw.get("pinned", False)),
            created=int(raw["created"]),
            last_modified=int(raw["lastModified"]),
        )


class NotesStore:
    """JSON document collection: one file per note under <base_dir>/notes/.

    A store must be connected before use; close() is safe to call at any time.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> "NotesStore":
        try:
            self._collection_dir().mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot open collection at {self.base_dir}") from exc
        self._connected = True
        return self

    def close(self) -> None:
        self._connected = False

    def __enter__(self) -> "NotesStore":
        return self.connect()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _collection_dir(self) -> Path:
        return self.base_dir / COLLECTION

    def _note_path(self, note_id: str) -> Path:
        # ids are uuid4 strings; anything else cannot name a document
        try:
            nid = uuid.UUID(str(note_id))
        except ValueError:
            raise StoreError("Invalid note id")
        return self._collection_dir() / f"{nid}.json"

    def _require_connection(self) -> None:
        if not self._connected:
            raise StoreError("Store is not connected")

    def _read(self, path: Path) -> Optional[Note]:
        try:
            return Note.from_document(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning("Skipping unreadable note document %s", path.name)
            return None

    def _all(self) -> list[Note]:
        out: list[Note] = []
        for p in self._collection_dir().glob("*.json"):
            note = self._read(p)
            if note is not None:
                out.append(note)
        return out

    def count(self) -> int:
        self._require_connection()
        return len(self._all())

    def find(self, owner: str, offset: int = 0, limit: int = 0) -> list[Note]:
        """Notes of `owner` in display order; limit 0 means no limit."""
        self._require_connection()
        notes = sort_notes(n for n in self._all() if n.owner == owner)
        notes = notes[offset:]
        if limit:
            notes = notes[:limit]
        return notes

    def get(self, note_id: str) -> Optional[Note]:
        self._require_connection()
        path = self._note_path(note_id)
        if not path.exists():
            return None
        return self._read(path)

    def insert_one(self, owner: str, title: str, content: str, pinned: bool, timestamp: int) -> Note:
        self._require_connection()
        note = Note(
            id=str(uuid.uuid4()),
            owner=owner,
            title=title,
            content=content,
            pinned=pinned,
            created=timestamp,
            last_modified=timestamp,
        )
        self._write(note)
        return note

    def update_one(self, note_id: str, owner: str, fields: dict[str, Any], timestamp: int) -> bool:
        """Apply `fields` (title/content/pinned) to the owner's note. False if none matched."""
        self._require_connection()
        existing = self._match(note_id, owner)
        if existing is None:
            return False

        raw = existing.to_document()
        for key in ("title", "content", "pinned"):
            if key in fields:
                raw[key] = fields[key]
        raw["lastModified"] = max(timestamp, existing.created)

        self._write(Note.from_document(raw))
        return True

    def delete_one(self, note_id: str, owner: str) -> bool:
        self._require_connection()
        if self._match(note_id, owner) is None:
            return False
        try:
            self._note_path(note_id).unlink()
        except FileNotFoundError:
            return False
        return True

    def _match(self, note_id: str, owner: str) -> Optional[Note]:
        note = self.get(note_id)
        if note is None or note.owner != owner:
            return None
        return note

    def _write(self, note: Note) -> None:
        try:
            _atomic_write_json(self._note_path(note.id), note.to_document())
        except OSError as exc:
            raise StoreError(f"Failed to write note {note.id}") from exc
