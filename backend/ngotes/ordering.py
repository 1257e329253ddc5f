"""Display order shared by the note store and the client view-model.

Pinned notes come first, then the most recently modified. Ties fall back to
the note id so a locally reordered list matches a fresh fetch exactly.
"""
from __future__ import annotations

from typing import Iterable, Protocol, TypeVar


class Orderable(Protocol):
    id: str
    pinned: bool
    last_modified: int


T = TypeVar("T", bound=Orderable)


def order_key(note: Orderable) -> tuple[bool, int, str]:
    return (not note.pinned, -note.last_modified, note.id)


def sort_notes(notes: Iterable[T]) -> list[T]:
    return sorted(notes, key=order_key)
