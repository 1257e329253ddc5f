"""Text helpers used by the notes view-model."""
from __future__ import annotations

import re

from pydantic import EmailStr, TypeAdapter, ValidationError

PASSWORD_MIN = 6
PASSWORD_MAX = 24

_email = TypeAdapter(EmailStr)
_SAVABLE = re.compile(r"^\S")


def is_valid_email(email: str) -> bool:
    try:
        _email.validate_python(str(email).lower())
    except ValidationError:
        return False
    return True


def is_valid_password(password: str) -> bool:
    return PASSWORD_MIN <= len(password) <= PASSWORD_MAX


def is_savable(text: str) -> bool:
    """A note text is savable when it is non-empty and does not start with whitespace."""
    return bool(_SAVABLE.match(text))


def split_note_text(text: str) -> tuple[str, str]:
    """First line is the title, the remaining lines are the content."""
    title, _, content = text.partition("\n")
    return title, content


def join_note_text(title: str, content: str) -> str:
    return f"{title}\n{content}" if content else title


def truncate(text: str, max_length: int = 150) -> str:
    """Shorten `text` to about `max_length` characters at a word boundary and append " …"."""
    if len(text) <= max_length:
        return text

    cut = text[: max_length - 1]
    # with no word boundary nothing of the cut survives
    boundary = cut.rfind(" ")
    return (cut[:boundary] if boundary != -1 else "") + " …"
