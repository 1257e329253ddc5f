from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def _safe_user_dir(base_dir: Path, email: str) -> Path:
    # avoid path traversal
    if not email or any(ch in email for ch in ["/", "\\"]) or ".." in email:
        raise ValueError("Invalid email")
    return base_dir / "users" / email.lower()


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    email: str
    hashed_password: str
    confirmed: bool
    created_at: str


class UsersStore:
    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def _user_path(self, email: str) -> Path:
        return _safe_user_dir(self.base_dir, email) / "user.json"

    def get(self, email: str) -> Optional[UserRecord]:
        p = self._user_path(email)
        if not p.exists():
            return None
        raw = json.loads(p.read_text(encoding="utf-8"))
        return UserRecord(
            user_id=raw["user_id"],
            email=raw["email"],
            hashed_password=raw["hashed_password"],
            confirmed=bool(raw.get("confirmed", False)),
            created_at=raw["created_at"],
        )

    def create(self, email: str, hashed_password: str) -> UserRecord:
        p = self._user_path(email)
        if p.exists():
            raise FileExistsError("User exists")

        rec = UserRecord(
            user_id=str(uuid.uuid4()),
            email=email.lower(),
            hashed_password=hashed_password,
            confirmed=False,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._save(p, rec)
        return rec

    def confirm(self, email: str) -> Optional[UserRecord]:
        rec = self.get(email)
        if rec is None:
            return None
        if not rec.confirmed:
            rec = replace(rec, confirmed=True)
            self._save(self._user_path(email), rec)
        return rec

    @staticmethod
    def _save(p: Path, rec: UserRecord) -> None:
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(rec), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(p)
