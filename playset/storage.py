"""
Persistence: one JSON file per record on disk.

Records live under
  <data_dir>/<kind>/<record_id>.json

and are listed newest first by their ``createdAt`` timestamp.  Saved
designs get a thin typed repository on top of the generic
``JsonRepository``; quote requests have theirs in ``playset.quotes``.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

log = logging.getLogger("playset.storage")

_RECORD_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

MAX_DESIGN_NAME = 100


class RepositoryError(Exception):
    """Raised when a record cannot be written or fails validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_record_id() -> str:
    return uuid.uuid4().hex


class JsonRepository:
    def __init__(self, data_dir: Path, kind: str) -> None:
        self.root = Path(data_dir) / kind

    def path(self, record_id: str) -> Path | None:
        """File path for *record_id*, or None if the ID is not a safe filename."""
        if not _RECORD_ID.match(record_id):
            return None
        return self.root / f"{record_id}.json"

    def write(self, record_id: str, data: dict) -> Path:
        p = self.path(record_id)
        if p is None:
            raise RepositoryError(f"Invalid record id {record_id!r}", "id")
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        return p

    def read(self, record_id: str) -> dict | None:
        """Read one record. Returns None if missing or unreadable."""
        p = self.path(record_id)
        if p is None or not p.exists():
            return None
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            log.warning("Could not read %s: %s", p, exc)
            return None

    def delete(self, record_id: str) -> bool:
        """Delete a record. Returns True if it existed."""
        p = self.path(record_id)
        if p is not None and p.exists():
            p.unlink()
            return True
        return False

    def list(self) -> list[dict]:
        """Every readable record, newest first."""
        records = []
        if not self.root.exists():
            return records
        for p in self.root.glob("*.json"):
            try:
                records.append(json.loads(p.read_text(encoding="utf-8")))
            except (json.JSONDecodeError, OSError) as exc:
                log.warning("Skipping unreadable record %s: %s", p, exc)
        records.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
        return records


# ── Saved designs ──────────────────────────────────────────────────


@dataclass
class SavedDesign:
    id: str
    user_id: str
    name: str
    design_data: dict[str, Any] = field(default_factory=dict)   # wire-format Design
    thumbnail: str | None = None
    created_at: str = ""                 # ISO 8601
    updated_at: str = ""                 # ISO 8601


def saved_design_to_dict(saved: SavedDesign) -> dict:
    return {
        "id": saved.id,
        "userId": saved.user_id,
        "name": saved.name,
        "thumbnail": saved.thumbnail,
        "designData": saved.design_data,
        "createdAt": saved.created_at,
        "updatedAt": saved.updated_at,
    }


def parse_saved_design(data: dict) -> SavedDesign:
    return SavedDesign(
        id=data["id"],
        user_id=data["userId"],
        name=data["name"],
        design_data=data.get("designData") or {},
        thumbnail=data.get("thumbnail"),
        created_at=data.get("createdAt", ""),
        updated_at=data.get("updatedAt", ""),
    )


def check_design_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise RepositoryError("Design name is required", "name")
    name = name.strip()
    if len(name) > MAX_DESIGN_NAME:
        raise RepositoryError(f"Design name must be at most {MAX_DESIGN_NAME} characters", "name")
    return name


class DesignRepository:
    """Saved designs, scoped by owner: other users' designs read as missing."""

    def __init__(self, data_dir: Path) -> None:
        self.store = JsonRepository(data_dir, "designs")

    def create(
        self, user_id: str, name: str, design_data: dict, thumbnail: str | None = None,
    ) -> SavedDesign:
        now = now_iso()
        saved = SavedDesign(
            id=new_record_id(),
            user_id=user_id,
            name=check_design_name(name),
            design_data=design_data,
            thumbnail=thumbnail,
            created_at=now,
            updated_at=now,
        )
        self.store.write(saved.id, saved_design_to_dict(saved))
        log.info("Saved design %s (%s) for user %s", saved.id, saved.name, user_id)
        return saved

    def get(self, design_id: str, user_id: str) -> SavedDesign | None:
        data = self.store.read(design_id)
        if data is None or data.get("userId") != user_id:
            return None
        return parse_saved_design(data)

    def list_for_user(self, user_id: str) -> list[SavedDesign]:
        return [parse_saved_design(d) for d in self.store.list() if d.get("userId") == user_id]

    def count_using_component(self, component_id: str) -> int:
        """Saved designs, across all users, that place *component_id* at least once."""
        count = 0
        for data in self.store.list():
            placed = (data.get("designData") or {}).get("components") or []
            if any(isinstance(c, dict) and c.get("componentId") == component_id for c in placed):
                count += 1
        return count

    def update(
        self,
        design_id: str,
        user_id: str,
        *,
        name: str | None = None,
        design_data: dict | None = None,
        thumbnail: str | None = None,
    ) -> SavedDesign | None:
        saved = self.get(design_id, user_id)
        if saved is None:
            return None
        if name is not None:
            saved.name = check_design_name(name)
        if design_data is not None:
            saved.design_data = design_data
        if thumbnail is not None:
            saved.thumbnail = thumbnail
        saved.updated_at = now_iso()
        self.store.write(saved.id, saved_design_to_dict(saved))
        return saved

    def delete(self, design_id: str, user_id: str) -> bool:
        if self.get(design_id, user_id) is None:
            return False
        return self.store.delete(design_id)

    def duplicate(self, design_id: str, user_id: str) -> SavedDesign | None:
        original = self.get(design_id, user_id)
        if original is None:
            return None
        copy_name = f"{original.name} (Copy)"[:MAX_DESIGN_NAME]
        return self.create(user_id, copy_name, original.design_data, original.thumbnail)
