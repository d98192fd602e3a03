# editor.py
"""
Editor-side state: the save/load status chip and the key-value persistence
contract (one blob per document plus a bounded recency list).
"""
from __future__ import annotations

import json
import os
import time
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote, urlencode

from config import Config
from models import (
    EDITOR_DEFAULTS,
    DocumentRecord,
    LineItem,
    blank_record,
    new_item_id,
    record_from_dict,
    record_to_dict,
    record_to_params,
)

RECENT_KEY = "qd:recent"


def doc_key(doc_id: str) -> str:
    return f"qd:doc:{doc_id}"


def new_doc_id(now_ms: Optional[int] = None) -> str:
    return f"doc-{now_ms if now_ms is not None else int(time.time() * 1000)}"


def fresh_record() -> DocumentRecord:
    starter = replace(EDITOR_DEFAULTS.placeholder_item, id=new_item_id())
    return blank_record().with_updates(items=(starter,))


def export_url(doc_id: str, record: DocumentRecord) -> str:
    return f"/api/documents/{quote(doc_id, safe='')}/pdf?{urlencode(record_to_params(record))}"


# -----------------------------
# Status chip
# -----------------------------
class EditorStatus(str, Enum):
    IDLE = "idle"
    SAVED = "saved"
    LOADED = "loaded"
    ERROR = "error"


def time_ago(ts_ms: int, now_ms: int) -> str:
    sec = (now_ms - ts_ms) // 1000
    if sec < 10:
        return "just now"
    if sec < 60:
        return f"{sec}s ago"
    minutes = sec // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def status_text(status: EditorStatus, last_saved: Optional[int], now_ms: int) -> str:
    if status is EditorStatus.SAVED:
        return "Saved"
    if status is EditorStatus.LOADED:
        return "Loaded"
    if status is EditorStatus.ERROR:
        return "Save failed"
    if last_saved:
        return f"Saved {time_ago(last_saved, now_ms)}"
    return "Not saved"


class StatusChip:
    """
    Finite-state status owned by one editor. Flashing a non-idle status
    schedules a single transition back to IDLE; a new flash replaces it.
    """

    def __init__(self, flash_seconds: float = Config.STATUS_FLASH_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.flash_seconds = flash_seconds
        self._clock = clock
        self._status = EditorStatus.IDLE
        self._reset_at: Optional[float] = None

    def flash(self, status: EditorStatus) -> None:
        self._status = status
        self._reset_at = None if status is EditorStatus.IDLE else self._clock() + self.flash_seconds

    @property
    def status(self) -> EditorStatus:
        if self._reset_at is not None and self._clock() >= self._reset_at:
            self._status = EditorStatus.IDLE
            self._reset_at = None
        return self._status


# -----------------------------
# Key-value store
# -----------------------------
class JsonFileStore:
    """
    String keys to string values kept in one JSON object on disk, the same
    shape as a browser localStorage dump. Last write wins.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"Store is not a JSON object: {self.path}")
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def recent_ids(store: JsonFileStore) -> list[str]:
    try:
        ids = json.loads(store.get(RECENT_KEY) or "[]")
    except ValueError:
        return []
    return [x for x in ids if isinstance(x, str)] if isinstance(ids, list) else []


def save_document(store: JsonFileStore, doc_id: str, record: DocumentRecord, limit: int = Config.RECENT_LIMIT) -> None:
    store.set(doc_key(doc_id), json.dumps(record_to_dict(record), ensure_ascii=False))
    current = recent_ids(store)
    store.set(RECENT_KEY, json.dumps([doc_id] + [x for x in current if x != doc_id][:max(0, limit - 1)]))


def load_document(store: JsonFileStore, doc_id: str) -> Optional[DocumentRecord]:
    raw = store.get(doc_key(doc_id))
    if not raw:
        return None
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Stored document is not an object: {doc_id}")
    return record_from_dict(data)


# -----------------------------
# Editor session
# -----------------------------
class EditorSession:
    def __init__(
        self,
        doc_id: str,
        store: JsonFileStore,
        *,
        chip: Optional[StatusChip] = None,
        now_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.doc_id = doc_id
        self.store = store
        self.chip = chip or StatusChip()
        self._now_ms = now_ms
        self.record = fresh_record()
        self.last_saved: Optional[int] = None

    @property
    def status(self) -> EditorStatus:
        return self.chip.status

    def status_text(self) -> str:
        return status_text(self.status, self.last_saved, self._now_ms())

    def save_now(self) -> bool:
        record = self.record.with_updates(updated_at=self._now_ms())
        try:
            save_document(self.store, self.doc_id, record)
        except (OSError, ValueError):
            self.chip.flash(EditorStatus.ERROR)
            return False
        self.record = record
        self.last_saved = record.updated_at
        self.chip.flash(EditorStatus.SAVED)
        return True

    def load(self) -> bool:
        try:
            record = load_document(self.store, self.doc_id)
        except (OSError, ValueError):
            return False
        if record is None:
            return False
        self.record = record
        self.last_saved = record.updated_at
        self.chip.flash(EditorStatus.LOADED)
        return True

    def clear(self) -> None:
        try:
            self.store.remove(doc_key(self.doc_id))
        except (OSError, ValueError):
            self.chip.flash(EditorStatus.ERROR)
        else:
            self.chip.flash(EditorStatus.IDLE)
        self.record = fresh_record()
        self.last_saved = None

    def add_item(self) -> LineItem:
        item = LineItem(id=new_item_id(), title="New item", qty="1", rate="0")
        self.record = self.record.with_updates(items=self.record.items + (item,))
        return item

    def remove_item(self, item_id: str) -> None:
        # an empty list is fine here, the renderer substitutes a placeholder row
        self.record = self.record.with_updates(items=tuple(it for it in self.record.items if it.id != item_id))

    def export_url(self) -> str:
        return export_url(self.doc_id, self.record)
