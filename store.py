"""Record store: keyed slots holding JSON-serializable lists of records.

Each entity service owns one slot. Mutations go through ``write(slot,
transform)`` where ``transform`` receives the current list and returns the
next one; the store commits the result as a whole.
"""

import json
import os
import secrets
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Protocol

from logging_config import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]
Transform = Callable[[List[Record]], List[Record]]

ROSTER = "roster"
EVENTS = "events"
TEAM_FILES = "team-files"
MESSAGES = "messages"
PLAYER_STATS = "player-stats"

SLOTS = (ROSTER, EVENTS, TEAM_FILES, MESSAGES, PLAYER_STATS)

# Crockford base32, as used by ULIDs
_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def new_id() -> str:
    """Return a 26 character id that sorts by creation time.

    The first 10 characters encode the current time in milliseconds, the
    remaining 16 are random.
    """
    millis = time.time_ns() // 1_000_000
    prefix = []
    for _ in range(10):
        millis, rem = divmod(millis, 32)
        prefix.append(_ALPHABET[rem])
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(16))
    return "".join(reversed(prefix)) + suffix


class StoreError(Exception):
    """Raised when a persisted slot cannot be interpreted."""


class RecordStore(Protocol):
    def read(self, slot: str) -> List[Record]: ...

    def write(self, slot: str, transform: Transform) -> None: ...


class InMemoryRecordStore:
    def __init__(self, initial: Dict[str, List[Record]] | None = None):
        self._slots: Dict[str, List[Record]] = {k: list(v) for k, v in (initial or {}).items()}
        self._lock = threading.Lock()

    def read(self, slot: str) -> List[Record]:
        with self._lock:
            return list(self._slots.get(slot, []))

    def write(self, slot: str, transform: Transform) -> None:
        with self._lock:
            current = list(self._slots.get(slot, []))
            self._slots[slot] = list(transform(current))


class JsonFileRecordStore:
    """Durable store keeping every slot in ``<root>/<slot>.json``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.Lock()

    def _path(self, slot: str) -> Path:
        return self.root / f"{slot}.json"

    def _load(self, slot: str) -> List[Record]:
        path = self._path(slot)
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = json.load(fh)
            except json.JSONDecodeError as exc:
                raise StoreError(f"Slot {slot!r} at {path} is not valid JSON") from exc
        if not isinstance(data, list):
            raise StoreError(f"Slot {slot!r} at {path} does not hold a list")
        return data

    def read(self, slot: str) -> List[Record]:
        with self._lock:
            return self._load(slot)

    def write(self, slot: str, transform: Transform) -> None:
        with self._lock:
            records = list(transform(self._load(slot)))
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{slot}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(records, fh, indent=2, ensure_ascii=False)
                os.replace(tmp, self._path(slot))
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        logger.debug("store.slot_written", slot=slot, records=len(records))
