"""Flat-file persistence for the current snapshot and the bounded history log.

Two JSON records live in the data directory:
- the current snapshot, overwritten on every save
- the history log, an oldest-first array capped at ``max_entries``

Writes go through a temp file and os.replace so readers never see a
half-written record. Missing or unreadable records are treated as absent.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from fbx_tracker.logging import get_logger
from fbx_tracker.models import HistoryEntry, Snapshot

logger = get_logger(__name__)


class HistoryStore:
    """Async JSON-file store for the latest Snapshot and its history log.

    File I/O runs in a worker thread so request handlers and the scheduler
    share the event loop without blocking it.

    Usage:
        store = HistoryStore(Path("data/fbx_rates.json"), Path("data/fbx_history.json"))
        await store.save_snapshot(snapshot)
        history = await store.load_history()
    """

    def __init__(
        self,
        current_path: Path,
        history_path: Path,
        max_entries: int = 90,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._current_path = Path(current_path)
        self._history_path = Path(history_path)
        self._max_entries = max_entries

    @property
    def max_entries(self) -> int:
        return self._max_entries

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def save_snapshot(self, snapshot: Snapshot) -> list[HistoryEntry]:
        """Replace the current snapshot and append its summary to the history log.

        Returns the history log as written (oldest first, at most max_entries).
        """
        return await asyncio.to_thread(self._save_snapshot_sync, snapshot)

    def _save_snapshot_sync(self, snapshot: Snapshot) -> list[HistoryEntry]:
        _write_json(self._current_path, snapshot.to_dict())

        history = self._load_history_sync()
        history.append(HistoryEntry.from_snapshot(snapshot))
        history = history[-self._max_entries:]

        _write_json(self._history_path, [entry.to_dict() for entry in history])
        logger.info("snapshot_saved", history_points=len(history))
        return history

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def load_snapshot(self) -> Snapshot | None:
        """Return the current snapshot, or None when none has been saved."""
        return await asyncio.to_thread(self._load_snapshot_sync)

    async def load_history(self) -> list[HistoryEntry]:
        """Return the history log oldest-first, or [] when none has been saved."""
        return await asyncio.to_thread(self._load_history_sync)

    def _load_snapshot_sync(self) -> Snapshot | None:
        data = _read_json(self._current_path)
        if not isinstance(data, dict):
            return None
        try:
            return Snapshot.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError):
            logger.warning("snapshot_record_invalid", path=str(self._current_path))
            return None

    def _load_history_sync(self) -> list[HistoryEntry]:
        data = _read_json(self._history_path)
        if not isinstance(data, list):
            return []

        entries: list[HistoryEntry] = []
        for raw in data:
            try:
                entries.append(HistoryEntry.from_dict(raw))
            except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError):
                logger.warning("history_entry_skipped", entry=raw)
        return entries


def _read_json(path: Path) -> Any:
    """Read a JSON record. Missing or corrupt files read as None."""
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("record_unreadable", path=str(path), error=str(e))
        return None


def _write_json(path: Path, payload: Any) -> None:
    """Atomically replace ``path`` with the pretty-printed JSON payload."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise
