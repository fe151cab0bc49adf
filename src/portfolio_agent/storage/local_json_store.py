from __future__ import annotations

import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from filelock import FileLock

from portfolio_agent.core.models import StrategyState

_PATH_LOCKS: Dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = _PATH_LOCKS[key] = threading.Lock()
        return lock


class _FileSession:
    def __init__(self, path: Path) -> None:
        self._path = path
        self.pending: Optional[StrategyState] = None

    def load(self) -> Optional[StrategyState]:
        if self.pending is not None:
            return self.pending
        if not self._path.exists():
            return None
        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return None
        return StrategyState.from_dict(json.loads(text))

    def save(self, state: StrategyState) -> None:
        self.pending = state


class LocalJsonStateStore:
    """Strategy state kept as one JSON document on local disk.

    A session holds an in-process lock and an OS file lock on `<path>.lock`
    for its whole read-modify-write, so sessions from other threads and other
    processes are serialized. Writes go to a sibling temp file and are
    swapped in with `os.replace`.
    """

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = _lock_for(self._path)
        self._file_lock = FileLock(str(self._path) + ".lock")

    @contextmanager
    def session(self) -> Iterator[_FileSession]:
        with self._lock, self._file_lock:
            s = _FileSession(self._path)
            yield s
            if s.pending is not None:
                self._write(s.pending)

    def _write(self, state: StrategyState) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            f.write(json.dumps(state.to_dict(), ensure_ascii=False, indent=2))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self._path)
