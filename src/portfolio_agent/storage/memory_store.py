from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from portfolio_agent.core.models import StrategyState


class _BufferedSession:
    def __init__(self, current: Optional[StrategyState]) -> None:
        self._current = current
        self.pending: Optional[StrategyState] = None

    def load(self) -> Optional[StrategyState]:
        return self.pending if self.pending is not None else self._current

    def save(self, state: StrategyState) -> None:
        self.pending = state


class InMemoryStateStore:
    def __init__(self, state: Optional[StrategyState] = None) -> None:
        self._state = state
        self._lock = threading.Lock()

    @property
    def state(self) -> Optional[StrategyState]:
        return self._state

    @contextmanager
    def session(self) -> Iterator[_BufferedSession]:
        with self._lock:
            s = _BufferedSession(self._state)
            yield s
            if s.pending is not None:
                self._state = s.pending
