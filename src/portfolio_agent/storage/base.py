from __future__ import annotations

from typing import ContextManager, Optional, Protocol

from portfolio_agent.core.models import StrategyState


class StateSession(Protocol):
    def load(self) -> Optional[StrategyState]: ...

    def save(self, state: StrategyState) -> None: ...


class StateStore(Protocol):
    def session(self) -> ContextManager[StateSession]:
        """Exclusive read-modify-write scope.

        Saves become visible only when the context exits without an exception.
        No two sessions on the same record run at the same time.
        """
        ...
