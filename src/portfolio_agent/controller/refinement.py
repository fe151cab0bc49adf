from __future__ import annotations

import logging
from typing import Optional

from portfolio_agent.auth.verifiers import ACTION_INITIALIZE, ACTION_REFINE, AuthVerifier
from portfolio_agent.config.logging import get_logger, log_json
from portfolio_agent.core.exceptions import (
    AlreadyInitializedError,
    CooldownActiveError,
    InvalidInitialStateError,
    NotInitializedError,
    UnauthorizedError,
)
from portfolio_agent.core.models import Initialized, Refined, StrategyMetrics, StrategyState
from portfolio_agent.core.time import Clock
from portfolio_agent.events.sinks import EventSink, Notification
from portfolio_agent.scoring.engine import (
    COOLDOWN_SECONDS,
    SCORE_MAX,
    SCORE_MIN,
    U32_MAX,
    ScoreEngine,
    saturating_add,
)
from portfolio_agent.storage.base import StateStore


logger = get_logger(__name__)


def _require_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    return value


class RefinementController:
    """Single entry point for the strategy state machine.

    Every operation runs inside one store session, so the read of the current
    state, the cooldown check and the write of the refined state cannot
    interleave with another call. Notifications go out only after the session
    has committed.
    """

    def __init__(
        self,
        *,
        store: StateStore,
        auth: AuthVerifier,
        clock: Clock,
        sink: EventSink,
        engine: Optional[ScoreEngine] = None,
    ) -> None:
        self._store = store
        self._auth = auth
        self._clock = clock
        self._sink = sink
        self._engine = engine or ScoreEngine()

    def initialize(self, admin: str, initial_score: int, initial_trades: int, *, proof: Optional[str] = None) -> None:
        with self._store.session() as s:
            if s.load() is not None:
                raise AlreadyInitializedError("Contract already initialized")

            if not self._auth.verify(admin, proof, action=ACTION_INITIALIZE):
                raise UnauthorizedError(f"Authorization required for {admin}")

            _require_int("initial_score", initial_score)
            _require_int("initial_trades", initial_trades)
            if not SCORE_MIN <= initial_score <= SCORE_MAX:
                raise InvalidInitialStateError(f"initial_score out of range {SCORE_MIN}-{SCORE_MAX}: {initial_score}")
            if not 0 <= initial_trades <= U32_MAX:
                raise InvalidInitialStateError(f"initial_trades out of range: {initial_trades}")

            s.save(
                StrategyState(
                    score=initial_score,
                    total_trades=initial_trades,
                    last_refinement_timestamp=0,
                    admin=admin,
                )
            )

        log_json(logger, logging.INFO, "strategy_initialized", admin=admin, score=initial_score, trades=initial_trades)
        self._notify(Initialized(admin=admin, initial_score=initial_score, initial_trades=initial_trades))

    def refine(self, caller: str, performance_metric: int, *, proof: Optional[str] = None) -> int:
        _require_int("performance_metric", performance_metric)

        if not self._auth.verify(caller, proof, action=ACTION_REFINE):
            log_json(logger, logging.WARNING, "refine_rejected", caller=caller, reason="unauthenticated")
            raise UnauthorizedError(f"Authorization required for {caller}")

        with self._store.session() as s:
            state = s.load()
            if state is None:
                raise NotInitializedError("Contract not initialized")

            if caller != state.admin:
                log_json(logger, logging.WARNING, "refine_rejected", caller=caller, reason="not_admin")
                raise UnauthorizedError("Only admin can refine strategy")

            now = self._clock.now()
            next_allowed = state.last_refinement_timestamp + COOLDOWN_SECONDS
            if now < next_allowed:
                remaining = next_allowed - now
                log_json(logger, logging.INFO, "refine_rejected", caller=caller, reason="cooldown", remaining=remaining)
                raise CooldownActiveError(remaining)

            old_score = state.score
            new_score = self._engine.adjust(old_score, performance_metric)
            s.save(
                state.with_refinement(
                    new_score=new_score,
                    timestamp=now,
                    total_trades=saturating_add(state.total_trades, 1),
                )
            )

        log_json(
            logger,
            logging.INFO,
            "strategy_refined",
            admin=caller,
            metric=performance_metric,
            old_score=old_score,
            new_score=new_score,
            timestamp=now,
        )
        self._notify(Refined(old_score=old_score, new_score=new_score, timestamp=now, admin=caller))
        return new_score

    def get_metrics(self) -> StrategyMetrics:
        state = self._load()
        if state is None:
            raise NotInitializedError("Contract not initialized")
        return StrategyMetrics(
            score=state.score,
            total_trades=state.total_trades,
            last_refinement_timestamp=state.last_refinement_timestamp,
            admin=state.admin,
        )

    def get_score(self) -> int:
        state = self._load()
        return state.score if state is not None else 0

    def get_cooldown_remaining(self) -> int:
        state = self._load()
        last = state.last_refinement_timestamp if state is not None else 0
        return max(0, last + COOLDOWN_SECONDS - self._clock.now())

    def _load(self) -> Optional[StrategyState]:
        with self._store.session() as s:
            return s.load()

    def _notify(self, notification: Notification) -> None:
        # Delivery is best-effort; the committed state stands regardless.
        try:
            self._sink.emit(notification)
        except Exception:
            logger.exception("event_sink_failed topic=%s", notification.topic)
