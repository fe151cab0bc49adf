from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, NamedTuple


@dataclass(frozen=True)
class StrategyState:
    """The single persisted record.

    `score` is fixed point with two implied decimals (870 == 8.70/10).
    """

    score: int
    total_trades: int
    last_refinement_timestamp: int
    admin: str

    def with_refinement(self, *, new_score: int, timestamp: int, total_trades: int) -> "StrategyState":
        return replace(
            self,
            score=new_score,
            last_refinement_timestamp=timestamp,
            total_trades=total_trades,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StrategyState":
        return cls(
            score=int(d["score"]),
            total_trades=int(d.get("total_trades", 0)),
            last_refinement_timestamp=int(d.get("last_refinement_timestamp", 0)),
            admin=str(d["admin"]),
        )


class StrategyMetrics(NamedTuple):
    score: int
    total_trades: int
    last_refinement_timestamp: int
    admin: str


@dataclass(frozen=True)
class Initialized:
    admin: str
    initial_score: int
    initial_trades: int

    topic = "init"

    def to_dict(self) -> Dict[str, Any]:
        return {"topic": self.topic, **asdict(self)}


@dataclass(frozen=True)
class Refined:
    old_score: int
    new_score: int
    timestamp: int
    admin: str

    topic = "refined"

    def to_dict(self) -> Dict[str, Any]:
        return {"topic": self.topic, **asdict(self)}
