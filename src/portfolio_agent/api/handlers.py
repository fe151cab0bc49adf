from __future__ import annotations

from typing import Any, Dict, Tuple

from portfolio_agent.config.logging import get_logger
from portfolio_agent.controller.refinement import RefinementController
from portfolio_agent.core.exceptions import CooldownActiveError, NotInitializedError, UnauthorizedError
from portfolio_agent.core.time import format_utc, utc_now

DEFAULT_PERFORMANCE_METRIC = 10

Response = Tuple[int, Dict[str, Any]]

logger = get_logger(__name__)


def display_score(score: int) -> float:
    """870 -> 8.7"""
    return score / 100


def handle_stats(controller: RefinementController) -> Response:
    try:
        m = controller.get_metrics()
    except NotInitializedError:
        return 404, {"success": False, "error": "NOT_INITIALIZED", "message": "Strategy state is not initialized"}

    return 200, {
        "success": True,
        "data": {
            "score": display_score(m.score),
            "raw_score": m.score,
            "transactions": m.total_trades,
            "last_refinement": format_utc(m.last_refinement_timestamp),
            "cooldown_remaining": controller.get_cooldown_remaining(),
            "timestamp": utc_now().isoformat(),
            "source": "state",
        },
    }


def handle_refine(controller: RefinementController, body: Dict[str, Any]) -> Response:
    wallet = body.get("walletAddress")
    if not wallet or not isinstance(wallet, str):
        return 400, {"success": False, "error": "INVALID_REQUEST", "message": "Wallet address is required"}

    metric = body.get("performanceMetric", DEFAULT_PERFORMANCE_METRIC)
    if isinstance(metric, bool) or not isinstance(metric, int):
        return 400, {"success": False, "error": "INVALID_METRIC", "message": "performanceMetric must be an integer"}

    logger.info("refine_request wallet=%s metric=%d", wallet, metric)
    try:
        new_score = controller.refine(wallet, metric, proof=body.get("proof"))
    except CooldownActiveError as e:
        return 400, {
            "success": False,
            "error": "COOLDOWN_ACTIVE",
            "cooldownRemaining": e.remaining_seconds,
            "message": "Strategy optimization is recharging",
        }
    except UnauthorizedError as e:
        return 403, {"success": False, "error": "UNAUTHORIZED", "message": str(e)}
    except NotInitializedError as e:
        return 409, {"success": False, "error": "NOT_INITIALIZED", "message": str(e)}

    return 200, {
        "success": True,
        "new_score": new_score,
        "message": f"Strategy refined to {display_score(new_score):.2f}/10",
    }
