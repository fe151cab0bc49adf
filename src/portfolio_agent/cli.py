from __future__ import annotations

import argparse
import json
from typing import Any, Dict

from dotenv import load_dotenv

from portfolio_agent.api.handlers import handle_refine, handle_stats
from portfolio_agent.app import build_controller
from portfolio_agent.auth.verifiers import ACTION_INITIALIZE, ACTION_REFINE, HmacAuthVerifier
from portfolio_agent.config.logging import setup_logging
from portfolio_agent.config.settings import Settings
from portfolio_agent.core.exceptions import RefinementError


def _print(obj: Dict[str, Any]) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="portfolio-agent")
    sub = parser.add_subparsers(dest="cmd", required=True)

    initp = sub.add_parser("init", help="Create the strategy state (once)")
    initp.add_argument("admin")
    initp.add_argument("--score", type=int, required=True, help="Initial score, 0-1000 (870 == 8.70/10)")
    initp.add_argument("--trades", type=int, default=0)
    initp.add_argument("--proof", default=None, help="Defaults to a proof signed with the configured secret")

    refp = sub.add_parser("refine", help="Apply a performance metric to the score")
    refp.add_argument("caller")
    refp.add_argument("metric", type=int)
    refp.add_argument("--proof", default=None)

    sub.add_parser("metrics", help="Show score, trades, last refinement and admin")
    sub.add_parser("score", help="Show the raw score")
    sub.add_parser("cooldown", help="Seconds until the next refinement is allowed")
    sub.add_parser("stats", help="Display-oriented summary")

    signp = sub.add_parser("sign", help="Produce an authorization proof")
    signp.add_argument("identity")
    signp.add_argument("action", choices=[ACTION_INITIALIZE, ACTION_REFINE])

    sub.add_parser("init-db", help="Create the Postgres table")
    return parser


def main(argv=None) -> int:
    load_dotenv(override=False)
    args = _build_parser().parse_args(argv)

    settings = Settings()
    setup_logging(settings.log_level)

    try:
        return _run(args, settings)
    except RefinementError as e:
        _print({"success": False, "error": type(e).__name__, "message": str(e)})
        return 1
    except RuntimeError as e:
        _print({"success": False, "error": "CONFIGURATION", "message": str(e)})
        return 2


def _run(args: argparse.Namespace, settings: Settings) -> int:
    if args.cmd == "sign":
        signer = HmacAuthVerifier(settings.require_auth_secret())
        _print({"identity": args.identity, "action": args.action, "proof": signer.sign(args.identity, args.action)})
        return 0

    if args.cmd == "init-db":
        from portfolio_agent.storage.postgres_store import PostgresStateStore

        PostgresStateStore(settings.require_database_url()).ensure_schema()
        _print({"success": True, "message": "strategy_state table ready"})
        return 0

    controller = build_controller(settings)

    if args.cmd == "init":
        signer = HmacAuthVerifier(settings.require_auth_secret())
        proof = args.proof or signer.sign(args.admin, ACTION_INITIALIZE)
        controller.initialize(args.admin, args.score, args.trades, proof=proof)
        _print({"success": True, "admin": args.admin, "score": args.score, "trades": args.trades})
        return 0

    if args.cmd == "refine":
        signer = HmacAuthVerifier(settings.require_auth_secret())
        proof = args.proof or signer.sign(args.caller, ACTION_REFINE)
        status, body = handle_refine(
            controller,
            {"walletAddress": args.caller, "performanceMetric": args.metric, "proof": proof},
        )
        _print(body)
        return 0 if status == 200 else 1

    if args.cmd == "metrics":
        m = controller.get_metrics()
        _print(m._asdict())
        return 0

    if args.cmd == "score":
        _print({"score": controller.get_score()})
        return 0

    if args.cmd == "cooldown":
        _print({"cooldown_remaining": controller.get_cooldown_remaining()})
        return 0

    if args.cmd == "stats":
        status, body = handle_stats(controller)
        _print(body)
        return 0 if status == 200 else 1

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
