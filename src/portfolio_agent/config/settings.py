from __future__ import annotations

from dataclasses import dataclass, field
import os

STORE_BACKENDS = ("memory", "json", "postgres")


def _get_env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None else default


def _get_env_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or not v.strip():
        return None
    return v.strip()


def _get_env_store(name: str, default: str) -> str:
    v = (os.getenv(name) or "").strip().lower()
    return v if v in STORE_BACKENDS else default


def _get_database_url() -> str | None:
    return _get_env_optional("DATABASE_URL") or _get_env_optional("POSTGRES_DSN")


@dataclass(frozen=True)
class Settings:
    # Defaults are evaluated per instance so tests can set env vars first.
    log_level: str = field(default_factory=lambda: (_get_env("PORTFOLIO_AGENT_LOG_LEVEL", "INFO") or "INFO").upper())

    # Storage
    store: str = field(default_factory=lambda: _get_env_store("PORTFOLIO_AGENT_STORE", "json"))
    state_path: str = field(
        default_factory=lambda: _get_env("PORTFOLIO_AGENT_STATE_PATH", "./out/strategy_state.json") or "./out/strategy_state.json"
    )
    database_url: str | None = field(default_factory=_get_database_url)

    # Notifications ledger; unset means log-only.
    events_path: str | None = field(default_factory=lambda: _get_env_optional("PORTFOLIO_AGENT_EVENTS_PATH"))

    # Proof secret for HMAC authorization. Mutating commands refuse to run without it.
    auth_secret: str | None = field(default_factory=lambda: _get_env_optional("PORTFOLIO_AGENT_AUTH_SECRET"))

    def require_database_url(self) -> str:
        if not self.database_url:
            raise RuntimeError("Missing DATABASE_URL (or POSTGRES_DSN).")
        return self.database_url

    def require_auth_secret(self) -> str:
        if not self.auth_secret:
            raise RuntimeError("Missing PORTFOLIO_AGENT_AUTH_SECRET.")
        return self.auth_secret
