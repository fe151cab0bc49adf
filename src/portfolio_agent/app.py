from __future__ import annotations

from typing import Optional

from portfolio_agent.auth.verifiers import AuthVerifier, HmacAuthVerifier, StaticAuthVerifier
from portfolio_agent.config.settings import Settings
from portfolio_agent.controller.refinement import RefinementController
from portfolio_agent.core.time import Clock, SystemClock
from portfolio_agent.events.sinks import CompositeEventSink, EventSink, JsonlEventSink, LoggingEventSink
from portfolio_agent.storage.base import StateStore
from portfolio_agent.storage.local_json_store import LocalJsonStateStore
from portfolio_agent.storage.memory_store import InMemoryStateStore


def build_store(settings: Settings) -> StateStore:
    if settings.store == "memory":
        return InMemoryStateStore()
    if settings.store == "postgres":
        # psycopg is only needed for this backend.
        from portfolio_agent.storage.postgres_store import PostgresStateStore

        return PostgresStateStore(settings.require_database_url())
    return LocalJsonStateStore(settings.state_path)


def build_sink(settings: Settings) -> EventSink:
    if settings.events_path:
        return CompositeEventSink(LoggingEventSink(), JsonlEventSink(settings.events_path))
    return LoggingEventSink()


def build_auth(settings: Settings) -> AuthVerifier:
    if settings.auth_secret:
        return HmacAuthVerifier(settings.auth_secret)
    # Read-only use: nobody is authorized to mutate.
    return StaticAuthVerifier(())


def build_controller(
    settings: Settings,
    *,
    store: Optional[StateStore] = None,
    clock: Optional[Clock] = None,
) -> RefinementController:
    return RefinementController(
        store=store or build_store(settings),
        auth=build_auth(settings),
        clock=clock or SystemClock(),
        sink=build_sink(settings),
    )
