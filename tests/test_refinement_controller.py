import unittest

from portfolio_agent.auth.verifiers import StaticAuthVerifier
from portfolio_agent.controller.refinement import RefinementController
from portfolio_agent.core.exceptions import (
    AlreadyInitializedError,
    CooldownActiveError,
    InvalidInitialStateError,
    NotInitializedError,
    UnauthorizedError,
)
from portfolio_agent.core.models import Initialized, Refined, StrategyState
from portfolio_agent.core.time import ManualClock
from portfolio_agent.events.sinks import RecordingEventSink
from portfolio_agent.storage.memory_store import InMemoryStateStore

ADMIN = "GADMIN"
HACKER = "GHACKER"
T0 = 1_700_000_000


class _ExplodingSink:
    def emit(self, notification):
        raise OSError("sink down")


def make_controller(**overrides):
    store = overrides.pop("store", InMemoryStateStore())
    auth = overrides.pop("auth", StaticAuthVerifier([ADMIN, HACKER]))
    clock = overrides.pop("clock", ManualClock(T0))
    sink = overrides.pop("sink", RecordingEventSink())
    ctl = RefinementController(store=store, auth=auth, clock=clock, sink=sink)
    return ctl, store, clock, sink


class TestInitialize(unittest.TestCase):
    def test_initialize_sets_metrics(self):
        ctl, _, _, sink = make_controller()
        ctl.initialize(ADMIN, 870, 1247)

        score, trades, last_ref, admin = ctl.get_metrics()
        self.assertEqual(score, 870)
        self.assertEqual(trades, 1247)
        self.assertEqual(last_ref, 0)
        self.assertEqual(admin, ADMIN)
        self.assertEqual(sink.events, [Initialized(admin=ADMIN, initial_score=870, initial_trades=1247)])

    def test_cannot_reinitialize(self):
        ctl, store, _, sink = make_controller()
        ctl.initialize(ADMIN, 870, 1247)
        with self.assertRaises(AlreadyInitializedError):
            ctl.initialize(ADMIN, 900, 2000)
        with self.assertRaises(AlreadyInitializedError):
            ctl.initialize(HACKER, 5000, -1)
        self.assertEqual(store.state, StrategyState(870, 1247, 0, ADMIN))
        self.assertEqual(sink.topics(), ["init"])

    def test_reinitialize_with_bad_argument_types_reports_already_initialized(self):
        ctl, store, _, _ = make_controller()
        ctl.initialize(ADMIN, 870, 1247)
        with self.assertRaises(AlreadyInitializedError):
            ctl.initialize(ADMIN, "900", 1.5)
        self.assertEqual(store.state, StrategyState(870, 1247, 0, ADMIN))

    def test_reinitialize_by_unauthorized_identity_reports_already_initialized(self):
        store = InMemoryStateStore()
        ctl, _, _, _ = make_controller(store=store, auth=StaticAuthVerifier([ADMIN]))
        ctl.initialize(ADMIN, 870, 1247)
        with self.assertRaises(AlreadyInitializedError):
            ctl.initialize(HACKER, 900, 2000)
        with self.assertRaises(AlreadyInitializedError):
            ctl.initialize("GSTRANGER", 870, 1247, proof="forged")
        self.assertEqual(store.state, StrategyState(870, 1247, 0, ADMIN))

    def test_initialize_rejects_non_integer_arguments(self):
        ctl, store, _, _ = make_controller()
        with self.assertRaises(TypeError):
            ctl.initialize(ADMIN, "870", 1247)
        self.assertIsNone(store.state)

    def test_initialize_requires_authorization(self):
        ctl, store, _, sink = make_controller(auth=StaticAuthVerifier([]))
        with self.assertRaises(UnauthorizedError):
            ctl.initialize(ADMIN, 870, 1247)
        self.assertIsNone(store.state)
        self.assertEqual(sink.events, [])

    def test_initialize_rejects_out_of_range_values(self):
        ctl, store, _, _ = make_controller()
        with self.assertRaises(InvalidInitialStateError):
            ctl.initialize(ADMIN, 1001, 0)
        with self.assertRaises(InvalidInitialStateError):
            ctl.initialize(ADMIN, -1, 0)
        with self.assertRaises(ValueError):
            ctl.initialize(ADMIN, 500, -5)
        self.assertIsNone(store.state)

        ctl.initialize(ADMIN, 1000, 0)
        self.assertEqual(ctl.get_score(), 1000)


class TestRefine(unittest.TestCase):
    def setUp(self):
        self.ctl, self.store, self.clock, self.sink = make_controller()
        self.ctl.initialize(ADMIN, 870, 1247)

    def test_large_positive(self):
        self.assertEqual(self.ctl.refine(ADMIN, 10000), 920)
        score, trades, last_ref, _ = self.ctl.get_metrics()
        self.assertEqual(score, 920)
        self.assertEqual(trades, 1248)
        self.assertEqual(last_ref, T0)

    def test_large_negative(self):
        self.assertEqual(self.ctl.refine(ADMIN, -10000), 840)

    def test_small_positive_leaves_score(self):
        self.assertEqual(self.ctl.refine(ADMIN, 100), 870)
        self.assertEqual(self.ctl.get_metrics().total_trades, 1248)

    def test_refined_notification(self):
        self.ctl.refine(ADMIN, 10000)
        self.assertEqual(self.sink.events[-1], Refined(old_score=870, new_score=920, timestamp=T0, admin=ADMIN))

    def test_non_admin_cannot_refine(self):
        with self.assertRaises(UnauthorizedError):
            self.ctl.refine(HACKER, 1000)
        self.assertEqual(self.store.state, StrategyState(870, 1247, 0, ADMIN))
        self.assertEqual(self.sink.topics(), ["init"])

    def test_admin_without_proof_is_rejected(self):
        ctl, _, _, _ = make_controller(store=self.store, auth=StaticAuthVerifier([]))
        with self.assertRaises(UnauthorizedError):
            ctl.refine(ADMIN, 1000)
        self.assertEqual(self.store.state.total_trades, 1247)

    def test_cooldown_enforced(self):
        self.ctl.refine(ADMIN, 1000)
        with self.assertRaises(CooldownActiveError) as cm:
            self.ctl.refine(ADMIN, 1000)
        self.assertEqual(cm.exception.remaining_seconds, 3600)
        self.assertEqual(self.ctl.get_metrics().total_trades, 1248)

    def test_cooldown_boundary_is_inclusive(self):
        self.ctl.refine(ADMIN, 1000)
        self.clock.advance(3599)
        with self.assertRaises(CooldownActiveError) as cm:
            self.ctl.refine(ADMIN, 1000)
        self.assertEqual(cm.exception.remaining_seconds, 1)

        self.clock.advance(1)
        self.assertEqual(self.ctl.refine(ADMIN, 1000), 880)
        self.assertEqual(self.ctl.get_metrics().total_trades, 1249)

    def test_failed_calls_do_not_mutate(self):
        self.ctl.refine(ADMIN, 10000)
        before = self.store.state
        for call in (lambda: self.ctl.refine(ADMIN, 10000), lambda: self.ctl.refine(HACKER, 10000)):
            with self.assertRaises((CooldownActiveError, UnauthorizedError)):
                call()
        self.assertEqual(self.store.state, before)
        self.assertEqual(self.sink.topics(), ["init", "refined"])

    def test_score_clamping(self):
        ctl, _, clock, _ = make_controller()
        ctl.initialize(ADMIN, 990, 1247)
        ctl.refine(ADMIN, 100000)
        self.assertEqual(ctl.get_score(), 1000)

        clock.advance(3600)
        ctl.refine(ADMIN, -1000000)
        self.assertEqual(ctl.get_score(), 0)

    def test_metric_must_be_int(self):
        with self.assertRaises(TypeError):
            self.ctl.refine(ADMIN, 10.5)
        with self.assertRaises(TypeError):
            self.ctl.refine(ADMIN, True)

    def test_sink_failure_does_not_undo_refinement(self):
        ctl, store, _, _ = make_controller(sink=_ExplodingSink())
        with self.assertLogs("portfolio_agent.controller.refinement", level="ERROR"):
            ctl.initialize(ADMIN, 870, 1247)
        with self.assertLogs("portfolio_agent.controller.refinement", level="ERROR"):
            self.assertEqual(ctl.refine(ADMIN, 10000), 920)
        self.assertEqual(store.state.score, 920)


class TestUninitialized(unittest.TestCase):
    def test_refine_before_init(self):
        ctl, _, _, _ = make_controller()
        with self.assertRaises(NotInitializedError):
            ctl.refine(ADMIN, 1000)

    def test_unauthenticated_refine_before_init_reports_unauthorized(self):
        ctl, _, _, _ = make_controller(auth=StaticAuthVerifier([]))
        with self.assertRaises(UnauthorizedError):
            ctl.refine(ADMIN, 1000)

    def test_read_accessors(self):
        ctl, _, _, _ = make_controller()
        with self.assertRaises(NotInitializedError):
            ctl.get_metrics()
        self.assertEqual(ctl.get_score(), 0)
        self.assertEqual(ctl.get_cooldown_remaining(), 0)


class TestCooldownRemaining(unittest.TestCase):
    def test_cooldown_remaining_progression(self):
        ctl, _, clock, _ = make_controller()
        ctl.initialize(ADMIN, 870, 1247)
        self.assertEqual(ctl.get_cooldown_remaining(), 0)

        ctl.refine(ADMIN, 1000)
        remaining = ctl.get_cooldown_remaining()
        self.assertTrue(0 < remaining <= 3600)

        clock.advance(1800)
        half = ctl.get_cooldown_remaining()
        self.assertLess(half, remaining)
        self.assertGreater(half, 0)

        clock.advance(1799)
        self.assertEqual(ctl.get_cooldown_remaining(), 1)

        clock.advance(1)
        self.assertEqual(ctl.get_cooldown_remaining(), 0)

        clock.advance(10_000)
        self.assertEqual(ctl.get_cooldown_remaining(), 0)


if __name__ == "__main__":
    unittest.main()
