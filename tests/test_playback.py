import unittest

import pushswap_playback as playback_mod
from pushswap_engine import is_sorted
from pushswap_playback import (
    CancelToken,
    PlaybackEngine,
    PlaybackStatus,
    SchedTickScheduler,
    clamp_rate,
    rate_to_delay_ms,
)
from pushswap_solver import solve
from pushswap_telemetry import CallbackTelemetrySink


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += max(0.0, seconds)


class ManualScheduler:
    """Records armed callbacks; never removes them, so stale ticks can be fired by hand."""

    def __init__(self) -> None:
        self.callbacks = []
        self.delays = []
        self.cancelled = []

    def call_later(self, delay_ms, callback):
        self.callbacks.append(callback)
        self.delays.append(delay_ms)
        return len(self.callbacks) - 1

    def cancel(self, handle):
        self.cancelled.append(handle)

    def fire(self, handle):
        self.callbacks[handle]()


VALUES = [7, 3, 9, 1, 8, 2, 10, 6, 4, 5]


def make_engine(values=VALUES, scheduler=None, **kwargs):
    result = solve(values)
    return PlaybackEngine(values, result.ops, scheduler=scheduler, **kwargs)


class TestManualPlayback(unittest.TestCase):
    def test_initial_state(self):
        engine = make_engine()
        self.assertEqual(engine.cursor, 0)
        self.assertIs(engine.status, PlaybackStatus.IDLE)
        snap = engine.snapshot()
        self.assertEqual([el.value for el in snap.stack_a], VALUES)
        self.assertEqual(snap.stack_b, ())
        self.assertGreater(engine.total, 0)

    def test_step_until_finished(self):
        engine = make_engine()
        for _ in range(engine.total):
            self.assertTrue(engine.step())
        self.assertIs(engine.status, PlaybackStatus.FINISHED)
        snap = engine.snapshot()
        self.assertEqual(snap.ranks_a, list(range(len(VALUES))))
        self.assertEqual(snap.stack_b, ())

    def test_step_at_end_is_noop(self):
        engine = make_engine()
        engine.seek(engine.total)
        before = engine.snapshot()
        self.assertFalse(engine.step())
        self.assertEqual(engine.cursor, engine.total)
        self.assertEqual(engine.snapshot(), before)
        self.assertIs(engine.status, PlaybackStatus.FINISHED)

    def test_step_back_at_start_is_noop(self):
        engine = make_engine()
        before = engine.snapshot()
        self.assertFalse(engine.step_back())
        self.assertEqual(engine.cursor, 0)
        self.assertEqual(engine.snapshot(), before)
        self.assertIs(engine.status, PlaybackStatus.IDLE)

    def test_step_back_then_step_round_trip(self):
        engine = make_engine()
        for cursor in range(1, engine.total + 1):
            engine.seek(cursor)
            before = engine.snapshot()
            self.assertTrue(engine.step_back())
            self.assertEqual(engine.cursor, cursor - 1)
            self.assertTrue(engine.step())
            self.assertEqual(engine.cursor, cursor)
            self.assertEqual(engine.snapshot(), before)

    def test_state_at_matches_stepping_and_clamps(self):
        engine = make_engine()
        probe = make_engine()
        for cursor in range(engine.total + 1):
            self.assertEqual(probe.state_at(cursor), engine.snapshot())
            engine.step()
        self.assertEqual(probe.cursor, 0)
        self.assertEqual(probe.state_at(-5), probe.state_at(0))
        self.assertEqual(probe.state_at(probe.total + 50), probe.state_at(probe.total))

    def test_seek_clamps(self):
        engine = make_engine()
        self.assertEqual(engine.seek(-3), 0)
        self.assertEqual(engine.seek(engine.total + 10), engine.total)
        self.assertIs(engine.status, PlaybackStatus.FINISHED)

    def test_reset_and_stop_restore_original(self):
        engine = make_engine()
        original = engine.snapshot()
        engine.step()
        engine.step()
        engine.reset()
        self.assertEqual(engine.cursor, 0)
        self.assertEqual(engine.snapshot(), original)
        self.assertIs(engine.status, PlaybackStatus.IDLE)
        engine.step()
        engine.stop()
        self.assertEqual(engine.snapshot(), original)

    def test_empty_log(self):
        engine = make_engine(values=[1, 2, 3])
        self.assertEqual(engine.total, 0)
        self.assertFalse(engine.step())
        self.assertFalse(engine.step_back())
        self.assertIs(engine.status, PlaybackStatus.FINISHED)

    def test_failed_step_notifies_only_on_status_change(self):
        engine = make_engine(values=[1, 2, 3])
        seen = []
        engine.add_listener(lambda eng: seen.append(eng.status))
        engine.step()
        engine.step()
        self.assertEqual(seen, [PlaybackStatus.FINISHED])

    def test_elements_conserved_at_every_cursor(self):
        engine = make_engine()
        expected = sorted(VALUES)
        while True:
            snap = engine.snapshot()
            self.assertEqual(sorted(el.value for el in snap.stack_a + snap.stack_b), expected)
            if not engine.step():
                break

    def test_listeners_see_every_change(self):
        engine = make_engine()
        seen = []

        def listener(eng):
            seen.append(eng.cursor)

        engine.add_listener(listener)
        engine.step()
        engine.step()
        engine.step_back()
        self.assertEqual(seen, [1, 2, 1])
        engine.remove_listener(listener)
        engine.step()
        self.assertEqual(seen, [1, 2, 1])

    def test_load_replaces_permutation(self):
        engine = make_engine()
        engine.step()
        values = [2, 1]
        engine.load(values, solve(values).ops)
        self.assertEqual(engine.cursor, 0)
        self.assertEqual(engine.total, 1)
        self.assertEqual(engine.values, (2, 1))
        self.assertIs(engine.status, PlaybackStatus.IDLE)


class TestTimedPlayback(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.scheduler = SchedTickScheduler(self.clock.time, self.clock.sleep)

    def test_play_runs_to_completion(self):
        engine = make_engine(values=list(range(30, 0, -1)), scheduler=self.scheduler)
        self.assertTrue(engine.play(rate=100))
        self.assertIs(engine.status, PlaybackStatus.PLAYING)
        self.scheduler.run()
        self.assertEqual(engine.cursor, engine.total)
        self.assertIs(engine.status, PlaybackStatus.FINISHED)
        self.assertTrue(is_sorted(engine.snapshot().stack_a))
        self.assertAlmostEqual(self.clock.now, engine.total * 0.01, places=6)

    def test_pause_after_first_tick_stops_advancing(self):
        engine = make_engine(scheduler=self.scheduler)

        def pause_after_first(eng):
            if eng.cursor == 1:
                eng.pause()

        engine.add_listener(pause_after_first)
        engine.play(rate=10)
        self.scheduler.run()
        self.assertEqual(engine.cursor, 1)
        self.assertAlmostEqual(self.clock.now, 0.1)
        self.assertIs(engine.status, PlaybackStatus.STEPPING)

        self.clock.sleep(1.0)
        self.scheduler.run()
        self.assertEqual(engine.cursor, 1)
        self.assertTrue(self.scheduler.empty())

    def test_play_without_scheduler_is_noop(self):
        engine = make_engine()
        self.assertFalse(engine.play())
        self.assertIs(engine.status, PlaybackStatus.IDLE)

    def test_play_when_finished_returns_false(self):
        engine = make_engine(scheduler=self.scheduler)
        engine.seek(engine.total)
        self.assertFalse(engine.play())
        self.assertTrue(self.scheduler.empty())

    def test_play_resumes_after_step_back_at_start(self):
        engine = make_engine(scheduler=self.scheduler)
        engine.play(rate=10)
        engine.step_back()
        self.assertNotEqual(engine.status, PlaybackStatus.PLAYING)
        self.assertTrue(self.scheduler.empty())
        self.assertTrue(engine.play(rate=10))
        self.assertFalse(self.scheduler.empty())
        self.scheduler.run()
        self.assertEqual(engine.cursor, engine.total)
        self.assertIs(engine.status, PlaybackStatus.FINISHED)

    def test_reset_cancels_playback(self):
        engine = make_engine(scheduler=self.scheduler)
        engine.play()
        engine.reset()
        self.assertTrue(self.scheduler.empty())
        self.scheduler.run()
        self.assertEqual(engine.cursor, 0)
        self.assertIs(engine.status, PlaybackStatus.IDLE)


class TestCancellation(unittest.TestCase):
    def test_stale_tick_after_pause_is_ignored(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler)
        engine.play(rate=10)
        self.assertEqual(scheduler.delays, [100])
        scheduler.fire(0)
        self.assertEqual(engine.cursor, 1)
        engine.pause()
        self.assertEqual(scheduler.cancelled, [1])
        # the tick armed before pause fires anyway
        scheduler.fire(1)
        self.assertEqual(engine.cursor, 1)

    def test_old_session_tick_ignored_after_replay(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler)
        engine.play()
        engine.pause()
        engine.play()
        scheduler.fire(0)
        self.assertEqual(engine.cursor, 0)
        scheduler.fire(1)
        self.assertEqual(engine.cursor, 1)

    def test_load_cancels_pending_tick(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler)
        engine.play()
        engine.load([2, 1], solve([2, 1]).ops)
        scheduler.fire(0)
        self.assertEqual(engine.cursor, 0)
        self.assertIs(engine.status, PlaybackStatus.IDLE)

    def test_manual_step_while_playing_pauses(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler)
        engine.play()
        self.assertTrue(engine.step())
        self.assertIs(engine.status, PlaybackStatus.STEPPING)
        scheduler.fire(0)
        self.assertEqual(engine.cursor, 1)

    def test_step_back_at_start_while_playing_stops_session(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler)
        engine.play(rate=10)
        self.assertFalse(engine.step_back())
        self.assertEqual(scheduler.cancelled, [0])
        self.assertEqual(engine.cursor, 0)
        self.assertIs(engine.status, PlaybackStatus.IDLE)

        self.assertTrue(engine.play(rate=10))
        self.assertEqual(scheduler.delays, [100, 100])
        scheduler.fire(0)
        self.assertEqual(engine.cursor, 0)
        scheduler.fire(1)
        self.assertEqual(engine.cursor, 1)

    def test_pause_after_step_back_at_start_is_noop(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler)
        engine.play()
        engine.step_back()
        engine.pause()
        self.assertIs(engine.status, PlaybackStatus.IDLE)
        self.assertEqual(len(scheduler.callbacks), 1)

    def test_set_rate_applies_to_next_tick(self):
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler, rate=10)
        engine.play()
        engine.set_rate(50)
        scheduler.fire(0)
        self.assertEqual(scheduler.delays, [100, 20])

    def test_cancel_token(self):
        token = CancelToken()
        self.assertFalse(token.cancelled)
        token.cancel()
        self.assertTrue(token.cancelled)


class TestRates(unittest.TestCase):
    def test_clamp_rate(self):
        self.assertEqual(clamp_rate(0), playback_mod.MIN_RATE)
        self.assertEqual(clamp_rate(-10), playback_mod.MIN_RATE)
        self.assertEqual(clamp_rate(10**9), playback_mod.MAX_RATE)
        self.assertEqual(clamp_rate(25), 25.0)

    def test_rate_to_delay(self):
        self.assertEqual(rate_to_delay_ms(10), 100)
        self.assertEqual(rate_to_delay_ms(200), 5)
        self.assertEqual(rate_to_delay_ms(1000), 1)


class TestPlaybackTelemetry(unittest.TestCase):
    def test_status_transitions_emit_events(self):
        events = []
        sink = CallbackTelemetrySink(events.append)
        clock = FakeClock()
        scheduler = SchedTickScheduler(clock.time, clock.sleep)
        engine = make_engine(values=[3, 1, 2], scheduler=scheduler, telemetry_sink=sink)
        engine.play(rate=1000)
        scheduler.run()
        statuses = [e.data["status"] for e in events if e.event == "playback_state"]
        self.assertEqual(statuses, ["playing", "finished"])
        self.assertEqual(events[-1].data["cursor"], engine.total)

    def test_stop_while_playing_emits_one_transition(self):
        events = []
        sink = CallbackTelemetrySink(events.append)
        scheduler = ManualScheduler()
        engine = make_engine(scheduler=scheduler, telemetry_sink=sink)
        engine.play()
        scheduler.fire(0)
        notified = []
        engine.add_listener(lambda eng: notified.append(eng.status))
        engine.stop()
        statuses = [e.data["status"] for e in events if e.event == "playback_state"]
        self.assertEqual(statuses, ["playing", "idle"])
        self.assertEqual(notified, [PlaybackStatus.IDLE])
        self.assertEqual(engine.cursor, 0)
        self.assertEqual(scheduler.cancelled, [1])


if __name__ == "__main__":
    unittest.main()
