"""
Unit tests for the virtual clock scheduler and its real-time ticker.
"""
import asyncio
import unittest
from unittest.mock import Mock, patch

from battle_arena.scheduler import RealTimeTicker, TickScheduler, TimerLifecycleLogger


class TestTickScheduler(unittest.TestCase):
    """Test cases for TickScheduler."""

    def setUp(self):
        self.scheduler = TickScheduler("test_battle")
        self.fired = []

    def record(self, label):
        self.fired.append((label, self.scheduler.now))

    def test_timers_fire_in_due_order(self):
        self.scheduler.call_later(3, self.record, "c")
        self.scheduler.call_later(1, self.record, "a")
        self.scheduler.call_later(2, self.record, "b")

        fired = self.scheduler.advance(5)

        self.assertEqual(fired, 3)
        self.assertEqual(self.fired, [("a", 1.0), ("b", 2.0), ("c", 3.0)])
        self.assertEqual(self.scheduler.now, 5.0)

    def test_same_due_time_fires_in_scheduling_order(self):
        for label in ("first", "second", "third"):
            self.scheduler.call_later(1, self.record, label)

        self.scheduler.advance(1)

        self.assertEqual([label for label, _ in self.fired], ["first", "second", "third"])

    def test_timer_not_fired_before_due(self):
        self.scheduler.call_later(2, self.record, "late")

        self.assertEqual(self.scheduler.advance(1.5), 0)
        self.assertEqual(self.fired, [])
        self.assertEqual(self.scheduler.pending_count, 1)

        self.scheduler.advance(0.5)
        self.assertEqual(self.fired, [("late", 2.0)])

    def test_fractional_advances_accumulate_exactly(self):
        self.scheduler.call_later(1, self.record, "tick")

        for _ in range(10):
            self.scheduler.advance(0.1)

        self.assertEqual(len(self.fired), 1)

    def test_cancelled_timer_never_fires(self):
        handle = self.scheduler.call_later(1, self.record, "cancelled")

        self.assertTrue(self.scheduler.cancel(handle))
        self.assertFalse(self.scheduler.cancel(handle))
        self.scheduler.advance(2)

        self.assertEqual(self.fired, [])
        self.assertFalse(handle.active)

    def test_cancel_fired_or_missing_handle(self):
        handle = self.scheduler.call_later(0, self.record, "now")
        self.scheduler.advance(0)

        self.assertTrue(handle.fired)
        self.assertFalse(self.scheduler.cancel(handle))
        self.assertFalse(self.scheduler.cancel(None))

    def test_callback_scheduling_within_window_fires_same_advance(self):
        def chain(step):
            self.record(step)
            if step < 3:
                self.scheduler.call_later(1, chain, step + 1)

        self.scheduler.call_later(1, chain, 1)
        fired = self.scheduler.advance(10)

        self.assertEqual(fired, 3)
        self.assertEqual(self.fired, [(1, 1.0), (2, 2.0), (3, 3.0)])

    def test_negative_delay_treated_as_zero(self):
        self.scheduler.advance(2)
        self.scheduler.call_later(-5, self.record, "past")

        self.scheduler.advance(0)
        self.assertEqual(self.fired, [("past", 2.0)])

    def test_advance_backwards_raises(self):
        with self.assertRaises(ValueError):
            self.scheduler.advance(-1)

    def test_clear_cancels_everything(self):
        self.scheduler.call_later(1, self.record, "a")
        self.scheduler.call_later(2, self.record, "b")

        self.assertEqual(self.scheduler.clear(), 2)
        self.scheduler.advance(5)

        self.assertEqual(self.fired, [])
        self.assertEqual(self.scheduler.pending_count, 0)

    @patch('battle_arena.scheduler.logger')
    def test_lifecycle_logging(self, mock_logger):
        handle = self.scheduler.call_later(1, self.record, "a", name="countdown_tick")
        self.scheduler.cancel(handle)

        event_types = [kwargs['extra']['event_type'] for _, kwargs in mock_logger.debug.call_args_list]
        self.assertEqual(event_types, ['timer_scheduled', 'timer_cancelled'])
        _, kwargs = mock_logger.debug.call_args
        self.assertEqual(kwargs['extra']['battle_id'], 'test_battle')


class TestTimerLifecycleLogger(unittest.TestCase):
    """Test cases for structured timer lifecycle logging."""

    @patch('battle_arena.scheduler.logger')
    def test_state_transition_logged(self, mock_logger):
        TimerLifecycleLogger.log_state_transition("b1", "running", "paused", "pause requested")

        args, kwargs = mock_logger.info.call_args
        self.assertIn("STATE_TRANSITION", args[0])
        self.assertEqual(kwargs['extra']['from_state'], "running")
        self.assertEqual(kwargs['extra']['to_state'], "paused")

    @patch('battle_arena.scheduler.logger')
    def test_timer_error_logged(self, mock_logger):
        TimerLifecycleLogger.log_timer_error("b1", "tick_execution_error", "boom", "run")

        mock_logger.error.assert_called_once()
        _, kwargs = mock_logger.error.call_args
        self.assertEqual(kwargs['extra']['error_type'], "tick_execution_error")


class TestRealTimeTicker(unittest.IsolatedAsyncioTestCase):
    """Test cases for RealTimeTicker."""

    async def test_ticker_fires_due_timers_and_stops(self):
        scheduler = TickScheduler("ticker_test")
        callback = Mock()
        scheduler.call_later(0.05, callback)

        ticker = RealTimeTicker(scheduler, tick_interval=0.01, stop_condition=lambda: callback.called)
        task = ticker.start()
        await asyncio.wait_for(task, timeout=2.0)

        callback.assert_called_once()
        self.assertFalse(ticker.is_running)
        self.assertGreaterEqual(scheduler.now, 0.05)

    async def test_cancel_running_ticker(self):
        ticker = RealTimeTicker(TickScheduler("ticker_test"), tick_interval=0.01)
        ticker.start()
        await asyncio.sleep(0.03)

        self.assertTrue(ticker.is_running)
        self.assertTrue(await ticker.cancel())
        self.assertFalse(ticker.is_running)
        self.assertTrue(ticker.is_cancelled)
        self.assertFalse(await ticker.cancel())

    async def test_paused_time_does_not_reach_clock(self):
        scheduler = TickScheduler("ticker_test")
        ticker = RealTimeTicker(scheduler, tick_interval=0.01)
        ticker.pause()
        ticker.start()
        await asyncio.sleep(0.1)

        self.assertTrue(ticker.is_paused)
        self.assertEqual(scheduler.now, 0.0)

        ticker.resume()
        await asyncio.sleep(0.05)
        self.assertGreater(scheduler.now, 0.0)
        await ticker.cancel()

    async def test_start_twice_returns_same_task(self):
        ticker = RealTimeTicker(TickScheduler("ticker_test"), tick_interval=0.01)
        first = ticker.start()
        second = ticker.start()

        self.assertIs(first, second)
        await ticker.cancel()

    def test_invalid_tick_interval(self):
        with self.assertRaises(ValueError):
            RealTimeTicker(TickScheduler(), tick_interval=0)


if __name__ == '__main__':
    unittest.main()
