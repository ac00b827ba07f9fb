"""
Tick driver for battle timers.

Every timer of a battle (countdown, question timer, opponent answer, reveal
pause) lives on one TickScheduler. The scheduler only moves when advanced:
tests advance it by hand, production advances it from a RealTimeTicker that
follows the wall clock on the asyncio event loop.
"""
import asyncio
import heapq
import itertools
import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Rounding applied to clock arithmetic so repeated fractional ticks land on whole seconds
_CLOCK_PRECISION = 6


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_scheduled(battle_id: str, name: str, delay: float, due: float) -> None:
        logger.debug(
            f"Timer lifecycle: SCHEDULED - Battle {battle_id}, {name} in {delay:.3f}s",
            extra={
                'event_type': 'timer_scheduled',
                'battle_id': battle_id,
                'timer_name': name,
                'delay': delay,
                'due': due,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_cancelled(battle_id: str, name: str) -> None:
        logger.debug(
            f"Timer lifecycle: CANCELLED - Battle {battle_id}, {name}",
            extra={
                'event_type': 'timer_cancelled',
                'battle_id': battle_id,
                'timer_name': name,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_ticker_start(battle_id: str, tick_interval: float) -> None:
        logger.info(
            f"Timer lifecycle: TICKER_START - Battle {battle_id}, interval {tick_interval:.3f}s",
            extra={
                'event_type': 'ticker_start',
                'battle_id': battle_id,
                'tick_interval': tick_interval,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_ticker_completion(battle_id: str, completion_type: str, elapsed: float) -> None:
        logger.info(
            f"Timer lifecycle: COMPLETED - Battle {battle_id}, Type {completion_type}, Elapsed {elapsed:.1f}s",
            extra={
                'event_type': 'ticker_completed',
                'battle_id': battle_id,
                'completion_type': completion_type,
                'elapsed': elapsed,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_state_transition(battle_id: str, from_state: str, to_state: str, reason: str = None) -> None:
        logger.info(
            f"Timer lifecycle: STATE_TRANSITION - Battle {battle_id}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'battle_id': battle_id,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(battle_id: str, error_type: str, error_message: str, operation: str) -> None:
        logger.error(
            f"Timer lifecycle: ERROR - Battle {battle_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'battle_id': battle_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class TimerHandle:
    """A pending one-shot callback on a TickScheduler."""

    def __init__(self, due: float, name: str, callback: Callable[..., Any], args: tuple):
        self.due = due
        self.name = name
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True


class TickScheduler:
    """
    Virtual clock holding every pending timer of one battle.

    Timers fire in due-time order; timers due at the same instant fire in the
    order they were scheduled. Timers scheduled by a firing callback fire in
    the same advance() call when they fall inside the advanced window.
    """

    def __init__(self, battle_id: str = None):
        self.battle_id = battle_id
        self._now = 0.0
        self._heap = []
        self._sequence = itertools.count()

    @property
    def now(self) -> float:
        """Current virtual time in seconds."""
        return self._now

    @property
    def pending_count(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for _, _, handle in self._heap if handle.active)

    def call_later(self, delay: float, callback: Callable[..., Any], *args, name: str = None) -> TimerHandle:
        """
        Schedule a callback after a delay of virtual time.

        Args:
            delay: Seconds from now; negative values are treated as 0
            callback: Called with *args once the delay elapses
            name: Label used in lifecycle logs

        Returns:
            Handle that can be cancelled before it fires
        """
        delay = max(0.0, float(delay))
        due = round(self._now + delay, _CLOCK_PRECISION)
        handle = TimerHandle(due, name or getattr(callback, '__name__', 'timer'), callback, args)
        heapq.heappush(self._heap, (due, next(self._sequence), handle))
        TimerLifecycleLogger.log_timer_scheduled(self.battle_id, handle.name, delay, due)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> bool:
        """
        Cancel a pending timer.

        Returns:
            True if the timer was pending, False if it already fired or was cancelled
        """
        if handle is None or not handle.active:
            return False
        handle.cancel()
        TimerLifecycleLogger.log_timer_cancelled(self.battle_id, handle.name)
        return True

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward and fire every timer that comes due.

        Args:
            seconds: Amount of virtual time to advance

        Returns:
            Number of callbacks fired
        """
        if seconds < 0:
            raise ValueError("Cannot advance the clock backwards")

        target = round(self._now + seconds, _CLOCK_PRECISION)
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            due, _, handle = heapq.heappop(self._heap)
            if not handle.active:
                continue
            self._now = max(self._now, due)
            handle.fired = True
            handle.callback(*handle.args)
            fired += 1
        self._now = target
        return fired

    def clear(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        cancelled = 0
        for _, _, handle in self._heap:
            if handle.active:
                handle.cancel()
                cancelled += 1
        self._heap.clear()
        if cancelled:
            logger.debug(f"Cleared {cancelled} pending timers for battle {self.battle_id}")
        return cancelled


class RealTimeTicker:
    """Advances a TickScheduler in step with the wall clock."""

    def __init__(
        self,
        scheduler: TickScheduler,
        tick_interval: float = 0.1,
        stop_condition: Callable[[], bool] = None
    ):
        """
        Initialize the ticker.

        Args:
            scheduler: Scheduler to drive
            tick_interval: Seconds between clock advances
            stop_condition: Checked after every tick; the ticker ends once it returns True
        """
        if tick_interval <= 0:
            raise ValueError("Tick interval must be positive")
        self.scheduler = scheduler
        self.tick_interval = tick_interval
        self._stop_condition = stop_condition
        self._task: Optional[asyncio.Task] = None
        self._is_paused = False
        self._is_cancelled = False

    def start(self) -> asyncio.Task:
        """Start ticking as a background task on the running event loop."""
        if self._task and not self._task.done():
            logger.warning(f"Ticker for battle {self.scheduler.battle_id} already running")
            return self._task
        self._is_cancelled = False
        self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        """Tick until cancelled or the stop condition holds."""
        battle_id = self.scheduler.battle_id
        loop = asyncio.get_running_loop()
        TimerLifecycleLogger.log_ticker_start(battle_id, self.tick_interval)
        started = loop.time()
        last = started

        try:
            while not self._is_cancelled:
                await asyncio.sleep(self.tick_interval)
                current = loop.time()
                if self._is_paused:
                    # Paused time never reaches the battle clock
                    last = current
                    continue
                self.scheduler.advance(current - last)
                last = current
                if self._stop_condition and self._stop_condition():
                    break

            completion_type = "cancelled" if self._is_cancelled else "natural_expiry"
            TimerLifecycleLogger.log_ticker_completion(battle_id, completion_type, loop.time() - started)

        except asyncio.CancelledError:
            self._is_cancelled = True
            TimerLifecycleLogger.log_ticker_completion(battle_id, "asyncio_cancelled", loop.time() - started)
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(battle_id, "tick_execution_error", str(e), "run")
            raise

    def pause(self) -> None:
        if not self._is_paused:
            TimerLifecycleLogger.log_state_transition(
                self.scheduler.battle_id, "running", "paused", "pause requested"
            )
        self._is_paused = True

    def resume(self) -> None:
        if self._is_paused:
            TimerLifecycleLogger.log_state_transition(
                self.scheduler.battle_id, "paused", "running", "resume requested"
            )
        self._is_paused = False

    async def cancel(self) -> bool:
        """
        Stop ticking and wait for the background task to finish.

        Returns:
            True if a running task was cancelled, False if there was nothing to stop
        """
        self._is_cancelled = True
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        TimerLifecycleLogger.log_state_transition(
            self.scheduler.battle_id, "running", "cancelled", "task cancelled"
        )
        return True

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
