"""
Simulated opponent for battles.

A strategy decides, per question, which option the opponent picks and after
how many seconds. The simulator turns that decision into exactly one delayed
answer event on the battle's scheduler.
"""
import logging
import random
from typing import Callable, Dict, Optional, Sequence, Tuple

from .models import Question
from .scheduler import TickScheduler, TimerHandle

logger = logging.getLogger(__name__)

# (question) -> (answer_index, delay_seconds)
OpponentStrategy = Callable[[Question], Tuple[int, float]]


class RandomOpponentStrategy:
    """Answers correctly with a fixed probability at a uniformly random moment."""

    def __init__(self, accuracy: float = 0.7, rng: Optional[random.Random] = None):
        if not 0.0 <= accuracy <= 1.0:
            raise ValueError(f"Opponent accuracy must be between 0 and 1, got {accuracy}")
        self.accuracy = accuracy
        self._rng = rng or random.Random()

    def __call__(self, question: Question) -> Tuple[int, float]:
        delay = self._rng.uniform(0, question.time_limit_seconds)
        # uniform() may return the upper bound; the answer must land before time runs out
        if delay >= question.time_limit_seconds:
            delay = 0.0

        if self._rng.random() < self.accuracy:
            return question.correct_option_index, delay

        wrong_options = [
            index for index in range(len(question.options))
            if index != question.correct_option_index
        ]
        if not wrong_options:
            return question.correct_option_index, delay
        return self._rng.choice(wrong_options), delay


class FixedOpponentStrategy:
    """
    Deterministic opponent following a script.

    Each entry is (answer_index, delay_seconds) for the question at that
    position. An answer index of None means "answer correctly".
    """

    def __init__(self, script: Sequence[Tuple[Optional[int], float]], default_delay: float = 1.0):
        self._script = list(script)
        self._default_delay = default_delay
        self._position = 0

    def __call__(self, question: Question) -> Tuple[int, float]:
        if self._position < len(self._script):
            answer, delay = self._script[self._position]
        else:
            answer, delay = None, self._default_delay
        self._position += 1
        if answer is None:
            answer = question.correct_option_index
        return answer, delay


class OpponentSimulator:
    """Schedules one opponent answer per question and drops it if the question is left."""

    def __init__(
        self,
        scheduler: TickScheduler,
        strategy: OpponentStrategy,
        on_answer: Callable[[int, int, float], None]
    ):
        """
        Initialize the simulator.

        Args:
            scheduler: Battle scheduler the answer events are placed on
            strategy: Picks the answer and delay for a question
            on_answer: Called with (question_index, option_index, remaining_seconds)
        """
        self.scheduler = scheduler
        self.strategy = strategy
        self._on_answer = on_answer
        self._pending: Dict[int, TimerHandle] = {}

    def schedule(self, question_index: int, question: Question) -> Optional[TimerHandle]:
        """
        Schedule the opponent's answer for a question.

        Returns:
            Timer handle, or None if an answer was already scheduled for this question
        """
        if question_index in self._pending:
            logger.debug(f"Opponent answer already scheduled for question {question_index}")
            return None

        answer_index, delay = self.strategy(question)
        delay = min(max(0.0, float(delay)), question.time_limit_seconds)
        remaining = max(0, int(question.time_limit_seconds - delay))

        handle = self.scheduler.call_later(
            delay,
            self._deliver,
            question_index,
            answer_index,
            remaining,
            name=f"opponent_answer_q{question_index}"
        )
        self._pending[question_index] = handle
        return handle

    def cancel(self, question_index: int) -> bool:
        """Cancel a not-yet-delivered answer. Returns True if one was pending."""
        handle = self._pending.pop(question_index, None)
        return self.scheduler.cancel(handle)

    def cancel_all(self) -> int:
        cancelled = 0
        for question_index in list(self._pending):
            if self.cancel(question_index):
                cancelled += 1
        return cancelled

    def _deliver(self, question_index: int, answer_index: int, remaining: int) -> None:
        self._pending.pop(question_index, None)
        self._on_answer(question_index, answer_index, remaining)
