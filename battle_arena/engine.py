"""
Battle engine: the state machine behind a timed quiz battle.

A battle runs countdown -> in_progress -> complete. Every timer lives on the
battle's TickScheduler and every resolution step starts with a guard on the
phase, the captured question index and the already-answered state, so a late
or duplicated timer firing never changes the session twice.
"""
import logging
import time
import uuid
from typing import Callable, List, Optional, Sequence

from .models import BattlePhase, BattleSession, BattleSettings, PartyState, Question, ResultSummary
from .opponent import OpponentSimulator, OpponentStrategy, RandomOpponentStrategy
from .question_bank import DEFAULT_QUESTIONS
from .results import summarize
from .scheduler import TickScheduler, TimerHandle
from .scoring import score_answer

logger = logging.getLogger(__name__)

# Events delivered to listeners as (event, session)
COUNTDOWN_TICK = "countdown_tick"
BATTLE_STARTED = "battle_started"
QUESTION_STARTED = "question_started"
QUESTION_TICK = "question_tick"
PLAYER_ANSWERED = "player_answered"
OPPONENT_ANSWERED = "opponent_answered"
BATTLE_COMPLETE = "battle_complete"

BattleListener = Callable[[str, BattleSession], None]
BattleEndCallback = Callable[[str, ResultSummary], None]


class BattleEngine:
    """
    Drives one battle between a player and a simulated opponent.

    The engine never raises for late, duplicate or out-of-phase input: such
    calls are ignored. The host observes progress through listeners and the
    final result through on_battle_end, which fires once after the host
    acknowledges the result.
    """

    def __init__(
        self,
        player_name: str,
        opponent_name: str,
        questions: Optional[Sequence[Question]] = None,
        scheduler: Optional[TickScheduler] = None,
        opponent_strategy: Optional[OpponentStrategy] = None,
        settings: Optional[BattleSettings] = None,
        on_battle_end: Optional[BattleEndCallback] = None,
        battle_id: Optional[str] = None,
        player_id: str = "player",
        opponent_id: str = "opponent"
    ):
        """
        Initialize the engine.

        Args:
            player_name: Display name of the real player
            opponent_name: Display name of the simulated opponent
            questions: Ordered questions; the built-in list when None
            scheduler: Tick driver; a fresh virtual clock when None
            opponent_strategy: Picks opponent answers; random with the configured accuracy when None
            settings: Countdown, reveal delay and opponent accuracy
            on_battle_end: Called with (outcome, summary) once the result is acknowledged
            battle_id: Identifier used in logs
        """
        self.settings = settings or BattleSettings()
        self.battle_id = battle_id or uuid.uuid4().hex[:8]
        self.scheduler = scheduler or TickScheduler(self.battle_id)

        if questions is None:
            questions = DEFAULT_QUESTIONS

        self.session = BattleSession(
            player=PartyState(id=player_id, display_name=player_name),
            opponent=PartyState(id=opponent_id, display_name=opponent_name),
            questions=tuple(questions),
            countdown_remaining=max(0, self.settings.countdown_seconds),
        )

        strategy = opponent_strategy or RandomOpponentStrategy(self.settings.opponent_accuracy)
        self.opponent_simulator = OpponentSimulator(self.scheduler, strategy, self._resolve_opponent_answer)

        self._on_battle_end = on_battle_end
        self._listeners: List[BattleListener] = []
        self._countdown_timer: Optional[TimerHandle] = None
        self._question_timer: Optional[TimerHandle] = None
        self._reveal_timer: Optional[TimerHandle] = None
        self._summary: Optional[ResultSummary] = None
        self._started = False
        self._acknowledged = False
        self._abandoned = False

    def add_listener(self, listener: BattleListener) -> None:
        self._listeners.append(listener)

    def start(self) -> bool:
        """
        Start the pre-battle countdown.

        Returns:
            True if the battle started, False if it was already started or abandoned
        """
        if self._started or self._abandoned:
            return False
        self._started = True

        logger.info(
            f"Battle {self.battle_id} starting: {self.session.player.display_name} vs "
            f"{self.session.opponent.display_name}, {self.session.question_count} questions",
            extra={
                'event_type': 'battle_start',
                'battle_id': self.battle_id,
                'question_count': self.session.question_count,
                'timestamp': time.time()
            }
        )

        if self.session.countdown_remaining <= 0:
            self._begin_battle()
        else:
            self._countdown_timer = self.scheduler.call_later(1, self._on_countdown_tick, name="countdown_tick")
        return True

    def submit_answer(self, option_index: int) -> bool:
        """
        Submit the player's answer to the current question.

        Args:
            option_index: Zero-based index of the chosen option

        Returns:
            True if the answer was accepted, False if it was ignored
        """
        session = self.session
        if self._abandoned or session.phase != BattlePhase.IN_PROGRESS:
            logger.debug(f"Battle {self.battle_id}: answer ignored in phase {session.phase.value}")
            return False

        question = session.current_question
        if question is None:
            return False

        if not question.is_valid_option(option_index):
            logger.debug(f"Battle {self.battle_id}: answer {option_index!r} is not a valid option")
            return False

        index = session.current_question_index
        if session.player.has_answered(index):
            logger.debug(f"Battle {self.battle_id}: duplicate answer for question {index} ignored")
            return False

        return self._resolve_player_answer(index, option_index)

    def acknowledge_result(self) -> Optional[ResultSummary]:
        """
        Acknowledge the final result and notify on_battle_end.

        Returns:
            The summary on the first call after completion, None otherwise
        """
        if self.session.phase != BattlePhase.COMPLETE or self._acknowledged or self._abandoned:
            return None
        self._acknowledged = True

        if self._on_battle_end:
            self._on_battle_end(self._summary.outcome, self._summary)
        return self._summary

    def abandon(self) -> None:
        """Discard the battle: cancel every pending timer without reporting a result."""
        if self._abandoned:
            return
        self._abandoned = True
        cancelled = self._cancel_timers()
        logger.info(
            f"Battle {self.battle_id} abandoned in phase {self.session.phase.value}, "
            f"{cancelled} pending timers cancelled",
            extra={
                'event_type': 'battle_abandoned',
                'battle_id': self.battle_id,
                'phase': self.session.phase.value,
                'timestamp': time.time()
            }
        )

    @property
    def phase(self) -> BattlePhase:
        return self.session.phase

    @property
    def is_complete(self) -> bool:
        return self.session.phase == BattlePhase.COMPLETE

    @property
    def is_abandoned(self) -> bool:
        return self._abandoned

    @property
    def is_acknowledged(self) -> bool:
        return self._acknowledged

    @property
    def summary(self) -> Optional[ResultSummary]:
        """Final summary, available once the battle is complete."""
        return self._summary

    def _on_countdown_tick(self) -> None:
        session = self.session
        if self._abandoned or session.phase != BattlePhase.COUNTDOWN:
            return

        session.countdown_remaining = max(0, session.countdown_remaining - 1)
        self._emit(COUNTDOWN_TICK)

        if session.countdown_remaining == 0:
            self._countdown_timer = None
            self._begin_battle()
        else:
            self._countdown_timer = self.scheduler.call_later(1, self._on_countdown_tick, name="countdown_tick")

    def _begin_battle(self) -> None:
        self._transition(BattlePhase.IN_PROGRESS, "countdown finished")
        self._emit(BATTLE_STARTED)

        if not self.session.questions:
            self._complete()
            return
        self._start_question(0)

    def _start_question(self, index: int) -> None:
        session = self.session
        session.current_question_index = index
        question = session.questions[index]
        session.question_time_remaining = question.time_limit_seconds

        self._question_timer = self.scheduler.call_later(
            1, self._on_question_tick, index, name=f"question_tick_q{index}"
        )
        self.opponent_simulator.schedule(index, question)

        logger.debug(
            f"Battle {self.battle_id}: question {index + 1}/{session.question_count} started",
            extra={
                'event_type': 'question_started',
                'battle_id': self.battle_id,
                'question_index': index,
                'question_id': question.id,
                'time_limit': question.time_limit_seconds,
                'timestamp': time.time()
            }
        )
        self._emit(QUESTION_STARTED)

    def _on_question_tick(self, index: int) -> None:
        session = self.session
        if (self._abandoned or session.phase != BattlePhase.IN_PROGRESS
                or index != session.current_question_index or session.player.has_answered(index)):
            return

        session.question_time_remaining = max(0, session.question_time_remaining - 1)
        self._emit(QUESTION_TICK)

        if session.question_time_remaining == 0:
            self._question_timer = None
            logger.info(
                f"Battle {self.battle_id}: question {index + 1} timed out",
                extra={
                    'event_type': 'question_timeout',
                    'battle_id': self.battle_id,
                    'question_index': index,
                    'timestamp': time.time()
                }
            )
            self._resolve_player_answer(index, None)
        else:
            self._question_timer = self.scheduler.call_later(
                1, self._on_question_tick, index, name=f"question_tick_q{index}"
            )

    def _on_reveal_elapsed(self, index: int) -> None:
        session = self.session
        if self._abandoned or session.phase != BattlePhase.IN_PROGRESS or index != session.current_question_index:
            return

        self._reveal_timer = None
        # Opponent answers still pending for this question are dropped
        self.opponent_simulator.cancel(index)

        if session.is_last_question:
            self._complete()
        else:
            self._start_question(index + 1)

    def _resolve_player_answer(self, index: int, option_index: Optional[int]) -> bool:
        """Resolve the player's answer (None for a timeout). Returns False if already resolved."""
        session = self.session
        if (self._abandoned or session.phase != BattlePhase.IN_PROGRESS
                or index != session.current_question_index or session.player.has_answered(index)):
            return False

        self.scheduler.cancel(self._question_timer)
        self._question_timer = None

        question = session.questions[index]
        earned = score_answer(question, option_index, session.question_time_remaining)
        self._apply_answer(session.player, index, question, option_index, earned)

        logger.info(
            f"Battle {self.battle_id}: player answered question {index + 1} "
            f"({'correct' if question.is_correct(option_index) else 'incorrect'}, +{earned})",
            extra={
                'event_type': 'player_answer_resolved',
                'battle_id': self.battle_id,
                'question_index': index,
                'option_index': option_index,
                'points': earned,
                'remaining_time': session.question_time_remaining,
                'timestamp': time.time()
            }
        )
        self._emit(PLAYER_ANSWERED)

        self._reveal_timer = self.scheduler.call_later(
            self.settings.reveal_delay_seconds, self._on_reveal_elapsed, index, name=f"reveal_q{index}"
        )
        return True

    def _resolve_opponent_answer(self, index: int, option_index: int, remaining_seconds: float) -> bool:
        session = self.session
        if (self._abandoned or session.phase != BattlePhase.IN_PROGRESS
                or index != session.current_question_index or session.opponent.has_answered(index)):
            logger.debug(f"Battle {self.battle_id}: stale opponent answer for question {index} dropped")
            return False

        question = session.questions[index]
        if not question.is_valid_option(option_index):
            logger.warning(
                f"Battle {self.battle_id}: opponent answer {option_index!r} for question {index} is not a valid option",
                extra={
                    'event_type': 'opponent_answer_invalid',
                    'battle_id': self.battle_id,
                    'question_index': index,
                    'timestamp': time.time()
                }
            )
            return False

        earned = score_answer(question, option_index, remaining_seconds)
        self._apply_answer(session.opponent, index, question, option_index, earned)

        logger.debug(
            f"Battle {self.battle_id}: opponent answered question {index + 1} (+{earned})",
            extra={
                'event_type': 'opponent_answer_resolved',
                'battle_id': self.battle_id,
                'question_index': index,
                'option_index': option_index,
                'points': earned,
                'timestamp': time.time()
            }
        )
        self._emit(OPPONENT_ANSWERED)
        return True

    @staticmethod
    def _apply_answer(
        party: PartyState,
        index: int,
        question: Question,
        option_index: Optional[int],
        earned: int
    ) -> None:
        party.answers[index] = option_index
        if option_index is not None:
            party.answered_count += 1

        if question.is_correct(option_index):
            party.correct_count += 1
            party.streak += 1
            party.best_streak = max(party.best_streak, party.streak)
            party.score += earned
        else:
            party.streak = 0

    def _complete(self) -> None:
        self._cancel_timers()
        self._transition(BattlePhase.COMPLETE, "last question resolved")

        self._summary = summarize(self.session)
        self.session.outcome = self._summary.outcome

        logger.info(
            f"Battle {self.battle_id} complete: {self._summary.outcome} "
            f"({self._summary.final_player_score} - {self._summary.final_opponent_score})",
            extra={
                'event_type': 'battle_complete',
                'battle_id': self.battle_id,
                'outcome': self._summary.outcome,
                'player_score': self._summary.final_player_score,
                'opponent_score': self._summary.final_opponent_score,
                'timestamp': time.time()
            }
        )
        self._emit(BATTLE_COMPLETE)

    def _transition(self, to_phase: BattlePhase, reason: str) -> None:
        from_phase = self.session.phase
        self.session.phase = to_phase
        logger.info(
            f"Battle {self.battle_id}: STATE_TRANSITION {from_phase.value} -> {to_phase.value} ({reason})",
            extra={
                'event_type': 'battle_state_transition',
                'battle_id': self.battle_id,
                'from_state': from_phase.value,
                'to_state': to_phase.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    def _cancel_timers(self) -> int:
        cancelled = 0
        for handle in (self._countdown_timer, self._question_timer, self._reveal_timer):
            if self.scheduler.cancel(handle):
                cancelled += 1
        self._countdown_timer = self._question_timer = self._reveal_timer = None
        cancelled += self.opponent_simulator.cancel_all()
        return cancelled

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self.session)
            except Exception as e:
                # Listener errors never propagate into the scheduler
                logger.error(f"Battle {self.battle_id}: listener failed on {event}: {e}", exc_info=True)
