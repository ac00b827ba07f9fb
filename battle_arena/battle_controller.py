"""
Battle session controller.
Manages active battles, their tick drivers and configuration per Discord channel.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config_manager import BattleConfigManager
from .engine import BattleEndCallback, BattleEngine, BattleListener
from .models import BattlePhase, BattleSettings, ResultSummary
from .opponent import OpponentStrategy, RandomOpponentStrategy
from .question_bank import DEFAULT_BANK_NAME, QuestionBankManager, select_questions
from .scheduler import RealTimeTicker, TickScheduler


class BattleControllerError(Exception):
    """Base exception for battle controller errors."""
    pass


class BattleConflictError(BattleControllerError):
    """Raised when a channel already hosts a running battle."""
    pass


class BattleNotFoundError(BattleControllerError):
    """Raised when operating on a channel without a battle."""
    pass


@dataclass
class ActiveBattle:
    """A battle hosted in one channel."""
    channel_id: int
    engine: BattleEngine
    bank_name: str
    start_time: datetime
    ticker: Optional[RealTimeTicker] = None


def default_strategy_factory(settings: BattleSettings) -> OpponentStrategy:
    return RandomOpponentStrategy(settings.opponent_accuracy)


class BattleController:
    """
    Orchestrates battles and manages their state across Discord channels.

    Each channel hosts at most one battle at a time. A finished battle stays
    registered until its result is acknowledged, so the host can show it.
    """

    def __init__(
        self,
        bank_manager: QuestionBankManager,
        config_manager: BattleConfigManager,
        tick_interval: float = 0.1,
        auto_tick: bool = True,
        strategy_factory: Callable[[BattleSettings], OpponentStrategy] = default_strategy_factory
    ):
        """
        Initialize the battle controller.

        Args:
            bank_manager: Source of question banks
            config_manager: Source of battle settings
            tick_interval: Wall-clock tick interval of each battle's ticker
            auto_tick: Start a RealTimeTicker per battle; disable to drive schedulers by hand
            strategy_factory: Builds the opponent strategy for a battle from its settings
        """
        self.logger = logging.getLogger(__name__)
        self.bank_manager = bank_manager
        self.config_manager = config_manager
        self.tick_interval = tick_interval
        self.auto_tick = auto_tick
        self.strategy_factory = strategy_factory

        self._battles: Dict[int, ActiveBattle] = {}

        self.logger.info("BattleController initialized")

    def get_battle(self, channel_id: int) -> Optional[ActiveBattle]:
        return self._battles.get(channel_id)

    def has_active_battle(self, channel_id: int) -> bool:
        """Check if a channel hosts a battle that has not finished yet."""
        battle = self._battles.get(channel_id)
        return battle is not None and not battle.engine.is_complete

    def get_battle_phase(self, channel_id: int) -> Optional[BattlePhase]:
        battle = self._battles.get(channel_id)
        return battle.engine.phase if battle else None

    def create_battle(
        self,
        channel_id: int,
        player_name: str,
        opponent_name: str,
        bank_name: Optional[str] = None,
        listener: Optional[BattleListener] = None,
        on_battle_end: Optional[BattleEndCallback] = None
    ) -> ActiveBattle:
        """
        Create (but do not start) a battle for a channel.

        Raises:
            BattleConflictError: If the channel already hosts a battle
            BattleNotFoundError: If the question bank does not exist
        """
        if channel_id in self._battles:
            raise BattleConflictError(f"Battle already running in channel {channel_id}")

        bank_name = bank_name or DEFAULT_BANK_NAME
        questions = self.bank_manager.get_questions(bank_name)
        if questions is None:
            available = ", ".join(self.bank_manager.get_available_banks())
            raise BattleNotFoundError(f"Question bank '{bank_name}' not found. Available banks: {available}")

        settings = self.config_manager.get_battle_settings()
        selected = select_questions(questions, settings)

        battle_id = f"{channel_id}-{int(time.time())}"
        engine = BattleEngine(
            player_name=player_name,
            opponent_name=opponent_name,
            questions=selected,
            scheduler=TickScheduler(battle_id),
            opponent_strategy=self.strategy_factory(settings),
            settings=settings,
            on_battle_end=on_battle_end,
            battle_id=battle_id
        )
        if listener:
            engine.add_listener(listener)

        battle = ActiveBattle(
            channel_id=channel_id,
            engine=engine,
            bank_name=bank_name,
            start_time=datetime.now()
        )
        self._battles[channel_id] = battle

        self.logger.info(
            f"Created battle for channel {channel_id}: {player_name} vs {opponent_name}, "
            f"bank='{bank_name}', questions={len(selected)}"
        )
        return battle

    async def start_battle(
        self,
        channel_id: int,
        player_name: str,
        opponent_name: str,
        bank_name: Optional[str] = None,
        listener: Optional[BattleListener] = None,
        on_battle_end: Optional[BattleEndCallback] = None
    ) -> Dict[str, Any]:
        """
        Create and start a battle with error handling.

        Returns:
            Dictionary with operation results and error information
        """
        try:
            battle = self.create_battle(
                channel_id, player_name, opponent_name, bank_name, listener, on_battle_end
            )
            battle.engine.start()

            if self.auto_tick:
                engine = battle.engine
                battle.ticker = RealTimeTicker(
                    engine.scheduler,
                    tick_interval=self.tick_interval,
                    stop_condition=lambda: engine.is_complete or engine.is_abandoned
                )
                battle.ticker.start()

            return {
                'success': True,
                'message': f"Battle started: {player_name} vs {opponent_name}",
                'battle_info': self.get_battle_progress(channel_id)
            }

        except BattleControllerError as e:
            self.logger.warning(f"Could not start battle in channel {channel_id}: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': self._get_user_friendly_error_message(e, "start_battle")
            }
        except Exception as e:
            self.logger.error(f"Unexpected error starting battle in channel {channel_id}: {e}", exc_info=True)
            self._battles.pop(channel_id, None)
            return {
                'success': False,
                'error': str(e),
                'user_message': self._get_user_friendly_error_message(e, "start_battle")
            }

    def submit_answer(self, channel_id: int, option_index: int) -> Dict[str, Any]:
        """
        Forward the player's answer to the channel's battle.

        Returns:
            Dictionary with 'success' (battle exists) and 'accepted' (answer counted)
        """
        battle = self._battles.get(channel_id)
        if battle is None:
            error = BattleNotFoundError(f"No battle in channel {channel_id}")
            return {
                'success': False,
                'accepted': False,
                'error': str(error),
                'user_message': self._get_user_friendly_error_message(error, "submit_answer")
            }

        engine = battle.engine
        question_index = engine.session.current_question_index
        accepted = engine.submit_answer(option_index)

        correct = False
        if accepted:
            question = engine.session.questions[question_index]
            correct = question.is_correct(option_index)
            message = "Correct!" if correct else f"Wrong! The answer was {question.options[question.correct_option_index]}"
        elif engine.phase == BattlePhase.COUNTDOWN:
            message = "The battle has not started yet."
        elif engine.phase == BattlePhase.COMPLETE:
            message = "The battle is already over."
        else:
            message = "You already answered this question."

        return {
            'success': True,
            'accepted': accepted,
            'correct': correct,
            'message': message,
            'battle_info': self.get_battle_progress(channel_id)
        }

    async def acknowledge(self, channel_id: int) -> Optional[ResultSummary]:
        """
        Acknowledge a finished battle: report its result and release the channel.

        Returns:
            The result summary, or None if the channel has no finished battle
        """
        battle = self._battles.get(channel_id)
        if battle is None or not battle.engine.is_complete:
            return None

        try:
            summary = battle.engine.acknowledge_result()
        except Exception as e:
            self.logger.error(
                f"Battle end callback failed in channel {channel_id}: {e}",
                exc_info=True,
                extra={
                    'event_type': 'battle_end_callback_failed',
                    'channel_id': channel_id,
                    'timestamp': time.time()
                }
            )
            summary = battle.engine.summary
        finally:
            if battle.ticker:
                await battle.ticker.cancel()
            self._battles.pop(channel_id, None)

        self.logger.info(f"Battle in channel {channel_id} acknowledged and released")
        return summary

    async def stop_battle(self, channel_id: int) -> bool:
        """
        Stop and discard a channel's battle without reporting a result.

        Returns:
            True if a battle was stopped, False if there was none
        """
        battle = self._battles.get(channel_id)
        if battle is None:
            self.logger.warning(
                f"Cannot stop battle for channel {channel_id}: no battle exists",
                extra={
                    'event_type': 'battle_stop_no_battle',
                    'channel_id': channel_id,
                    'timestamp': time.time()
                }
            )
            return False

        battle.engine.abandon()
        ticker_cancelled = False
        if battle.ticker:
            ticker_cancelled = await battle.ticker.cancel()
        del self._battles[channel_id]

        self.logger.info(
            f"Stopped and cleaned up battle for channel {channel_id}, ticker cancelled: {ticker_cancelled}",
            extra={
                'event_type': 'battle_stopped',
                'channel_id': channel_id,
                'ticker_cancelled': ticker_cancelled,
                'timestamp': time.time()
            }
        )
        return True

    async def stop_all(self) -> int:
        """Stop every battle. Returns how many were stopped."""
        stopped = 0
        for channel_id in list(self._battles):
            if await self.stop_battle(channel_id):
                stopped += 1
        return stopped

    def get_battle_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a channel's battle.

        Returns:
            Dictionary with progress info, None if no battle exists
        """
        battle = self._battles.get(channel_id)
        if battle is None:
            return None

        session = battle.engine.session
        return {
            'bank_name': battle.bank_name,
            'phase': session.phase.value,
            'current_question': min(session.current_question_index + 1, session.question_count),
            'total_questions': session.question_count,
            'countdown_remaining': session.countdown_remaining,
            'time_remaining': session.question_time_remaining,
            'player': session.player.display_name,
            'player_score': session.player.score,
            'player_streak': session.player.streak,
            'opponent': session.opponent.display_name,
            'opponent_score': session.opponent.score,
            'start_time': battle.start_time
        }

    def get_all_active_battles(self) -> Dict[int, Dict[str, Any]]:
        return {
            channel_id: self.get_battle_progress(channel_id)
            for channel_id in self._battles
        }

    def get_battle_status_summary(self, channel_id: int) -> str:
        """One-line status of a channel's battle."""
        progress = self.get_battle_progress(channel_id)
        if progress is None:
            return "No battle in this channel"

        return (
            f"{progress['player']} {progress['player_score']} - "
            f"{progress['opponent_score']} {progress['opponent']} | "
            f"Phase: {progress['phase']} | "
            f"Question {progress['current_question']}/{progress['total_questions']}"
        )

    def _get_user_friendly_error_message(self, error: Exception, operation: str) -> str:
        if isinstance(error, BattleConflictError):
            return "❌ A battle is already running in this channel. Finish it or use `/forfeit`."

        elif isinstance(error, BattleNotFoundError):
            if "bank" in str(error).lower():
                return f"❌ {error}"
            return "❌ No battle found in this channel. Start one with `/battle`."

        elif "question" in str(error).lower():
            return "❌ Error loading battle questions. Please try a different question bank."

        else:
            return f"❌ An unexpected error occurred during {operation}. Please try again."
