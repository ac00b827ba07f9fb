"""
Unit tests for BattleController battle management across channels.
"""
import unittest
from unittest.mock import Mock, patch

from battle_arena.battle_controller import (
    BattleConflictError, BattleController, BattleNotFoundError,
)
from battle_arena.config_manager import BattleConfigManager
from battle_arena.engine import QUESTION_STARTED
from battle_arena.models import BattlePhase
from battle_arena.opponent import FixedOpponentStrategy
from battle_arena.question_bank import QuestionBankManager
from battle_arena.results import WIN
from tests.test_fixtures import EventRecorder


class TestBattleController(unittest.IsolatedAsyncioTestCase):
    """Test cases for BattleController driven by hand on virtual clocks."""

    async def asyncSetUp(self):
        self.bank_manager = QuestionBankManager("./does-not-exist/")
        self.config_manager = BattleConfigManager()
        self.controller = BattleController(
            self.bank_manager,
            self.config_manager,
            auto_tick=False,
            strategy_factory=lambda settings: FixedOpponentStrategy([], default_delay=1000)
        )
        self.channel_id = 12345

    async def asyncTearDown(self):
        await self.controller.stop_all()

    def advance(self, seconds, channel_id=None):
        battle = self.controller.get_battle(channel_id or self.channel_id)
        battle.engine.scheduler.advance(seconds)

    async def test_start_battle_success(self):
        result = await self.controller.start_battle(self.channel_id, "Alice", "Rival")

        self.assertTrue(result['success'])
        info = result['battle_info']
        self.assertEqual(info['bank_name'], "default")
        self.assertEqual(info['total_questions'], 5)
        self.assertEqual(info['phase'], "countdown")
        self.assertEqual(info['player'], "Alice")
        self.assertEqual(info['opponent'], "Rival")
        self.assertTrue(self.controller.has_active_battle(self.channel_id))
        self.assertEqual(self.controller.get_battle_phase(self.channel_id), BattlePhase.COUNTDOWN)

    async def test_start_battle_uses_settings(self):
        self.config_manager.set_question_count(2)
        self.config_manager.set_countdown_seconds(0)

        result = await self.controller.start_battle(self.channel_id, "Alice", "Rival")

        self.assertEqual(result['battle_info']['total_questions'], 2)
        self.assertEqual(result['battle_info']['phase'], "in_progress")

    async def test_listener_attached(self):
        recorder = EventRecorder()
        self.config_manager.set_countdown_seconds(0)

        await self.controller.start_battle(self.channel_id, "Alice", "Rival", listener=recorder)

        self.assertIn(QUESTION_STARTED, recorder.names())

    async def test_duplicate_battle_rejected(self):
        await self.controller.start_battle(self.channel_id, "Alice", "Rival")

        result = await self.controller.start_battle(self.channel_id, "Bob", "Rival")

        self.assertFalse(result['success'])
        self.assertIn("already running", result['user_message'])
        with self.assertRaises(BattleConflictError):
            self.controller.create_battle(self.channel_id, "Bob", "Rival")

    async def test_unknown_bank_rejected(self):
        result = await self.controller.start_battle(self.channel_id, "Alice", "Rival", bank_name="nope")

        self.assertFalse(result['success'])
        self.assertIn("nope", result['user_message'])
        self.assertFalse(self.controller.has_active_battle(self.channel_id))
        with self.assertRaises(BattleNotFoundError):
            self.controller.create_battle(self.channel_id, "Alice", "Rival", bank_name="nope")

    async def test_channels_are_independent(self):
        await self.controller.start_battle(1, "Alice", "Rival")
        await self.controller.start_battle(2, "Bob", "Rival")

        self.assertEqual(len(self.controller.get_all_active_battles()), 2)
        self.assertTrue(await self.controller.stop_battle(1))
        self.assertFalse(self.controller.has_active_battle(1))
        self.assertTrue(self.controller.has_active_battle(2))

    async def test_submit_answer_flow(self):
        await self.controller.start_battle(self.channel_id, "Alice", "Rival")

        early = self.controller.submit_answer(self.channel_id, 0)
        self.assertTrue(early['success'])
        self.assertFalse(early['accepted'])
        self.assertIn("not started", early['message'])

        self.advance(3)
        result = self.controller.submit_answer(self.channel_id, 0)
        self.assertTrue(result['accepted'])
        self.assertTrue(result['correct'])
        # q1 is easy with 15 seconds: 10 + min(7, 5)
        self.assertEqual(result['battle_info']['player_score'], 15)

        duplicate = self.controller.submit_answer(self.channel_id, 0)
        self.assertFalse(duplicate['accepted'])
        self.assertIn("already answered", duplicate['message'])

    async def test_wrong_answer_reports_correct_option(self):
        self.config_manager.set_countdown_seconds(0)
        await self.controller.start_battle(self.channel_id, "Alice", "Rival")

        result = self.controller.submit_answer(self.channel_id, 2)

        self.assertTrue(result['accepted'])
        self.assertFalse(result['correct'])
        self.assertIn("2x", result['message'])

    async def test_submit_answer_without_battle(self):
        result = self.controller.submit_answer(self.channel_id, 0)

        self.assertFalse(result['success'])
        self.assertIn("/battle", result['user_message'])

    async def test_acknowledge_releases_channel(self):
        on_end = Mock()
        self.config_manager.set_question_count(1)
        await self.controller.start_battle(self.channel_id, "Alice", "Rival", on_battle_end=on_end)

        self.assertIsNone(await self.controller.acknowledge(self.channel_id))

        self.advance(3)
        self.controller.submit_answer(self.channel_id, 0)
        self.advance(2)

        self.assertFalse(self.controller.has_active_battle(self.channel_id))
        self.assertEqual(self.controller.get_battle_phase(self.channel_id), BattlePhase.COMPLETE)

        summary = await self.controller.acknowledge(self.channel_id)
        self.assertEqual(summary.outcome, WIN)
        on_end.assert_called_once_with(WIN, summary)
        self.assertIsNone(self.controller.get_battle(self.channel_id))
        self.assertIsNone(await self.controller.acknowledge(self.channel_id))

    async def test_failing_end_callback_still_releases_channel(self):
        on_end = Mock(side_effect=RuntimeError("boom"))
        self.config_manager.set_question_count(1)
        await self.controller.start_battle(self.channel_id, "Alice", "Rival", on_battle_end=on_end)
        self.advance(3)
        self.controller.submit_answer(self.channel_id, 0)
        self.advance(2)

        with patch.object(self.controller, 'logger') as mock_logger:
            summary = await self.controller.acknowledge(self.channel_id)

        self.assertEqual(summary.outcome, WIN)
        on_end.assert_called_once_with(WIN, summary)
        mock_logger.error.assert_called_once()
        self.assertIsNone(self.controller.get_battle(self.channel_id))

        result = await self.controller.start_battle(self.channel_id, "Alice", "Rival")
        self.assertTrue(result['success'])

    async def test_stop_battle(self):
        await self.controller.start_battle(self.channel_id, "Alice", "Rival")
        engine = self.controller.get_battle(self.channel_id).engine

        self.assertTrue(await self.controller.stop_battle(self.channel_id))

        self.assertTrue(engine.is_abandoned)
        self.assertIsNone(self.controller.get_battle_progress(self.channel_id))
        self.assertFalse(await self.controller.stop_battle(self.channel_id))

    async def test_status_summary(self):
        self.assertEqual(self.controller.get_battle_status_summary(self.channel_id), "No battle in this channel")

        await self.controller.start_battle(self.channel_id, "Alice", "Rival")
        summary = self.controller.get_battle_status_summary(self.channel_id)

        self.assertIn("Alice 0 - 0 Rival", summary)
        self.assertIn("Question 1/5", summary)


class TestBattleControllerTicker(unittest.IsolatedAsyncioTestCase):
    """Test cases for battles driven by the real-time ticker."""

    async def test_ticker_started_and_cancelled(self):
        controller = BattleController(QuestionBankManager(), BattleConfigManager(), tick_interval=0.01)

        result = await controller.start_battle(1, "Alice", "Rival")
        battle = controller.get_battle(1)

        self.assertTrue(result['success'])
        self.assertTrue(battle.ticker.is_running)

        self.assertTrue(await controller.stop_battle(1))
        self.assertFalse(battle.ticker.is_running)


if __name__ == '__main__':
    unittest.main()
