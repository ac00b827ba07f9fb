"""
Unit tests for QuestionBankManager loading and question selection.
"""
import json
import random
import shutil
import tempfile
import unittest
from pathlib import Path

from battle_arena.models import BattleSettings, Difficulty
from battle_arena.question_bank import (
    DEFAULT_BANK_NAME, DEFAULT_QUESTIONS, QuestionBankManager, select_questions,
)
from tests.test_fixtures import TestFixtures


class TestQuestionBankManager(unittest.TestCase):
    """Test cases for QuestionBankManager."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.manager = QuestionBankManager(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_bank(self, name, data):
        path = Path(self.temp_dir) / f"{name}.json"
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        return path

    def test_builtin_bank_always_available(self):
        self.assertTrue(self.manager.bank_exists(DEFAULT_BANK_NAME))
        self.assertEqual(self.manager.get_question_count(DEFAULT_BANK_NAME), 5)

    def test_builtin_questions(self):
        self.assertEqual([q.id for q in DEFAULT_QUESTIONS], ["q1", "q2", "q3", "q4", "q5"])
        self.assertEqual([q.time_limit_seconds for q in DEFAULT_QUESTIONS], [15, 20, 10, 25, 30])
        self.assertEqual(DEFAULT_QUESTIONS[3].correct_option_index, 1)
        self.assertEqual(DEFAULT_QUESTIONS[4].difficulty, Difficulty.HARD)

    def test_load_valid_and_invalid_files(self):
        TestFixtures.create_temp_bank_files(self.temp_dir)

        banks = self.manager.load_question_banks()

        self.assertIn("geography", banks)
        self.assertIn(DEFAULT_BANK_NAME, banks)
        self.assertNotIn("broken", banks)
        self.assertNotIn("bad_structure", banks)
        self.assertNotIn("notes", banks)
        self.assertFalse(self.manager.fallback_active)
        self.assertEqual(len(self.manager.get_load_errors()), 2)

    def test_parsed_question_fields_and_defaults(self):
        self._write_bank("geography", TestFixtures.create_valid_bank_json())
        self.manager.load_question_banks()

        first, second = self.manager.get_questions("geography")

        self.assertEqual(first.id, "geo-1")
        self.assertEqual(first.correct_option_index, 1)
        self.assertEqual(first.options, ("Kyoto", "Tokyo", "Osaka", "Nagoya"))
        self.assertEqual(first.time_limit_seconds, 10)
        self.assertEqual(second.id, "geography-2")
        self.assertEqual(second.topic, "General")
        self.assertEqual(second.difficulty, Difficulty.MEDIUM)
        self.assertEqual(second.time_limit_seconds, 15)

    def test_invalid_structures_rejected(self):
        for data in TestFixtures.create_invalid_bank_json_structures():
            valid, error = self.manager.validate_bank_structure(data)
            self.assertFalse(valid, f"Structure should be invalid: {data}")
            self.assertTrue(error)

    def test_valid_structure_accepted(self):
        valid, error = self.manager.validate_bank_structure(TestFixtures.create_valid_bank_json())
        self.assertTrue(valid)
        self.assertEqual(error, "")

    def test_missing_directory_falls_back(self):
        manager = QuestionBankManager(str(Path(self.temp_dir) / "missing"))

        banks = manager.load_question_banks()

        self.assertEqual(list(banks), [DEFAULT_BANK_NAME])
        self.assertTrue(manager.fallback_active)
        self.assertTrue(manager.has_load_errors())

    def test_all_files_invalid_falls_back(self):
        self._write_bank("bad", {"questions": []})

        banks = self.manager.load_question_banks()

        self.assertEqual(list(banks), [DEFAULT_BANK_NAME])
        self.assertTrue(self.manager.fallback_active)

    def test_default_bank_name_reserved(self):
        self._write_bank(DEFAULT_BANK_NAME, TestFixtures.create_valid_bank_json())
        self._write_bank("geography", TestFixtures.create_valid_bank_json())

        self.manager.load_question_banks()

        self.assertEqual(
            [q.id for q in self.manager.get_questions(DEFAULT_BANK_NAME)],
            [q.id for q in DEFAULT_QUESTIONS]
        )
        self.assertTrue(self.manager.bank_exists("geography"))
        errors = self.manager.get_load_errors()
        self.assertEqual(len(errors), 1)
        self.assertTrue(errors[0].startswith("default.json"))

    def test_get_questions_returns_copy(self):
        questions = self.manager.get_questions(DEFAULT_BANK_NAME)
        questions.clear()

        self.assertEqual(self.manager.get_question_count(DEFAULT_BANK_NAME), 5)
        self.assertIsNone(self.manager.get_questions("unknown"))

    def test_loading_summary(self):
        TestFixtures.create_temp_bank_files(self.temp_dir)
        self.manager.load_question_banks()

        summary = self.manager.get_loading_summary()

        self.assertEqual(summary['total_banks'], 2)
        self.assertTrue(summary['has_errors'])
        self.assertEqual(summary['error_count'], 2)
        self.assertFalse(summary['fallback_active'])
        self.assertIn("geography", summary['available_banks'])

    def test_reload_clears_previous_errors(self):
        TestFixtures.create_temp_bank_files(self.temp_dir)
        self.manager.load_question_banks()
        (Path(self.temp_dir) / "broken.json").unlink()
        (Path(self.temp_dir) / "bad_structure.json").unlink()

        self.manager.load_question_banks()

        self.assertFalse(self.manager.has_load_errors())


class TestSelectQuestions(unittest.TestCase):
    """Test cases for select_questions."""

    def setUp(self):
        self.questions = TestFixtures.create_sample_questions(5)

    def test_all_questions_in_order_by_default(self):
        self.assertEqual(select_questions(self.questions, BattleSettings()), self.questions)

    def test_question_count_limits_selection(self):
        selected = select_questions(self.questions, BattleSettings(question_count=2))
        self.assertEqual([q.id for q in selected], ["t1", "t2"])

    def test_question_count_larger_than_bank(self):
        self.assertEqual(len(select_questions(self.questions, BattleSettings(question_count=50))), 5)

    def test_random_order_shuffles_copy(self):
        original_ids = [q.id for q in self.questions]
        selected = select_questions(self.questions, BattleSettings(random_order=True), rng=random.Random(7))

        self.assertEqual(sorted(q.id for q in selected), sorted(original_ids))
        self.assertEqual([q.id for q in self.questions], original_ids)


if __name__ == '__main__':
    unittest.main()
