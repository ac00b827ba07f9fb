"""
Question bank loading, validation and selection.
"""
import json
import logging
import os
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import OPTIONS_PER_QUESTION, BattleSettings, Difficulty, Question

logger = logging.getLogger(__name__)

DEFAULT_BANK_NAME = "default"

DEFAULT_QUESTIONS: Tuple[Question, ...] = (
    Question(
        id="q1",
        text="What is the derivative of x²?",
        options=("2x", "x²", "2", "x"),
        correct_option_index=0,
        topic="Calculus",
        difficulty=Difficulty.EASY,
        time_limit_seconds=15,
    ),
    Question(
        id="q2",
        text="What is Newton's Second Law?",
        options=("F = ma", "E = mc²", "F = mg", "a = v/t"),
        correct_option_index=0,
        topic="Physics",
        difficulty=Difficulty.MEDIUM,
        time_limit_seconds=20,
    ),
    Question(
        id="q3",
        text="What is the chemical formula for water?",
        options=("H₂O", "CO₂", "NaCl", "CH₄"),
        correct_option_index=0,
        topic="Chemistry",
        difficulty=Difficulty.EASY,
        time_limit_seconds=10,
    ),
    Question(
        id="q4",
        text="What is the integral of 2x?",
        options=("x²", "x² + C", "2", "2x + C"),
        correct_option_index=1,
        topic="Calculus",
        difficulty=Difficulty.MEDIUM,
        time_limit_seconds=25,
    ),
    Question(
        id="q5",
        text="What is the speed of light?",
        options=("3×10⁸ m/s", "3×10⁶ m/s", "3×10¹⁰ m/s", "3×10⁴ m/s"),
        correct_option_index=0,
        topic="Physics",
        difficulty=Difficulty.HARD,
        time_limit_seconds=30,
    ),
)

MAX_BANK_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def select_questions(
    questions: Sequence[Question],
    settings: BattleSettings,
    rng: Optional[random.Random] = None
) -> List[Question]:
    """
    Select and order questions based on battle settings.

    Args:
        questions: Available questions
        settings: Battle settings (random_order, question_count)
        rng: Random source used for shuffling

    Returns:
        New list of selected questions; the input is never modified
    """
    selected = list(questions)

    if settings.random_order:
        (rng or random).shuffle(selected)

    if settings.question_count is not None:
        if settings.question_count < 1:
            return []
        selected = selected[:settings.question_count]

    return selected


class QuestionBankManager:
    """Manages loading and validation of JSON question banks."""

    def __init__(self, bank_directory: str = "./question_banks/", default_time_limit: int = 15):
        """
        Initialize the manager.

        Args:
            bank_directory: Directory containing JSON question bank files
            default_time_limit: Time limit for questions that do not set one
        """
        self.bank_directory = Path(bank_directory)
        self.default_time_limit = default_time_limit
        self.loaded_banks: Dict[str, List[Question]] = {DEFAULT_BANK_NAME: list(DEFAULT_QUESTIONS)}
        self.load_errors: List[str] = []
        self.fallback_active = False

    def load_question_banks(self) -> Dict[str, List[Question]]:
        """
        Load every JSON bank in the bank directory.

        The built-in bank is always available under DEFAULT_BANK_NAME. When the
        directory is missing or no file loads, only the built-in bank remains
        and fallback_active is set.

        Returns:
            Dictionary mapping bank names to question lists
        """
        self.loaded_banks = {DEFAULT_BANK_NAME: list(DEFAULT_QUESTIONS)}
        self.load_errors.clear()
        self.fallback_active = False

        if not self.bank_directory.exists():
            logger.warning(f"Question bank directory {self.bank_directory} not found, using built-in bank")
            self.load_errors.append(f"Question bank directory not found: {self.bank_directory}")
            self.fallback_active = True
            return self.loaded_banks

        try:
            bank_files = sorted(self.bank_directory.glob("*.json"))
        except OSError as e:
            self.load_errors.append(f"System error scanning {self.bank_directory}: {e}")
            self.fallback_active = True
            return self.loaded_banks

        if not bank_files:
            logger.info(f"No question bank files in {self.bank_directory}, using built-in bank")
            self.fallback_active = True
            return self.loaded_banks

        successful_loads = 0
        for bank_file in bank_files:
            result = self._load_bank_file_safely(bank_file)
            if result['success']:
                successful_loads += 1
            else:
                self.load_errors.append(f"{bank_file.name}: {result['error']}")

        if successful_loads == 0:
            logger.error("No question bank files could be loaded successfully")
            self.fallback_active = True
        else:
            logger.info(f"Successfully loaded {successful_loads} question bank files")

        if self.load_errors:
            logger.warning(f"Encountered {len(self.load_errors)} question bank loading errors")

        return self.loaded_banks

    def validate_bank_structure(self, data: dict) -> Tuple[bool, str]:
        """
        Validate that JSON data has the question bank structure.

        Expected structure:
        {
            "questions": [
                {
                    "id": str,              # Optional
                    "question": str,
                    "options": [str, str, str, str],
                    "correct_answer": int,
                    "topic": str,           # Optional
                    "difficulty": "Easy" | "Medium" | "Hard",
                    "time_limit": int       # Optional
                }
            ]
        }

        Returns:
            (valid, error message)
        """
        if not isinstance(data, dict):
            return False, "Question bank must be a JSON object"

        questions = data.get("questions")
        if not isinstance(questions, list):
            return False, "Question bank must contain a 'questions' array"

        if not questions:
            return False, "Questions array cannot be empty"

        valid_difficulties = {difficulty.value for difficulty in Difficulty}

        for i, item in enumerate(questions):
            if not isinstance(item, dict):
                return False, f"Question {i} must be an object"

            if not isinstance(item.get("question"), str) or not item["question"].strip():
                return False, f"Question {i} 'question' field must be a non-empty string"

            options = item.get("options")
            if (not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION
                    or not all(isinstance(option, str) for option in options)):
                return False, f"Question {i} must have exactly {OPTIONS_PER_QUESTION} string options"

            correct = item.get("correct_answer")
            if isinstance(correct, bool) or not isinstance(correct, int):
                return False, f"Question {i} 'correct_answer' must be an option index"
            if not 0 <= correct < OPTIONS_PER_QUESTION:
                return False, f"Question {i} 'correct_answer' is out of range"

            if item.get("difficulty") not in valid_difficulties:
                return False, f"Question {i} 'difficulty' must be one of {sorted(valid_difficulties)}"

            time_limit = item.get("time_limit")
            if time_limit is not None and (isinstance(time_limit, bool) or not isinstance(time_limit, int)
                                           or time_limit <= 0):
                return False, f"Question {i} 'time_limit' must be a positive integer"

        return True, ""

    def _parse_questions(self, bank_name: str, data: dict) -> List[Question]:
        questions = []
        for i, item in enumerate(data["questions"]):
            questions.append(Question(
                id=str(item.get("id", f"{bank_name}-{i + 1}")),
                text=item["question"],
                options=tuple(item["options"]),
                correct_option_index=item["correct_answer"],
                topic=item.get("topic", "General"),
                difficulty=Difficulty(item["difficulty"]),
                time_limit_seconds=item.get("time_limit", self.default_time_limit),
            ))
        return questions

    def _load_bank_file_safely(self, bank_file: Path) -> Dict[str, Any]:
        """
        Load a single bank file with error handling.

        Returns:
            Dictionary with success status and error message if applicable
        """
        if bank_file.stem == DEFAULT_BANK_NAME:
            logger.warning(f"Skipping {bank_file}: '{DEFAULT_BANK_NAME}' is reserved for the built-in bank")
            return {'success': False, 'error': f"Bank name '{DEFAULT_BANK_NAME}' is reserved for the built-in bank"}

        try:
            if not os.access(bank_file, os.R_OK):
                return {'success': False, 'error': "Permission denied: Cannot read file"}

            file_size = bank_file.stat().st_size
            if file_size > MAX_BANK_FILE_SIZE:
                return {
                    'success': False,
                    'error': f"File too large ({file_size / 1024 / 1024:.1f}MB)"
                }

            with open(bank_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            valid, error = self.validate_bank_structure(data)
            if not valid:
                logger.error(f"Invalid question bank structure in {bank_file}: {error}")
                return {'success': False, 'error': error}

            bank_name = bank_file.stem
            self.loaded_banks[bank_name] = self._parse_questions(bank_name, data)
            logger.info(f"Loaded question bank '{bank_name}' with {len(self.loaded_banks[bank_name])} questions")
            return {'success': True}

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {bank_file}: {e}")
            return {'success': False, 'error': f"Invalid JSON: {e}"}
        except ValueError as e:
            return {'success': False, 'error': f"Invalid question: {e}"}
        except PermissionError:
            return {'success': False, 'error': "Permission denied"}
        except OSError as e:
            return {'success': False, 'error': f"System error: {e}"}

    def get_available_banks(self) -> List[str]:
        return list(self.loaded_banks.keys())

    def get_questions(self, bank_name: str = DEFAULT_BANK_NAME) -> Optional[List[Question]]:
        """
        Retrieve the questions of a bank.

        Returns:
            List of questions, or None if the bank is unknown
        """
        questions = self.loaded_banks.get(bank_name)
        return list(questions) if questions is not None else None

    def bank_exists(self, bank_name: str) -> bool:
        return bank_name in self.loaded_banks

    def get_question_count(self, bank_name: str) -> int:
        questions = self.loaded_banks.get(bank_name)
        return len(questions) if questions else 0

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_banks': len(self.loaded_banks),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'fallback_active': self.fallback_active,
            'bank_directory': str(self.bank_directory),
            'available_banks': self.get_available_banks()
        }
