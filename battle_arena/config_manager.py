"""
Configuration manager for battle settings and parameters.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import BattleSettings


class BattleConfigManager:
    """Manages battle configuration settings."""

    # Default configuration values
    DEFAULT_COUNTDOWN_SECONDS = 3
    DEFAULT_REVEAL_DELAY_SECONDS = 2
    DEFAULT_OPPONENT_ACCURACY = 0.7
    DEFAULT_TIME_LIMIT = 15
    DEFAULT_QUESTION_COUNT = None  # Use all questions by default
    DEFAULT_RANDOM_ORDER = False
    DEFAULT_BANK_DIRECTORY = "./question_banks/"

    # Validation limits
    MIN_COUNTDOWN_SECONDS = 0
    MAX_COUNTDOWN_SECONDS = 10
    MIN_REVEAL_DELAY_SECONDS = 0
    MAX_REVEAL_DELAY_SECONDS = 10
    MIN_TIME_LIMIT = 5
    MAX_TIME_LIMIT = 120
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50

    def __init__(self):
        """Initialize BattleConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = BattleSettings()
        self._bank_directory = self.DEFAULT_BANK_DIRECTORY

    def get_battle_settings(self) -> BattleSettings:
        """
        Get a copy of the current battle settings.

        Returns:
            BattleSettings object with current configuration
        """
        return BattleSettings(
            countdown_seconds=self._settings.countdown_seconds,
            reveal_delay_seconds=self._settings.reveal_delay_seconds,
            opponent_accuracy=self._settings.opponent_accuracy,
            default_time_limit=self._settings.default_time_limit,
            question_count=self._settings.question_count,
            random_order=self._settings.random_order
        )

    def _check_int(self, name: str, value: Any, minimum: int, maximum: int, unit: str = "") -> Optional[Dict[str, Any]]:
        """Return a failure result if value is not an int within [minimum, maximum], else None."""
        if isinstance(value, bool) or not isinstance(value, int):
            error_msg = f"{name} must be an integer, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }

        if value < minimum or value > maximum:
            error_msg = f"{name} must be between {minimum} and {maximum}{unit}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Out of range: {name} must be between {minimum} and {maximum}{unit}"
            }
        return None

    def set_countdown_seconds(self, seconds: int) -> Dict[str, Any]:
        """
        Set the pre-battle countdown length.

        Args:
            seconds: Countdown length in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        failure = self._check_int(
            "Countdown", seconds, self.MIN_COUNTDOWN_SECONDS, self.MAX_COUNTDOWN_SECONDS, " seconds"
        )
        if failure:
            return failure

        self._settings.countdown_seconds = seconds
        self.logger.info(f"Countdown set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Countdown set to {seconds} seconds",
            'user_message': f"✅ Battles will start after a {seconds} second countdown"
        }

    def set_reveal_delay(self, seconds: int) -> Dict[str, Any]:
        """
        Set the pause that reveals the correct answer between questions.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        failure = self._check_int(
            "Reveal delay", seconds, self.MIN_REVEAL_DELAY_SECONDS, self.MAX_REVEAL_DELAY_SECONDS, " seconds"
        )
        if failure:
            return failure

        self._settings.reveal_delay_seconds = seconds
        self.logger.info(f"Reveal delay set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Reveal delay set to {seconds} seconds",
            'user_message': f"✅ Correct answers will be shown for {seconds} seconds"
        }

    def set_opponent_accuracy(self, accuracy: float) -> Dict[str, Any]:
        """
        Set the probability that the simulated opponent answers correctly.

        Args:
            accuracy: Probability between 0.0 and 1.0

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(accuracy, bool) or not isinstance(accuracy, (int, float)):
            error_msg = f"Opponent accuracy must be a number, got {type(accuracy).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(accuracy).__name__}"
            }

        if not 0.0 <= accuracy <= 1.0:
            error_msg = "Opponent accuracy must be between 0.0 and 1.0"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Opponent accuracy must be between 0% and 100%"
            }

        self._settings.opponent_accuracy = float(accuracy)
        self.logger.info(f"Opponent accuracy set to {accuracy:.2f}")
        return {
            'success': True,
            'message': f"Opponent accuracy set to {accuracy:.2f}",
            'user_message': f"✅ Opponent will answer correctly {accuracy:.0%} of the time"
        }

    def set_default_time_limit(self, seconds: int) -> Dict[str, Any]:
        """
        Set the time limit used for bank questions that do not define one.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        failure = self._check_int("Time limit", seconds, self.MIN_TIME_LIMIT, self.MAX_TIME_LIMIT, " seconds")
        if failure:
            return failure

        self._settings.default_time_limit = seconds
        self.logger.info(f"Default time limit set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Default time limit set to {seconds} seconds",
            'user_message': f"✅ Questions without a time limit get {seconds} seconds"
        }

    def set_question_count(self, count: Optional[int]) -> Dict[str, Any]:
        """
        Set the number of questions per battle.

        Args:
            count: Number of questions, or None to use all questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if count is None:
            self._settings.question_count = None
            self.logger.info("Question count set to use all available questions")
            return {
                'success': True,
                'message': "Question count set to use all available questions",
                'user_message': "✅ Battles will use every question in the bank"
            }

        failure = self._check_int("Question count", count, self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT)
        if failure:
            return failure

        self._settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def set_random_order(self, random_order: bool) -> Dict[str, Any]:
        """
        Set whether questions are shuffled before each battle.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(random_order, bool):
            error_msg = f"Random order must be a boolean, got {type(random_order).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected true/false, got {type(random_order).__name__}"
            }

        self._settings.random_order = random_order
        order_type = "random" if random_order else "sequential"
        self.logger.info(f"Question order set to {order_type}")
        return {
            'success': True,
            'message': f"Question order set to {order_type}",
            'user_message': f"✅ Questions will be presented in {order_type} order"
        }

    def toggle_random_order(self) -> Dict[str, Any]:
        """
        Toggle the random order setting.

        Returns:
            Dictionary with success status, new value, and user-friendly message
        """
        new_value = not self._settings.random_order
        result = self.set_random_order(new_value)
        if result['success']:
            result['new_value'] = new_value
        return result

    def set_bank_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory holding JSON question banks.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str) or not directory.strip():
            error_msg = "Question bank directory must be a non-empty path"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        self._bank_directory = normalized_path
        self.logger.info(f"Question bank directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Question bank directory set to {normalized_path}",
            'user_message': f"✅ Question bank directory set to {normalized_path}"
        }

    def get_bank_directory(self) -> str:
        return self._bank_directory

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'battle' section of a configuration dictionary.

        Invalid entries are skipped and reported; valid ones are applied.

        Args:
            config: Full configuration dictionary (as loaded from config.json)

        Returns:
            List of error messages for entries that were rejected
        """
        battle_config = (config or {}).get('battle', {})
        setters = {
            'countdown_seconds': self.set_countdown_seconds,
            'reveal_delay_seconds': self.set_reveal_delay,
            'opponent_accuracy': self.set_opponent_accuracy,
            'default_time_limit': self.set_default_time_limit,
            'question_count': self.set_question_count,
            'random_order': self.set_random_order,
            'question_bank_directory': self.set_bank_directory,
        }

        errors = []
        for key, value in battle_config.items():
            setter = setters.get(key)
            if setter is None:
                self.logger.warning(f"Unknown battle configuration key '{key}' ignored")
                continue
            result = setter(value)
            if not result['success']:
                errors.append(f"{key}: {result['error']}")

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected entries")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = BattleSettings(
            countdown_seconds=self.DEFAULT_COUNTDOWN_SECONDS,
            reveal_delay_seconds=self.DEFAULT_REVEAL_DELAY_SECONDS,
            opponent_accuracy=self.DEFAULT_OPPONENT_ACCURACY,
            default_time_limit=self.DEFAULT_TIME_LIMIT,
            question_count=self.DEFAULT_QUESTION_COUNT,
            random_order=self.DEFAULT_RANDOM_ORDER
        )
        self._bank_directory = self.DEFAULT_BANK_DIRECTORY
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }
        settings = self._settings

        if not self.MIN_COUNTDOWN_SECONDS <= settings.countdown_seconds <= self.MAX_COUNTDOWN_SECONDS:
            validation_result["issues"].append(f"Invalid countdown: {settings.countdown_seconds}")

        if not self.MIN_REVEAL_DELAY_SECONDS <= settings.reveal_delay_seconds <= self.MAX_REVEAL_DELAY_SECONDS:
            validation_result["issues"].append(f"Invalid reveal delay: {settings.reveal_delay_seconds}")

        if not 0.0 <= settings.opponent_accuracy <= 1.0:
            validation_result["issues"].append(f"Invalid opponent accuracy: {settings.opponent_accuracy}")

        if not self.MIN_TIME_LIMIT <= settings.default_time_limit <= self.MAX_TIME_LIMIT:
            validation_result["issues"].append(f"Invalid time limit: {settings.default_time_limit}")

        if settings.question_count is not None and not (
                self.MIN_QUESTION_COUNT <= settings.question_count <= self.MAX_QUESTION_COUNT):
            validation_result["issues"].append(f"Invalid question count: {settings.question_count}")

        validation_result["valid"] = not validation_result["issues"]
        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        question_count_str = (
            str(settings.question_count)
            if settings.question_count is not None
            else "all available"
        )
        order_str = "random" if settings.random_order else "sequential"

        return (
            f"Battle Settings:\n"
            f"• Questions: {question_count_str}\n"
            f"• Order: {order_str}\n"
            f"• Countdown: {settings.countdown_seconds} seconds\n"
            f"• Reveal pause: {settings.reveal_delay_seconds} seconds\n"
            f"• Opponent accuracy: {settings.opponent_accuracy:.0%}\n"
            f"• Question bank directory: {self._bank_directory}"
        )
