"""
Core data models for the Battle Arena quiz engine.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

OPTIONS_PER_QUESTION = 4


class Difficulty(Enum):
    """Question difficulty levels."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class BattlePhase(Enum):
    """Mutually exclusive stages of a battle session."""
    COUNTDOWN = "countdown"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Question:
    """Represents a single multiple-choice battle question."""
    id: str
    text: str
    options: Tuple[str, ...]
    correct_option_index: int
    topic: str
    difficulty: Difficulty
    time_limit_seconds: int

    def __post_init__(self):
        # Accept any sequence for options but store an immutable tuple
        object.__setattr__(self, 'options', tuple(self.options))
        if len(self.options) != OPTIONS_PER_QUESTION:
            raise ValueError(
                f"Question {self.id} has {len(self.options)} options, expected {OPTIONS_PER_QUESTION}"
            )
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"Question {self.id} correct option {self.correct_option_index} "
                f"is outside 0..{len(self.options) - 1}"
            )
        if self.time_limit_seconds <= 0:
            raise ValueError(f"Question {self.id} time limit must be positive")

    def is_valid_option(self, option_index: Any) -> bool:
        """Check whether a value names one of this question's options."""
        return (not isinstance(option_index, bool) and isinstance(option_index, int)
                and 0 <= option_index < len(self.options))

    def is_correct(self, option_index: Optional[int]) -> bool:
        """Check whether an option index is the correct answer."""
        return option_index is not None and option_index == self.correct_option_index

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'text': self.text,
            'options': list(self.options),
            'correct_option_index': self.correct_option_index,
            'topic': self.topic,
            'difficulty': self.difficulty.value,
            'time_limit_seconds': self.time_limit_seconds,
        }


@dataclass
class PartyState:
    """Score keeping for one side of a battle (the player or the opponent)."""
    id: str
    display_name: str
    score: int = 0
    streak: int = 0
    best_streak: int = 0
    answered_count: int = 0
    correct_count: int = 0
    # question index -> chosen option index, None for "no answer"
    answers: Dict[int, Optional[int]] = field(default_factory=dict)

    def has_answered(self, question_index: int) -> bool:
        return question_index in self.answers

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'score': self.score,
            'streak': self.streak,
            'best_streak': self.best_streak,
            'answered_count': self.answered_count,
            'correct_count': self.correct_count,
            'answers': {str(index): choice for index, choice in self.answers.items()},
        }


@dataclass
class BattleSettings:
    """Configuration settings for a battle session."""
    countdown_seconds: int = 3
    reveal_delay_seconds: int = 2
    opponent_accuracy: float = 0.7
    default_time_limit: int = 15
    question_count: Optional[int] = None
    random_order: bool = False


@dataclass
class ResultSummary:
    """Final figures of a finished battle."""
    outcome: str
    final_player_score: int
    final_opponent_score: int
    accuracy: float
    questions_answered: int
    question_count: int
    best_streak: int = 0
    opponent_accuracy: float = 0.0
    score_percentage: float = 0.0

    def to_dict(self) -> dict:
        return {
            'outcome': self.outcome,
            'final_player_score': self.final_player_score,
            'final_opponent_score': self.final_opponent_score,
            'accuracy': self.accuracy,
            'questions_answered': self.questions_answered,
            'question_count': self.question_count,
            'best_streak': self.best_streak,
            'opponent_accuracy': self.opponent_accuracy,
            'score_percentage': self.score_percentage,
        }


@dataclass
class BattleSession:
    """Authoritative state of one battle between a player and a simulated opponent."""
    player: PartyState
    opponent: PartyState
    questions: Tuple[Question, ...]
    phase: BattlePhase = BattlePhase.COUNTDOWN
    current_question_index: int = 0
    countdown_remaining: int = 3
    question_time_remaining: int = 0
    outcome: Optional[str] = None

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index >= len(self.questions) - 1

    def to_dict(self) -> dict:
        """Serializable snapshot of the session."""
        return {
            'phase': self.phase.value,
            'current_question_index': self.current_question_index,
            'countdown_remaining': self.countdown_remaining,
            'question_time_remaining': self.question_time_remaining,
            'question_count': self.question_count,
            'questions': [question.to_dict() for question in self.questions],
            'player': self.player.to_dict(),
            'opponent': self.opponent.to_dict(),
            'outcome': self.outcome,
        }
