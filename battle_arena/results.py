"""
Result summarizer for finished battles.
"""
from .models import BattleSession, PartyState, ResultSummary
from .scoring import max_points

WIN = "win"
LOSE = "lose"
DRAW = "draw"


def determine_outcome(player_score: int, opponent_score: int) -> str:
    """Compare final scores from the player's point of view."""
    if player_score > opponent_score:
        return WIN
    if player_score < opponent_score:
        return LOSE
    return DRAW


def party_accuracy(party: PartyState, question_count: int) -> float:
    """Fraction of all questions the party answered correctly (0.0 with no questions)."""
    if question_count <= 0:
        return 0.0
    return party.correct_count / question_count


def summarize(session: BattleSession) -> ResultSummary:
    """
    Build the final summary of a battle.

    Args:
        session: Battle session, normally in the complete phase

    Returns:
        ResultSummary derived only from the two party states and the question list
    """
    player = session.player
    opponent = session.opponent
    question_count = session.question_count

    best_possible = sum(max_points(question) for question in session.questions)
    score_percentage = (player.score / best_possible * 100) if best_possible else 0.0

    return ResultSummary(
        outcome=determine_outcome(player.score, opponent.score),
        final_player_score=player.score,
        final_opponent_score=opponent.score,
        accuracy=party_accuracy(player, question_count),
        questions_answered=player.answered_count,
        question_count=question_count,
        best_streak=player.best_streak,
        opponent_accuracy=party_accuracy(opponent, question_count),
        score_percentage=round(score_percentage, 1),
    )
