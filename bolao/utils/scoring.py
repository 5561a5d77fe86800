"""
Scoring rules for the Bolão

Pure functions turning one prediction plus the real outcome into points.
Nothing here touches the database; the ledger in
bolao/services/points_ledger.py feeds these with store records and persists
the results.

Every function is total: missing (None) values, negative goal counts and
selections naming the same team twice are scored as 0 instead of raising.
"""

from typing import Callable, List, NamedTuple, Optional, Tuple


class Score(NamedTuple):
    home: Optional[int]
    away: Optional[int]


class Classification(NamedTuple):
    first: Optional[int]
    second: Optional[int]


class FinalPlacement(NamedTuple):
    champion: Optional[int]
    runner_up: Optional[int]
    third: Optional[int]
    fourth: Optional[int]
    final_score: Score = Score(None, None)


class PointsType:
    """Values stored in PointsLedgerEntry.points_type"""

    EXACT_SCORE = "exact_score"
    CORRECT_DRAW = "correct_draw"
    CORRECT_WINNER = "correct_winner"
    PARTIAL_SCORE = "partial_score"
    NO_POINTS = "no_points"

    GROUP_EXACT_ORDER = "group_exact_order"
    GROUP_SWAPPED = "group_swapped"
    GROUP_PARTIAL = "group_partial"

    FINAL_PERFECT = "final_perfect"
    FINAL_PARTIAL = "final_partial"


# Group classification
GROUP_EXACT_ORDER_POINTS = 10
GROUP_SWAPPED_POINTS = 4
GROUP_FIRST_POINTS = 5
GROUP_SECOND_POINTS = 5

# Tournament final
CHAMPION_POINTS = 50
RUNNER_UP_POINTS = 25
THIRD_PLACE_POINTS = 15
FOURTH_PLACE_POINTS = 10
FINAL_SCORE_POINTS = 20
ALL_PLACEMENTS_BONUS = 35
PERFECT_FINAL_POINTS = (
    CHAMPION_POINTS
    + RUNNER_UP_POINTS
    + THIRD_PLACE_POINTS
    + FOURTH_PLACE_POINTS
    + FINAL_SCORE_POINTS
    + ALL_PLACEMENTS_BONUS
)


def _valid_score(score):
    return (
        score is not None
        and isinstance(score.home, int)
        and isinstance(score.away, int)
        and score.home >= 0
        and score.away >= 0
    )


def outcome(score: Score) -> str:
    """'home_win', 'away_win' or 'draw' for a complete score"""
    if score.home > score.away:
        return "home_win"
    if score.away > score.home:
        return "away_win"
    return "draw"


def _is_exact(predicted, actual):
    return predicted.home == actual.home and predicted.away == actual.away


def _is_draw(predicted, actual):
    return outcome(predicted) == "draw" and outcome(actual) == "draw"


def _is_same_winner(predicted, actual):
    return outcome(predicted) != "draw" and outcome(predicted) == outcome(actual)


def _is_partial(predicted, actual):
    return predicted.home == actual.home or predicted.away == actual.away


# Evaluated top to bottom, first match wins
MATCH_RULES: List[Tuple[str, int, Callable[[Score, Score], bool]]] = [
    (PointsType.EXACT_SCORE, 10, _is_exact),
    (PointsType.CORRECT_DRAW, 7, _is_draw),
    (PointsType.CORRECT_WINNER, 5, _is_same_winner),
    (PointsType.PARTIAL_SCORE, 3, _is_partial),
]


def evaluate_match(predicted: Score, actual: Score) -> Tuple[str, int]:
    """
    Score a single match prediction.

    Returns:
        (points_type, points), e.g. ("correct_winner", 5). Incomplete or
        negative scores on either side give ("no_points", 0).
    """
    if not _valid_score(predicted) or not _valid_score(actual):
        return PointsType.NO_POINTS, 0

    for points_type, points, applies in MATCH_RULES:
        if applies(predicted, actual):
            return points_type, points

    return PointsType.NO_POINTS, 0


def calculate_match_points(predicted: Score, actual: Score) -> int:
    return evaluate_match(predicted, actual)[1]


def _valid_classification(classification):
    return (
        classification is not None
        and classification.first is not None
        and classification.second is not None
        and classification.first != classification.second
    )


def evaluate_group_classification(
    predicted: Classification, actual: Classification
) -> Tuple[str, int]:
    """
    Score the predicted top two of a group.

    Both in order: 10. Both but swapped: 4. Otherwise 5 for a correct first
    place plus 5 for a correct second place.
    """
    if not _valid_classification(predicted) or not _valid_classification(actual):
        return PointsType.NO_POINTS, 0

    if predicted.first == actual.first and predicted.second == actual.second:
        return PointsType.GROUP_EXACT_ORDER, GROUP_EXACT_ORDER_POINTS

    if predicted.first == actual.second and predicted.second == actual.first:
        return PointsType.GROUP_SWAPPED, GROUP_SWAPPED_POINTS

    points = 0
    if predicted.first == actual.first:
        points += GROUP_FIRST_POINTS
    if predicted.second == actual.second:
        points += GROUP_SECOND_POINTS

    if points:
        return PointsType.GROUP_PARTIAL, points
    return PointsType.NO_POINTS, 0


def calculate_group_classification_points(
    predicted_first, predicted_second, actual_first, actual_second
) -> int:
    return evaluate_group_classification(
        Classification(predicted_first, predicted_second),
        Classification(actual_first, actual_second),
    )[1]


def evaluate_tournament_final(
    predicted: FinalPlacement, actual: FinalPlacement
) -> Tuple[str, int]:
    """
    Score the champion, runner-up, third, fourth and final-score guess.

    Additive: 50 + 25 + 15 + 10 for each placement, 20 for the exact score
    of the final and a 35 bonus when all four placements are right, so a
    perfect prediction is worth 155.

    A prediction repeating a team among its placements earns no placement
    points and no bonus. The final-score component is still evaluated.
    """
    if predicted is None or actual is None:
        return PointsType.NO_POINTS, 0

    points = 0
    predicted_places = (
        predicted.champion,
        predicted.runner_up,
        predicted.third,
        predicted.fourth,
    )
    actual_places = (actual.champion, actual.runner_up, actual.third, actual.fourth)
    place_values = (
        CHAMPION_POINTS,
        RUNNER_UP_POINTS,
        THIRD_PLACE_POINTS,
        FOURTH_PLACE_POINTS,
    )

    named = [team for team in predicted_places if team is not None]
    distinct = len(named) == len(set(named))

    all_correct = distinct
    for guess, real, value in zip(predicted_places, actual_places, place_values):
        hit = distinct and guess is not None and real is not None and guess == real
        if hit:
            points += value
        else:
            all_correct = False

    if all_correct:
        points += ALL_PLACEMENTS_BONUS

    if (
        _valid_score(predicted.final_score)
        and _valid_score(actual.final_score)
        and _is_exact(predicted.final_score, actual.final_score)
    ):
        points += FINAL_SCORE_POINTS

    if points == PERFECT_FINAL_POINTS:
        return PointsType.FINAL_PERFECT, points
    if points:
        return PointsType.FINAL_PARTIAL, points
    return PointsType.NO_POINTS, 0


def calculate_tournament_final_points(
    predicted: FinalPlacement, actual: FinalPlacement
) -> int:
    return evaluate_tournament_final(predicted, actual)[1]


def accuracy_percentage(exact_matches: int, matches_played: int) -> int:
    """Share of exact-score matches as a whole percent, halves rounded up"""
    if not matches_played:
        return 0
    return (exact_matches * 200 + matches_played) // (2 * matches_played)
