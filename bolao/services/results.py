"""
Result entry

Saves a real outcome entered by an administrator and immediately runs the
matching scoring pass, so a corrected result always replaces the old points.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from bolao import db
from bolao.exceptions import InvalidResultError, ScoringError
from bolao.models import Group, GroupResult, Match, Team, TournamentResult
from bolao.services.points_ledger import points_ledger

logger = logging.getLogger(__name__)


def _validate_goals(value, label, required=True):
    if value is None and not required:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidResultError(f"{label} must be a non-negative integer")
    return value


def _validate_teams(team_ids, labels):
    """All teams must be set, distinct and exist"""
    for team_id, label in zip(team_ids, labels):
        if team_id is None:
            raise InvalidResultError(f"{label} is required")
        if not isinstance(team_id, int) or isinstance(team_id, bool):
            raise InvalidResultError(f"{label} must be a team id")

    if len(set(team_ids)) != len(team_ids):
        raise InvalidResultError("The same team cannot take two places")

    found = {team.id for team in Team.query.filter(Team.id.in_(team_ids))}
    missing = [team_id for team_id in team_ids if team_id not in found]
    if missing:
        raise InvalidResultError(f"Unknown team id(s): {', '.join(map(str, missing))}")


def _save(description):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to save {description}: {e}")
        raise ScoringError(f"Could not save {description}") from e


def record_match_result(match_id, home_score, away_score):
    """Store the final score of a match and score its predictions.

    Returns (match, report).
    """
    match = db.session.get(Match, match_id)
    if not match:
        raise InvalidResultError(f"Match {match_id} does not exist")

    _validate_goals(home_score, "home_score")
    _validate_goals(away_score, "away_score")

    corrected = match.is_finished
    match.record_result(home_score, away_score)
    _save(f"result of match {match_id}")

    logger.info(
        f"{'Corrected' if corrected else 'Recorded'} result of match {match_id}: "
        f"{home_score}x{away_score}"
    )
    return match, points_ledger.process_match_result(match_id)


def record_group_result(group_id, first_team_id, second_team_id):
    """Store the final top two of a group and score the classification guesses"""
    group = db.session.get(Group, group_id)
    if not group:
        raise InvalidResultError(f"Group {group_id} does not exist")

    _validate_teams([first_team_id, second_team_id], ["first_team_id", "second_team_id"])

    result = group.result
    if result is None:
        result = GroupResult(group_id=group_id)
        db.session.add(result)

    result.first_team_id = first_team_id
    result.second_team_id = second_team_id
    result.is_completed = True
    _save(f"classification of group {group.name}")

    logger.info(f"Recorded classification of group {group.name}")
    return result, points_ledger.process_group_result(group_id)


def record_tournament_result(
    champion_id,
    runner_up_id,
    third_place_id,
    fourth_place_id,
    final_home_score=None,
    final_away_score=None,
):
    """Store the final placements and final score, then score the final guesses"""
    _validate_teams(
        [champion_id, runner_up_id, third_place_id, fourth_place_id],
        ["champion_id", "runner_up_id", "third_place_id", "fourth_place_id"],
    )
    _validate_goals(final_home_score, "final_home_score", required=False)
    _validate_goals(final_away_score, "final_away_score", required=False)

    result = TournamentResult.get_or_create()
    result.champion_id = champion_id
    result.runner_up_id = runner_up_id
    result.third_place_id = third_place_id
    result.fourth_place_id = fourth_place_id
    result.final_home_score = final_home_score
    result.final_away_score = final_away_score
    result.is_completed = True
    _save("tournament result")

    logger.info("Recorded tournament final result")
    return result, points_ledger.process_tournament_final()
