"""
Ranking builder

build_ranking() recomputes the leaderboard straight from predictions and
real outcomes with the scoring rules, without reading or writing the ledger.
build_ledger_ranking() reads the stored totals instead, and
verify_ledger_consistency() reports every place where the two disagree.
"""

import logging
from collections import defaultdict

from bolao.store import SqlAlchemyRecordStore
from bolao.utils.scoring import (
    Classification,
    FinalPlacement,
    PointsType,
    Score,
    accuracy_percentage,
    evaluate_group_classification,
    evaluate_match,
    evaluate_tournament_final,
)

logger = logging.getLogger(__name__)


def _display_name(user):
    return user.name or user.username


def _sort_and_number(rows):
    """Order by points descending, then name, and attach 1-based positions"""
    rows.sort(key=lambda row: (-row["points"], row["user"]["name"]))
    for position, row in enumerate(rows, start=1):
        row["position"] = position
    return rows


def _user_dict(user):
    return {
        "id": user.id,
        "username": user.username,
        "name": _display_name(user),
        "nickname": user.nickname,
    }


def build_ranking(store=None):
    """
    Recompute the leaderboard for every active non-admin user.

    Returns:
        list of {"position", "user", "points", "matches", "accuracy"} dicts,
        best first.
    """
    store = store or SqlAlchemyRecordStore()

    users = store.get_all_users(exclude_admins=True)
    results = {match.id: match for match in store.get_all_finished_match_results()}
    group_results = {
        result.group_id: result for result in store.get_completed_group_results()
    }
    tournament = store.get_tournament_result()

    points = defaultdict(int)
    matches = defaultdict(int)
    exact = defaultdict(int)

    for prediction in store.get_all_match_predictions():
        match = results.get(prediction.match_id)
        if match is None:
            continue
        points_type, awarded = evaluate_match(
            Score(prediction.home_score, prediction.away_score),
            Score(match.home_score, match.away_score),
        )
        points[prediction.user_id] += awarded
        matches[prediction.user_id] += 1
        if points_type == PointsType.EXACT_SCORE:
            exact[prediction.user_id] += 1

    for prediction in store.get_all_group_predictions():
        result = group_results.get(prediction.group_id)
        if result is None:
            continue
        points[prediction.user_id] += evaluate_group_classification(
            Classification(prediction.first_team_id, prediction.second_team_id),
            Classification(result.first_team_id, result.second_team_id),
        )[1]

    if tournament and tournament.is_completed:
        actual = FinalPlacement(
            tournament.champion_id,
            tournament.runner_up_id,
            tournament.third_place_id,
            tournament.fourth_place_id,
            Score(tournament.final_home_score, tournament.final_away_score),
        )
        for prediction in store.get_all_final_predictions():
            points[prediction.user_id] += evaluate_tournament_final(
                FinalPlacement(
                    prediction.champion_id,
                    prediction.runner_up_id,
                    prediction.third_place_id,
                    prediction.fourth_place_id,
                    Score(prediction.final_home_score, prediction.final_away_score),
                ),
                actual,
            )[1]

    rows = [
        {
            "user": _user_dict(user),
            "points": points[user.id],
            "matches": matches[user.id],
            "accuracy": accuracy_percentage(exact[user.id], matches[user.id]),
        }
        for user in users
    ]
    return _sort_and_number(rows)


def build_ledger_ranking(store=None):
    """Leaderboard from the stored user totals, same shape as build_ranking()"""
    store = store or SqlAlchemyRecordStore()

    totals = {total.user_id: total for total in store.get_all_user_totals()}
    rows = []
    for user in store.get_all_users(exclude_admins=True):
        total = totals.get(user.id)
        rows.append(
            {
                "user": _user_dict(user),
                "points": total.total_points if total else 0,
                "matches": total.matches_played if total else 0,
                "accuracy": total.accuracy_percentage if total else 0,
            }
        )
    return _sort_and_number(rows)


def verify_ledger_consistency(store=None):
    """
    Compare recomputed points with the ledger and the stored totals.

    Returns a list of discrepancy dicts; an empty list means the ledger,
    the totals and the rules all agree.
    """
    store = store or SqlAlchemyRecordStore()

    recomputed = {row["user"]["id"]: row for row in build_ranking(store)}
    discrepancies = []

    for user in store.get_all_users(exclude_admins=True):
        entries = store.get_ledger_entries_for_user(user.id)
        ledger_sum = sum(entry.points for entry in entries)
        total = store.get_user_total(user.id)
        stored = total.total_points if total else 0
        expected = recomputed[user.id]["points"]

        if ledger_sum != stored:
            discrepancies.append(
                {
                    "user_id": user.id,
                    "kind": "total_mismatch",
                    "ledger_sum": ledger_sum,
                    "stored_total": stored,
                }
            )
        if ledger_sum != expected:
            discrepancies.append(
                {
                    "user_id": user.id,
                    "kind": "ledger_mismatch",
                    "ledger_sum": ledger_sum,
                    "recomputed": expected,
                }
            )

    if discrepancies:
        logger.warning(f"Ledger consistency check found {len(discrepancies)} issues")
    else:
        logger.info("Ledger consistency check passed")

    return discrepancies
