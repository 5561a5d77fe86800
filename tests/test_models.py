"""Tests for model helpers and prediction submission."""

from bolao import db
from bolao.models import (
    FinalPrediction,
    GroupPrediction,
    GroupResult,
    MatchPrediction,
    TournamentResult,
    User,
)


def test_match_outcome_and_status(tournament):
    match = tournament.matches["bra_srb"]
    assert match.outcome is None
    assert match.winning_team is None

    match.record_result(0, 2)
    db.session.commit()

    assert match.has_result
    assert match.outcome == "away_win"
    assert match.winning_team.name == "Serbia"
    assert match.status == "finished"


def test_match_prediction_submit_creates_then_updates(tournament):
    alice = tournament.users["alice"]
    match = tournament.matches["bra_srb"]

    prediction, message = MatchPrediction.submit(alice.id, match.id, 1, 0)
    db.session.commit()
    assert message == "Prediction created successfully"

    updated, message = MatchPrediction.submit(alice.id, match.id, 3, 3)
    db.session.commit()
    assert message == "Prediction updated successfully"
    assert updated.id == prediction.id
    assert (updated.home_score, updated.away_score) == (3, 3)
    assert MatchPrediction.query.count() == 1


def test_match_prediction_rejected_after_final_whistle(tournament):
    match = tournament.matches["bra_srb"]
    match.record_result(1, 0)
    db.session.commit()

    prediction, message = MatchPrediction.submit(tournament.users["alice"].id, match.id, 1, 0)

    assert prediction is None
    assert message == "Match is already finished"


def test_match_prediction_rejects_bad_scores(tournament):
    match = tournament.matches["bra_srb"]
    prediction, message = MatchPrediction.submit(tournament.users["alice"].id, match.id, -1, 0)
    assert prediction is None
    assert "non-negative" in message


def test_match_prediction_unknown_match(tournament):
    prediction, message = MatchPrediction.submit(tournament.users["alice"].id, 9999, 1, 0)
    assert prediction is None
    assert message == "Match not found"


def test_group_prediction_rejects_duplicate_team(tournament):
    brazil = tournament.teams["Brazil"]
    prediction, message = GroupPrediction.submit(
        tournament.users["alice"].id, tournament.groups["A"].id, brazil.id, brazil.id
    )
    assert prediction is None
    assert "different teams" in message


def test_group_prediction_rejected_once_group_completed(tournament):
    teams = tournament.teams
    group = tournament.groups["A"]
    db.session.add(
        GroupResult(
            group_id=group.id,
            first_team_id=teams["Brazil"].id,
            second_team_id=teams["Serbia"].id,
            is_completed=True,
        )
    )
    db.session.commit()

    prediction, message = GroupPrediction.submit(
        tournament.users["alice"].id, group.id, teams["Brazil"].id, teams["Serbia"].id
    )
    assert prediction is None
    assert group.to_dict()["is_completed"] is True


def test_final_prediction_rejects_repeated_team(tournament):
    teams = tournament.teams
    prediction, message = FinalPrediction.submit(
        tournament.users["alice"].id,
        teams["Brazil"].id,
        teams["Ghana"].id,
        teams["Brazil"].id,
        teams["Korea"].id,
    )
    assert prediction is None
    assert "four different teams" in message


def test_final_prediction_rejects_non_integer_score(tournament):
    teams = tournament.teams
    ids = [teams[name].id for name in ("Brazil", "Ghana", "Korea", "Serbia")]

    prediction, message = FinalPrediction.submit(
        tournament.users["alice"].id, *ids, "2", 1
    )

    assert prediction is None
    assert message == "Scores must be non-negative integers"
    assert FinalPrediction.query.count() == 0


def test_final_prediction_one_per_user(tournament):
    teams = tournament.teams
    alice = tournament.users["alice"]
    ids = [teams[name].id for name in ("Brazil", "Ghana", "Korea", "Serbia")]

    FinalPrediction.submit(alice.id, *ids)
    db.session.commit()
    prediction, message = FinalPrediction.submit(alice.id, *reversed(ids), 1, 0)
    db.session.commit()

    assert message == "Prediction updated successfully"
    assert FinalPrediction.query.count() == 1
    assert [
        prediction.champion_id,
        prediction.runner_up_id,
        prediction.third_place_id,
        prediction.fourth_place_id,
    ] == list(reversed(ids))
    assert alice.final_prediction.final_home_score == 1


def test_final_prediction_rejected_after_tournament(tournament):
    teams = tournament.teams
    result = TournamentResult.get_or_create()
    result.is_completed = True
    db.session.commit()

    prediction, message = FinalPrediction.submit(
        tournament.users["alice"].id,
        teams["Brazil"].id,
        teams["Ghana"].id,
        teams["Korea"].id,
        teams["Serbia"].id,
    )
    assert prediction is None
    assert message == "Tournament is already finished"


def test_participants_exclude_admins_only(tournament):
    tournament.users["carla"].is_active = False
    db.session.commit()

    assert [user.username for user in User.get_participants()] == ["alice", "bruno", "carla"]
    assert tournament.users["alice"].display_name == "Alice"
