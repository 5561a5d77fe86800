"""Tests for the points ledger and user total aggregation."""

import logging

import pytest
from flask import g
from sqlalchemy.exc import SQLAlchemyError

from bolao import cache, db
from bolao.exceptions import OutcomeNotReadyError, ScoringError
from bolao.models import (
    FinalPrediction,
    GroupPrediction,
    GroupResult,
    MatchPrediction,
    PointsLedgerEntry,
    ScoringRun,
    TournamentResult,
    UserStats,
)
from bolao.services.points_ledger import PointsLedger
from bolao.store import MatchPredictionRecord, SqlAlchemyRecordStore


def predict(user, match, home, away):
    prediction, message = MatchPrediction.submit(user.id, match.id, home, away)
    assert prediction is not None, message
    db.session.commit()
    return prediction


def finish(match, home, away):
    match.record_result(home, away)
    db.session.commit()


def stats_for(user):
    return UserStats.query.filter_by(user_id=user.id).first()


def entries_for(user):
    return PointsLedgerEntry.query.filter_by(user_id=user.id).all()


@pytest.fixture
def ledger(app):
    return PointsLedger(SqlAlchemyRecordStore())


@pytest.fixture
def scored_match(tournament):
    """Brazil 2 x 1 Serbia with one prediction per participant"""
    match = tournament.matches["bra_srb"]
    users = tournament.users
    predict(users["alice"], match, 2, 1)
    predict(users["bruno"], match, 1, 0)
    predict(users["carla"], match, 0, 0)
    finish(match, 2, 1)
    return match


def test_process_match_result_awards_points(ledger, tournament, scored_match):
    report = ledger.process_match_result(scored_match.id)

    assert report["scored"] == 3
    assert report["skipped"] == 0
    assert report["users_updated"] == 3
    assert report["points_awarded"] == 15

    users = tournament.users
    alice_entries = entries_for(users["alice"])
    assert len(alice_entries) == 1
    assert alice_entries[0].points == 10
    assert alice_entries[0].points_type == "exact_score"
    assert alice_entries[0].category == "match"
    assert alice_entries[0].related_id == scored_match.id

    assert stats_for(users["alice"]).total_points == 10
    assert stats_for(users["alice"]).matches_played == 1
    assert stats_for(users["alice"]).accuracy_percentage == 100
    assert stats_for(users["bruno"]).total_points == 5
    assert stats_for(users["bruno"]).accuracy_percentage == 0
    assert stats_for(users["carla"]).total_points == 0
    assert entries_for(users["carla"])[0].points_type == "no_points"


def test_process_match_result_twice_changes_nothing(ledger, tournament, scored_match):
    ledger.process_match_result(scored_match.id)
    first = {s.user_id: s.total_points for s in UserStats.query.all()}

    ledger.process_match_result(scored_match.id)
    second = {s.user_id: s.total_points for s in UserStats.query.all()}

    assert first == second
    assert PointsLedgerEntry.query.count() == 3
    assert ScoringRun.query.filter_by(category="match").count() == 2


def test_corrected_result_leaves_no_trace_of_old_score(ledger, tournament, scored_match):
    ledger.process_match_result(scored_match.id)

    finish(scored_match, 1, 0)
    ledger.process_match_result(scored_match.id)

    users = tournament.users
    assert stats_for(users["alice"]).total_points == 5
    assert stats_for(users["bruno"]).total_points == 10
    assert stats_for(users["bruno"]).accuracy_percentage == 100
    # 0 x 0 against 1 x 0 matches the away goals
    assert stats_for(users["carla"]).total_points == 3
    assert PointsLedgerEntry.query.count() == 3


def test_unfinished_match_is_not_scored(ledger, tournament):
    match = tournament.matches["por_gha"]
    predict(tournament.users["alice"], match, 1, 1)

    with pytest.raises(OutcomeNotReadyError):
        ledger.process_match_result(match.id)

    assert PointsLedgerEntry.query.count() == 0
    assert UserStats.query.count() == 0
    assert ScoringRun.query.count() == 0


def test_missing_match_is_not_scored(ledger, tournament):
    with pytest.raises(OutcomeNotReadyError):
        ledger.process_match_result(9999)


def test_match_without_predictions_is_trivial_success(ledger, tournament):
    match = tournament.matches["sui_cmr"]
    finish(match, 0, 0)

    report = ledger.process_match_result(match.id)

    assert report["scored"] == 0
    assert report["users_updated"] == 0
    run = ScoringRun.query.one()
    assert run.status == "success"
    assert run.subject_id == match.id


def test_malformed_prediction_is_skipped_and_its_entry_removed(
    app, tournament, scored_match, monkeypatch, caplog
):
    users = tournament.users
    store = SqlAlchemyRecordStore()
    ledger = PointsLedger(store)

    # Points left over from an earlier pass for a prediction now missing its user
    db.session.add(
        PointsLedgerEntry(
            user_id=users["bruno"].id,
            category="match",
            prediction_id=999,
            related_id=scored_match.id,
            points=10,
            points_type="exact_score",
        )
    )
    db.session.commit()

    alice_prediction = [
        p
        for p in store.get_match_predictions(scored_match.id)
        if p.user_id == users["alice"].id
    ]
    broken = MatchPredictionRecord(
        id=999, user_id=None, match_id=scored_match.id, home_score=1, away_score=0
    )
    monkeypatch.setattr(
        store, "get_match_predictions", lambda match_id: alice_prediction + [broken]
    )

    with caplog.at_level(logging.WARNING, logger="bolao.services.points_ledger"):
        report = ledger.process_match_result(scored_match.id)

    assert report["scored"] == 1
    assert report["skipped"] == 1
    assert "Skipping prediction 999: missing user" in caplog.text
    assert PointsLedgerEntry.query.filter_by(prediction_id=999).count() == 0
    assert stats_for(users["alice"]).total_points == 10
    assert stats_for(users["bruno"]).total_points == 0


def test_deleted_prediction_entry_is_removed(ledger, tournament, scored_match):
    ledger.process_match_result(scored_match.id)
    bruno = tournament.users["bruno"]
    assert stats_for(bruno).total_points == 5

    db.session.delete(MatchPrediction.query.filter_by(user_id=bruno.id).one())
    db.session.commit()

    report = ledger.process_match_result(scored_match.id)

    assert report["removed"] == 1
    assert entries_for(bruno) == []
    assert stats_for(bruno).total_points == 0


def test_store_failure_rolls_back_and_raises(app, tournament, scored_match, monkeypatch):
    store = SqlAlchemyRecordStore()
    ledger = PointsLedger(store)

    def broken_upsert(**kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(store, "upsert_ledger_entry", broken_upsert)

    with pytest.raises(ScoringError) as excinfo:
        ledger.process_match_result(scored_match.id)

    assert excinfo.value.category == "match"
    assert PointsLedgerEntry.query.count() == 0
    failed = ScoringRun.query.one()
    assert failed.status == "failed"
    assert "disk full" in failed.error

    # Retrying once the store recovers needs no cleanup
    monkeypatch.undo()
    report = ledger.process_match_result(scored_match.id)
    assert report["scored"] == 3
    assert stats_for(tournament.users["alice"]).total_points == 10


def test_process_group_result(ledger, tournament):
    teams = tournament.teams
    users = tournament.users
    group = tournament.groups["A"]

    for user, first, second in [
        (users["alice"], "Brazil", "Switzerland"),
        (users["bruno"], "Switzerland", "Brazil"),
        (users["carla"], "Brazil", "Cameroon"),
    ]:
        prediction, message = GroupPrediction.submit(
            user.id, group.id, teams[first].id, teams[second].id
        )
        assert prediction is not None, message
    db.session.add(
        GroupResult(
            group_id=group.id,
            first_team_id=teams["Brazil"].id,
            second_team_id=teams["Switzerland"].id,
            is_completed=True,
        )
    )
    db.session.commit()

    report = ledger.process_group_result(group.id)

    assert report["scored"] == 3
    assert stats_for(users["alice"]).total_points == 10
    assert stats_for(users["bruno"]).total_points == 4
    assert stats_for(users["carla"]).total_points == 5
    # Group points do not count as played matches
    assert stats_for(users["alice"]).matches_played == 0
    assert entries_for(users["alice"])[0].points_type == "group_exact_order"


def test_incomplete_group_is_not_scored(ledger, tournament):
    with pytest.raises(OutcomeNotReadyError):
        ledger.process_group_result(tournament.groups["B"].id)


def test_process_tournament_final(ledger, tournament):
    teams = tournament.teams
    users = tournament.users
    placements = [teams[name].id for name in ("Brazil", "Portugal", "Uruguay", "Serbia")]

    FinalPrediction.submit(users["alice"].id, *placements, 2, 1)
    FinalPrediction.submit(
        users["bruno"].id,
        teams["Brazil"].id,
        teams["Ghana"].id,
        teams["Korea"].id,
        teams["Cameroon"].id,
    )
    db.session.commit()

    result = TournamentResult(is_completed=True, final_home_score=2, final_away_score=1)
    (
        result.champion_id,
        result.runner_up_id,
        result.third_place_id,
        result.fourth_place_id,
    ) = placements
    db.session.add(result)
    db.session.commit()

    report = ledger.process_tournament_final()

    assert report["subject_id"] == result.id
    assert stats_for(users["alice"]).total_points == 155
    assert stats_for(users["bruno"]).total_points == 50
    assert entries_for(users["alice"])[0].points_type == "final_perfect"


def test_tournament_final_without_result(ledger, tournament):
    with pytest.raises(OutcomeNotReadyError):
        ledger.process_tournament_final()


def test_totals_sum_every_category(ledger, tournament, scored_match):
    users = tournament.users
    teams = tournament.teams
    group = tournament.groups["A"]

    second_match = tournament.matches["sui_cmr"]
    predict(users["alice"], second_match, 1, 0)
    finish(second_match, 3, 0)

    GroupPrediction.submit(users["alice"].id, group.id, teams["Brazil"].id, teams["Serbia"].id)
    db.session.add(
        GroupResult(
            group_id=group.id,
            first_team_id=teams["Brazil"].id,
            second_team_id=teams["Switzerland"].id,
            is_completed=True,
        )
    )
    db.session.commit()

    ledger.process_match_result(scored_match.id)
    ledger.process_match_result(second_match.id)
    ledger.process_group_result(group.id)

    stats = stats_for(users["alice"])
    assert stats.total_points == 10 + 5 + 5
    assert stats.matches_played == 2
    assert stats.accuracy_percentage == 50
    assert stats.total_points == sum(e.points for e in entries_for(users["alice"]))


def test_rescore_all_drops_entries_for_reopened_matches(ledger, tournament, scored_match):
    ledger.process_match_result(scored_match.id)

    summary = ledger.rescore_all()
    assert summary["matches"] == 1
    assert summary["scored"] == 3
    assert stats_for(tournament.users["alice"]).total_points == 10

    scored_match.is_finished = False
    db.session.commit()

    summary = ledger.rescore_all()

    assert summary["matches"] == 0
    assert summary["removed"] == 3
    assert PointsLedgerEntry.query.count() == 0
    assert stats_for(tournament.users["alice"]).total_points == 0
    assert ScoringRun.query.filter_by(category="rescore_all").count() == 2


def test_scoring_pass_clears_ranking_cache(ledger, tournament, scored_match):
    cache.set("ranking_page", "stale")

    ledger.process_match_result(scored_match.id)

    assert cache.get("ranking_page") is None


def test_upsert_ledger_entry_keeps_one_row_per_prediction(tournament):
    store = SqlAlchemyRecordStore()
    alice = tournament.users["alice"]
    bruno = tournament.users["bruno"]
    match = tournament.matches["bra_srb"]

    store.upsert_ledger_entry(alice.id, "match", 42, match.id, 10, "exact_score")
    loaded = PointsLedgerEntry.query.filter_by(prediction_id=42).one()
    assert loaded.points == 10

    record = store.upsert_ledger_entry(
        bruno.id, "match", 42, match.id, 3, "partial_score"
    )
    store.commit()

    assert record.user_id == bruno.id
    assert record.points == 3
    entry = PointsLedgerEntry.query.filter_by(prediction_id=42).one()
    assert (entry.user_id, entry.points, entry.points_type) == (
        bruno.id,
        3,
        "partial_score",
    )
    assert entry.created_at is not None


def test_same_prediction_id_in_other_category_is_a_separate_entry(tournament):
    store = SqlAlchemyRecordStore()
    alice = tournament.users["alice"]

    store.upsert_ledger_entry(alice.id, "match", 7, 1, 10, "exact_score")
    store.upsert_ledger_entry(
        alice.id, "group_classification", 7, 1, 4, "group_swapped"
    )
    store.commit()

    assert PointsLedgerEntry.query.filter_by(prediction_id=7).count() == 2


def test_set_user_total_overwrites_existing_row(tournament):
    store = SqlAlchemyRecordStore()
    alice = tournament.users["alice"]

    store.set_user_total(alice.id, 10, matches_played=1, accuracy_percentage=100)
    assert UserStats.query.filter_by(user_id=alice.id).one().total_points == 10

    total = store.set_user_total(alice.id, 15, matches_played=2, accuracy_percentage=50)
    store.commit()

    assert total.total_points == 15
    stats = UserStats.query.filter_by(user_id=alice.id).one()
    assert (stats.total_points, stats.matches_played, stats.accuracy_percentage) == (
        15,
        2,
        50,
    )


def test_slow_pass_is_logged(app, ledger, scored_match, caplog):
    app.config["SLOW_SCORING_THRESHOLD"] = -1

    with app.test_request_context("/api/admin/rescore"):
        with caplog.at_level(logging.WARNING, logger="bolao.utils.performance"):
            ledger.process_match_result(scored_match.id)
        assert not hasattr(g, "performance_metrics")

    assert f"Slow operation 'score match {scored_match.id}'" in caplog.text
