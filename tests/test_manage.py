"""Tests for the management CLI."""

import pytest

from bolao import db
from bolao.models import MatchPrediction, PointsLedgerEntry, UserStats
from manage import cli


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def finished_match(tournament):
    match = tournament.matches["bra_srb"]
    MatchPrediction.submit(tournament.users["alice"].id, match.id, 2, 0)
    MatchPrediction.submit(tournament.users["bruno"].id, match.id, 1, 0)
    db.session.commit()
    match.record_result(2, 0)
    db.session.commit()
    return match


def test_score_match(runner, finished_match):
    result = runner.invoke(cli, ["score", "match", str(finished_match.id)])

    assert result.exit_code == 0
    assert "2 scored, 0 skipped" in result.output
    assert PointsLedgerEntry.query.count() == 2


def test_score_match_not_finished(runner, tournament):
    match = tournament.matches["por_gha"]

    result = runner.invoke(cli, ["score", "match", str(match.id)])

    assert result.exit_code == 1
    assert "no final result yet" in result.output


def test_score_group_not_completed(runner, tournament):
    result = runner.invoke(cli, ["score", "group", str(tournament.groups["A"].id)])

    assert result.exit_code == 1
    assert "not final yet" in result.output


def test_score_final_without_result(runner, tournament):
    result = runner.invoke(cli, ["score", "final"])
    assert result.exit_code == 1


def test_score_all(runner, finished_match):
    result = runner.invoke(cli, ["score", "all"])

    assert result.exit_code == 0
    assert "Full rescore" in result.output
    assert "1 matches, 0 groups, final not entered" in result.output
    assert UserStats.query.count() == 4


def test_ranking_show(runner, finished_match):
    runner.invoke(cli, ["score", "match", str(finished_match.id)])

    result = runner.invoke(cli, ["ranking", "show", "--source", "ledger"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "Ranking (ledger):"
    assert "Alice Silva" in lines[1]
    assert "10 pts" in lines[1]
    assert "Bruno Costa" in lines[2]


def test_ranking_verify(runner, finished_match):
    runner.invoke(cli, ["score", "match", str(finished_match.id)])
    result = runner.invoke(cli, ["ranking", "verify"])
    assert result.exit_code == 0
    assert "Ledger is consistent" in result.output

    UserStats.query.filter_by(user_id=finished_match.predictions[0].user_id).one().total_points = 1
    db.session.commit()

    result = runner.invoke(cli, ["ranking", "verify"])
    assert result.exit_code == 1
    assert "total_mismatch" in result.output


def test_status(runner, finished_match):
    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 0
    assert "Database: Connected" in result.output
    assert "Participants: 3" in result.output
    assert "Matches: 1/3 finished" in result.output
    assert "Last scoring run: never" in result.output


def test_db_reset_can_be_cancelled(runner, tournament):
    result = runner.invoke(cli, ["db-cmd", "reset"], input="n\n")

    assert "Cancelled." in result.output
    assert MatchPrediction.query.count() == 0
    assert tournament.users["alice"].id is not None
