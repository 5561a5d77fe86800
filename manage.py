#!/usr/bin/env python3
"""
Bolão Management CLI

Command-line access to the scoring passes, the ranking and the database.
"""

import logging
import sys

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bolao import db
from bolao.exceptions import BolaoError
from bolao.models import Group, Match, MatchPrediction, ScoringRun, User
from bolao.services.points_ledger import points_ledger
from bolao.services.ranking import (
    build_ledger_ranking,
    build_ranking,
    verify_ledger_consistency,
)

logger = logging.getLogger(__name__)


def _report_line(report):
    return (
        f"{report['scored']} scored, {report['skipped']} skipped, "
        f"{report['removed']} removed, {report['users_updated']} users updated"
    )


def _run_pass(description, operation, *args):
    """Run a scoring pass and echo its outcome; exit 1 on failure"""
    try:
        report = operation(*args)
    except BolaoError as e:
        click.echo(f"❌ {description}: {e}")
        logger.error(f"{description} failed: {e}")
        sys.exit(1)

    click.echo(f"✅ {description}: {_report_line(report)}")
    return report


@click.group()
def cli():
    """Bolão Management CLI"""
    pass


# Scoring Commands
@cli.group()
def score():
    """Scoring commands"""
    pass


@score.command("match")
@click.argument("match_id", type=int)
@with_appcontext
def score_match(match_id):
    """Score all predictions for a finished match"""
    _run_pass(f"Match {match_id}", points_ledger.process_match_result, match_id)


@score.command("group")
@click.argument("group_id", type=int)
@with_appcontext
def score_group(group_id):
    """Score all classification guesses for a completed group"""
    _run_pass(f"Group {group_id}", points_ledger.process_group_result, group_id)


@score.command("final")
@with_appcontext
def score_final():
    """Score all tournament-final guesses"""
    _run_pass("Tournament final", points_ledger.process_tournament_final)


@score.command("all")
@with_appcontext
def score_all():
    """Rescore every finished match, completed group and the final"""
    report = _run_pass("Full rescore", points_ledger.rescore_all)
    click.echo(
        f"   {report['matches']} matches, {report['groups']} groups, "
        f"final {'included' if report['final'] else 'not entered'}"
    )


# Ranking Commands
@cli.group()
def ranking():
    """Ranking commands"""
    pass


@ranking.command("show")
@click.option(
    "--source",
    type=click.Choice(["computed", "ledger"]),
    default="computed",
    help="Recompute from predictions or read the stored totals",
)
@with_appcontext
def show_ranking(source):
    """Print the leaderboard"""
    rows = build_ledger_ranking() if source == "ledger" else build_ranking()

    if not rows:
        click.echo("No participants found.")
        return

    click.echo(f"Ranking ({source}):")
    for row in rows:
        click.echo(
            f"  {row['position']:>3}. {row['user']['name']:<30} "
            f"{row['points']:>5} pts  {row['matches']:>3} matches  "
            f"{row['accuracy']:>3}%"
        )


@ranking.command("verify")
@with_appcontext
def verify_ranking():
    """Check that the ledger and stored totals match the rules"""
    discrepancies = verify_ledger_consistency()

    if not discrepancies:
        click.echo("✅ Ledger is consistent")
        return

    click.echo(f"❌ Found {len(discrepancies)} discrepancies:")
    for item in discrepancies:
        details = ", ".join(
            f"{k}={v}" for k, v in item.items() if k not in ("user_id", "kind")
        )
        click.echo(f"   user {item['user_id']}: {item['kind']} ({details})")
    sys.exit(1)


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")
        logger.error(f"Database initialization failed: {e}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")
        logger.error(f"Database reset failed: {e}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Bolão Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    participants = len(User.get_participants())
    click.echo(f"👥 Participants: {participants}")

    match_count = Match.query.count()
    finished_count = Match.query.filter_by(is_finished=True).count()
    click.echo(f"⚽ Matches: {finished_count}/{match_count} finished")

    groups = Group.query.all()
    completed = sum(1 for group in groups if group.is_completed)
    click.echo(f"🏆 Groups: {completed}/{len(groups)} completed")

    click.echo(f"📝 Match predictions: {MatchPrediction.query.count()}")

    recent = ScoringRun.get_recent(limit=1)
    if recent:
        last_run = recent[0]
        click.echo(
            f"🕒 Last scoring run: {last_run.category} "
            f"{last_run.subject_id if last_run.subject_id is not None else ''} "
            f"({last_run.status})"
        )
    else:
        click.echo("🕒 Last scoring run: never")


if __name__ == "__main__":
    from bolao import create_app

    app = create_app()
    with app.app_context():
        cli()
