from datetime import datetime
from types import SimpleNamespace

import pytest

from bolao import create_app, db


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    return {
        "X-Admin-Token": app.config["ADMIN_API_TOKEN"],
        "Content-Type": "application/json",
    }


@pytest.fixture
def tournament(app):
    """Two groups of four teams, three participants, one admin and three matches."""
    from bolao.models import Group, Match, Team, User

    group_a = Group(name="A")
    group_b = Group(name="B")
    db.session.add_all([group_a, group_b])
    db.session.flush()

    teams = {}
    for name, group in [
        ("Brazil", group_a),
        ("Serbia", group_a),
        ("Switzerland", group_a),
        ("Cameroon", group_a),
        ("Portugal", group_b),
        ("Ghana", group_b),
        ("Uruguay", group_b),
        ("Korea", group_b),
    ]:
        teams[name] = Team(name=name, group_id=group.id)
    db.session.add_all(teams.values())

    users = {
        "alice": User(username="alice", name="Alice Silva"),
        "bruno": User(username="bruno", name="Bruno Costa"),
        "carla": User(username="carla", name="Carla Dias"),
        "admin": User(username="admin", name="Admin", is_admin=True),
    }
    db.session.add_all(users.values())
    db.session.flush()

    matches = {
        "bra_srb": Match(
            home_team_id=teams["Brazil"].id,
            away_team_id=teams["Serbia"].id,
            match_date=datetime(2026, 6, 14, 16, 0),
        ),
        "sui_cmr": Match(
            home_team_id=teams["Switzerland"].id,
            away_team_id=teams["Cameroon"].id,
            match_date=datetime(2026, 6, 14, 19, 0),
        ),
        "por_gha": Match(
            home_team_id=teams["Portugal"].id,
            away_team_id=teams["Ghana"].id,
            match_date=datetime(2026, 6, 15, 16, 0),
        ),
    }
    db.session.add_all(matches.values())
    db.session.commit()

    return SimpleNamespace(
        groups={"A": group_a, "B": group_b},
        teams=teams,
        users=users,
        matches=matches,
    )
