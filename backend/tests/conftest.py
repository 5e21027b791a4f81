import os
import pytest

os.environ["FLASK_ENV"] = "testing"

from eleague import create_app
from eleague.events import event_bus
from eleague.extensions import db as _db
from eleague.models.user import User, UserRole
from eleague.models.team import Team, TeamMember
from eleague.models.competition import Competition, CompetitionType

PASSWORD = "Secret@2026"


@pytest.fixture(scope="session")
def app():
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def tables(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_bus():
    event_bus.clear()
    yield
    event_bus.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(username, role=UserRole.PLAYER, email=None):
    user = User(
        email=email or f"{username}@eleague.test",
        username=username,
        role=role,
    )
    user.set_password(PASSWORD)
    _db.session.add(user)
    _db.session.commit()
    return user


def make_team(name, captain, members=()):
    """A team captained by ``captain``, who is also its first member."""
    team = Team(name=name, captain_id=captain.id)
    _db.session.add(team)
    _db.session.flush()
    _db.session.add(TeamMember(team_id=team.id, user_id=captain.id))
    for member in members:
        _db.session.add(TeamMember(team_id=team.id, user_id=member.id))
    _db.session.commit()
    return team


def make_competition(name="Test Cup", comp_type=CompetitionType.CUP, team_count=8, teams=()):
    comp = Competition(name=name, type=comp_type, team_count=team_count)
    _db.session.add(comp)
    _db.session.flush()
    for team in teams:
        comp.teams.append(team)
    _db.session.commit()
    return comp


def login(client, email, password=PASSWORD):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    token = resp.get_json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(app):
    return make_user("testadmin", UserRole.ADMIN)


@pytest.fixture
def admin_headers(client, admin_user):
    return login(client, admin_user.email)


@pytest.fixture
def captain_user(app):
    return make_user("testcaptain", UserRole.CAPTAIN)


@pytest.fixture
def captain_headers(client, captain_user):
    return login(client, captain_user.email)


@pytest.fixture
def player_user(app):
    return make_user("testplayer")


@pytest.fixture
def player_headers(client, player_user):
    return login(client, player_user.email)


@pytest.fixture
def cup_teams(app):
    """Eight teams, each with its own captain."""
    teams = []
    for i in range(1, 9):
        captain = make_user(f"captain{i}", UserRole.CAPTAIN)
        teams.append(make_team(f"Team {i}", captain))
    return teams
