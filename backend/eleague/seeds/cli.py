import random

import click
from flask.cli import AppGroup
from eleague.extensions import db
from eleague.models.team import Team, TeamMember
from eleague.models.user import User, UserRole
from eleague.models.competition import Competition, CompetitionType
from eleague.models.match import Match, MatchStatus
from eleague.seeds.data import (
    DEFAULT_ADMIN,
    DEMO_PASSWORD,
    TEAMS,
    PLAYERS_PER_TEAM,
    GAMER_TAGS,
    FORMATIONS,
)
from eleague.services.bracket_service import setup_bracket
from eleague.services.match_service import submit_result, approve_result

seed_cli = AppGroup("seed", help="Seed database commands.")

DEMO_CUP_NAME = "eLeague Demo Cup"


def _slugify(name):
    """Convert name to a slug for email addresses."""
    return name.lower().replace("'", "").replace(" ", "").replace("-", "")


def _get_or_create_user(email, username, role):
    user = User.query.filter_by(email=email).first()
    if user:
        return user, False
    user = User(email=email, username=username, role=role)
    user.set_password(DEMO_PASSWORD)
    db.session.add(user)
    db.session.flush()
    return user, True


@seed_cli.command("admin")
def seed_admin():
    """Seed default admin user."""
    user = User.query.filter_by(email=DEFAULT_ADMIN["email"]).first()
    if not user:
        user = User(
            email=DEFAULT_ADMIN["email"],
            username=DEFAULT_ADMIN["username"],
            role=UserRole.ADMIN,
        )
        user.set_password(DEFAULT_ADMIN["password"])
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created admin user: {DEFAULT_ADMIN['email']}")
    else:
        click.echo("Admin user already exists.")


@seed_cli.command("test-data")
def seed_test_data():
    """Seed demo teams, each with a captain and a few players."""
    rng = random.Random(42)  # deterministic for reproducibility
    tags = list(GAMER_TAGS)
    rng.shuffle(tags)

    teams_created = 0
    users_created = 0
    for team_name, captain_tag in TEAMS:
        slug = _slugify(team_name)
        captain, created = _get_or_create_user(
            f"captain.{slug}@eleague.gg", captain_tag, UserRole.CAPTAIN
        )
        users_created += created

        team = Team.query.filter_by(name=team_name).first()
        if not team:
            team = Team(name=team_name, captain_id=captain.id)
            db.session.add(team)
            db.session.flush()
            db.session.add(TeamMember(team_id=team.id, user_id=captain.id))
            teams_created += 1

        for i in range(PLAYERS_PER_TEAM):
            tag = tags.pop() if tags else f"{slug}_{i}"
            player, created = _get_or_create_user(
                f"player{i + 1}.{slug}@eleague.gg", f"{tag}_{slug[:4]}", UserRole.PLAYER
            )
            users_created += created
            if not player.team_id:
                db.session.add(TeamMember(team_id=team.id, user_id=player.id))

    db.session.commit()
    click.echo(f"Created {teams_created} teams and {users_created} users")


@seed_cli.command("demo-cup")
def seed_demo_cup():
    """Create an 8-team cup with its round-1 draw."""
    teams = Team.query.order_by(Team.id).limit(8).all()
    if len(teams) < 8:
        click.echo("Error: 8 teams needed. Run: flask seed test-data")
        raise SystemExit(1)

    cup = Competition.query.filter_by(name=DEMO_CUP_NAME).first()
    if not cup:
        cup = Competition(name=DEMO_CUP_NAME, type=CompetitionType.CUP, team_count=8)
        db.session.add(cup)
        db.session.commit()

    slots = {f"slot_{i}": t.id for i, t in enumerate(teams, 1)}
    result, error = setup_bracket(cup.id, slots)
    if error:
        click.echo(f"Error: {error}")
        raise SystemExit(1)
    click.echo(
        f"{DEMO_CUP_NAME}: {result['total_rounds']} rounds, "
        f"{len(result['created'])} fixture(s) created"
    )


def _proofs(match_id, team_id):
    base = f"/api/uploads/match-proofs/demo-{match_id}-{team_id}"
    return {
        "player_list_url": f"{base}-players.png",
        "result_url": f"{base}-result.png",
        "stats_url": f"{base}-stats.png",
        "stream_url": "https://twitch.tv/eleague",
    }


@seed_cli.command("simulate-results")
def seed_simulate_results():
    """Submit and approve random scores until the demo cup has a champion.

    Every approval re-runs bracket advancement, so later rounds appear
    as the earlier ones are decided. Level aggregates are left tied for
    an admin to resolve.
    """
    rng = random.Random(42)

    admin = User.query.filter_by(role=UserRole.ADMIN).first()
    if not admin:
        click.echo("Error: no admin user found. Run: flask seed admin")
        raise SystemExit(1)

    cup = Competition.query.filter_by(name=DEMO_CUP_NAME).first()
    if not cup:
        click.echo("Error: no demo cup. Run: flask seed demo-cup")
        raise SystemExit(1)

    approved = 0
    errors = []
    while True:
        pending = (
            Match.query.filter_by(competition_id=cup.id, approved=False)
            .filter(Match.status != MatchStatus.COMPLETED)
            .order_by(Match.round_number, Match.slot_number, Match.leg)
            .all()
        )
        if not pending:
            break

        for match in pending:
            home_score, away_score = rng.randint(0, 4), rng.randint(0, 4)
            for team in (match.home_team, match.away_team):
                if match.results.filter_by(team_id=team.id).first():
                    continue
                _, err = submit_result(match.id, team.captain_id, {
                    "home_score": home_score,
                    "away_score": away_score,
                    "proofs": _proofs(match.id, team.id),
                    "lineup": {
                        "formation": rng.choice(FORMATIONS),
                        "player_positions": {"POR": team.captain_id},
                    },
                    "player_stats": [],
                })
                if err:
                    errors.append(f"Match {match.id} submit: {err}")

            _, err = approve_result(match.id, admin.id)
            if err:
                errors.append(f"Match {match.id} approve: {err}")
                continue
            approved += 1

        if errors:
            break

    db.session.refresh(cup)
    click.echo(f"Approved: {approved}, competition status: {cup.status.value}")
    if errors:
        click.echo(f"Errors ({len(errors)}):")
        for e in errors:
            click.echo(f"  - {e}")


@seed_cli.command("all")
@click.pass_context
def seed_all(ctx):
    """Seed admin, demo teams and the demo cup draw."""
    ctx.invoke(seed_admin)
    ctx.invoke(seed_test_data)
    ctx.invoke(seed_demo_cup)
    click.echo("All seed data loaded successfully!")
