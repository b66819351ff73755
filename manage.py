#!/usr/bin/env python3
"""
Clout Management CLI

This script provides command-line management functionality for the Clout application.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clout import db
from clout.models import Event, Pick, User
from clout.services.verification_service import VerificationService
from clout.utils.event_sync import EventSync


@click.group()
def cli():
    """Clout Management CLI"""
    pass


# Verification Commands
@cli.group()
def verify():
    """Pick verification commands"""
    pass


@verify.command("run")
@with_appcontext
def verify_run():
    """Verify open picks on every completed event"""
    click.echo("Verifying pending picks...")
    summary = VerificationService().verify_all_pending_picks()

    click.echo(
        f"✅ Verified {summary['picks_verified']} picks across "
        f"{summary['events_processed']} events"
    )
    if summary["events_failed"]:
        click.echo(f"❌ {summary['events_failed']} events failed, see the logs")


@verify.command("event")
@click.argument("event_id", type=int)
@with_appcontext
def verify_event(event_id):
    """Verify open picks on one completed event"""
    event = db.session.get(Event, event_id)
    if event is None:
        click.echo(f"❌ Event {event_id} not found!")
        return

    if not event.is_completed:
        click.echo(f"⚠️  Event {event_id} is {event.status}, nothing to verify")
        return

    try:
        verified = VerificationService().verify_picks_for_event(event_id)
        click.echo(f"✅ Verified {verified} picks for {event.event_name}")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error verifying event: {str(e)}")
        logging.error(f"Verification of event {event_id} failed - SQL error: {e}")


# Stats Commands
@cli.group()
def stats():
    """Capper stats commands"""
    pass


@stats.command("recompute")
@click.option("--capper-id", type=int, help="Only recompute this capper")
@with_appcontext
def stats_recompute(capper_id):
    """Rebuild capper stats from verified picks"""
    service = VerificationService()

    if capper_id is not None:
        result = service.recompute_capper_stats(capper_id)
        if result is None:
            click.echo(f"❌ Capper {capper_id} not found!")
            return
        click.echo(
            f"✅ Capper {capper_id}: {result['correct_picks']}/{result['total_picks']} "
            f"correct, win rate {result['win_rate']}, clout {result['clout_score']}"
        )
        return

    recomputed = service.recompute_all_capper_stats()
    click.echo(f"✅ Recomputed stats for {recomputed} cappers")


# Event Commands
@cli.group()
def events():
    """Event data commands"""
    pass


@events.command("fetch")
@with_appcontext
def events_fetch():
    """Fetch upcoming events from the sports data API"""
    click.echo("Fetching upcoming events...")
    success, message = EventSync().fetch_upcoming_events()

    if success:
        click.echo(f"✅ {message}")
    else:
        click.echo(f"❌ {message}")


@events.command("statuses")
@with_appcontext
def events_statuses():
    """Advance event statuses based on time and results"""
    changed = EventSync().update_event_statuses()
    click.echo(f"✅ Updated status of {changed} events")


@events.command("result")
@click.argument("event_id", type=int)
@click.argument("fight_index", type=int)
@click.argument("winner")
@click.argument("method")
@click.option("--round", "round_", type=int, help="Round the fight ended in")
@click.option("--time", "time_", help="Time in the round, e.g. 4:32")
@with_appcontext
def events_result(event_id, fight_index, winner, method, round_, time_):
    """Record a fight result"""
    event = db.session.get(Event, event_id)
    if event is None:
        click.echo(f"❌ Event {event_id} not found!")
        return

    fight = event.fight_at(fight_index)
    if fight is None:
        click.echo(f"❌ Event {event_id} has no fight at index {fight_index}")
        return

    try:
        fight.record_result(winner, method, round=round_, time=time_)
        db.session.commit()
        click.echo(
            f"✅ Recorded {method} result for {fight.fighter1_name} vs "
            f"{fight.fighter2_name}"
        )
    except ValueError as e:
        db.session.rollback()
        click.echo(f"❌ {str(e)}")


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("username")
@click.argument("email")
@click.argument("password")
@click.option("--display-name", help="Display name")
@with_appcontext
def create_admin(username, email, password, display_name=None):
    """Create an admin user"""
    try:
        existing = User.query.filter(
            (User.username == username) | (User.email == email.lower())
        ).first()

        if existing:
            click.echo(
                f"❌ User with username '{username}' or email '{email}' already exists!"
            )
            return

        user = User(
            username=username,
            email=email.lower(),
            is_active=True,
            is_admin=True,
        )
        user.set_display_name(display_name)
        user.set_password(password)

        db.session.add(user)
        db.session.commit()

        click.echo(f"✅ Created admin user '{username}' ({email})")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ User '{username}' already exists!")
        logging.error(f"Admin creation failed - integrity error: {e}")


@user.command()
@click.argument("username")
@with_appcontext
def make_capper(username):
    """Let a user publish picks"""
    user = User.query.filter_by(username=username).first()
    if user is None:
        click.echo(f"❌ User '{username}' not found!")
        return

    if user.is_capper:
        click.echo(f"⚠️  {username} is already a capper")
        return

    user.role = "capper"
    db.session.commit()
    click.echo(f"✅ {username} is now a capper")


@user.command("list")
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        role = "👑" if u.is_admin else ("🎯" if u.is_capper else "👤")
        line = f"  {status} {role} {u.username} ({u.email}) - {u.full_name}"
        if u.is_capper:
            line += f" - clout {u.clout_score}"
        click.echo(line)


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


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    from flask_migrate import init as flask_migrate_init

    flask_migrate_init()
    click.echo("✅ Migrations repository initialized!")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🥊 Clout Application Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    user_count = User.query.filter_by(is_active=True).count()
    capper_count = User.query.filter_by(is_active=True, role="capper").count()
    click.echo(f"👥 Active Users: {user_count} ({capper_count} cappers)")

    upcoming = Event.query.filter(Event.status != "completed").count()
    completed = Event.query.filter_by(status="completed").count()
    click.echo(f"📅 Events: {upcoming} open, {completed} completed")

    open_picks = Pick.query.filter(
        Pick.verified_at.is_(None), Pick.is_active.is_(True)
    ).count()
    verified_picks = Pick.query.filter(Pick.verified_at.isnot(None)).count()
    click.echo(f"🎯 Picks: {open_picks} open, {verified_picks} verified")


if __name__ == "__main__":
    # Commands run jobs in the foreground
    os.environ.setdefault("SCHEDULER_ENABLED", "False")

    from clout import create_app

    app = create_app()
    with app.app_context():
        cli()
