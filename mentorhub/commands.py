import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Role, Subject, User
from .services.accounts import create_mentee, create_mentor
from .services.assignment import assign_unassigned_mentees
from .services.notify import cleanup_group_messages

logger = logging.getLogger(__name__)

DEMO_SUBJECTS = [
    ("CS101", "Programming Fundamentals", 1),
    ("MA101", "Engineering Mathematics I", 1),
    ("CS301", "Data Structures", 3),
    ("CS302", "Database Systems", 3),
]
DEMO_MENTORS = [
    ("Ms Alakananda K", "Computer Science"),
    ("Dr Ravi Kumar", "Computer Science"),
]
DEMO_MENTEES = [
    ("1AB21CS001", "Asha Rao", 1, "A"),
    ("1AB21CS002", "Bharath N", 1, "A"),
    ("1AB21CS003", "Chitra S", 3, "B"),
    ("1AB21CS004", "Dev Patel", 3, "B"),
]


@click.command("seed")
@click.option("--admin-password", default="admin123", show_default=True)
@click.option("--demo", is_flag=True, help="Also create demo subjects, mentors and mentees.")
@with_appcontext
def seed(admin_password, demo):
    """Create the tables and an admin account."""
    db.create_all()
    if User.query.filter_by(username="admin").first() is None:
        admin = User(username="admin", role=Role.ADMIN, name="Administrator")
        admin.set_password(admin_password)
        db.session.add(admin)
        click.echo("Created admin user 'admin'")

    if demo:
        for code, name, semester in DEMO_SUBJECTS:
            if Subject.query.filter_by(code=code).first() is None:
                db.session.add(Subject(code=code, name=name, semester=semester))
        for name, dept in DEMO_MENTORS:
            if User.query.filter_by(role=Role.MENTOR, name=name).first() is None:
                create_mentor(name=name, department=dept,
                              password=current_app.config["DEFAULT_MENTOR_PASSWORD"])
        db.session.flush()
        for usn, name, semester, section in DEMO_MENTEES:
            if User.query.filter_by(username=usn.lower()).first() is None:
                create_mentee(name=name, usn=usn, semester=semester, section=section)
        db.session.flush()
        result = assign_unassigned_mentees(commit=False)
        click.echo(f"Demo data ready, {result['assigned_count']} mentees assigned")
    db.session.commit()


@click.command("assign-mentees")
@with_appcontext
def assign_mentees():
    """Place every unassigned active mentee on a mentor."""
    result = assign_unassigned_mentees()
    click.echo(f"Assigned {result['assigned_count']} mentees across "
               f"{result['mentor_count']} mentors")


@click.command("cleanup-group-messages")
@click.option("--days", type=int, default=None,
              help="Retention window; defaults to GROUP_MESSAGE_RETENTION_DAYS.")
@with_appcontext
def cleanup(days):
    days = days or current_app.config["GROUP_MESSAGE_RETENTION_DAYS"]
    click.echo(f"Deleted {cleanup_group_messages(days)} group messages older than {days} days")


def register_commands(app):
    app.cli.add_command(seed)
    app.cli.add_command(assign_mentees)
    app.cli.add_command(cleanup)
