import click
from flask import current_app
from flask.cli import with_appcontext
from muddiest.extensions import db
from muddiest.models.course import Course
from muddiest.services import courses as svc_courses
from muddiest.services import sessions as svc_sessions
from muddiest.services import tokens
from muddiest.services.admission import prune_stale_rate_limits
from muddiest.services.errors import ValidationError
from muddiest.observability import log_event

@click.group()
def courses():
    """Course management."""

@courses.command("create")
@click.option("--name", required=True)
@click.option("--code", required=True)
@with_appcontext
def courses_create(name, code):
    try:
        course = svc_courses.create_course(db.session, {"name": name, "code": code})
    except ValidationError as e:
        raise click.ClickException(str(e))
    db.session.commit()
    click.echo(f"Course created id={course.id} code={course.code}")

@click.group()
def sessions():
    """Class session (daily link) ops."""

@sessions.command("create")
@click.option("--course-code", required=True)
@with_appcontext
def sessions_create(course_code):
    course = db.session.query(Course).filter(db.func.lower(Course.code) == course_code.strip().lower()).one_or_none()
    if not course:
        raise click.ClickException(f"Course {course_code!r} not found")
    cs, created = svc_sessions.create_session(db.session, course.id)
    db.session.commit()
    base = current_app.config.get("APP_BASE_URL", "").rstrip("/")
    state = "created" if created else "existing"
    click.echo(f"Session {state}: id={cs.id} expires_at={cs.expires_at.isoformat()} link={base}/class/{cs.access_token}")

@sessions.command("sweep")
@with_appcontext
def sessions_sweep():
    changed = svc_sessions.sweep_expired(db.session)
    db.session.commit()
    log_event(current_app, "class_sessions_swept", deactivated=changed)
    click.echo(f"Deactivated {changed} expired session(s)")

@click.group()
def ratelimits():
    """Submission rate-limit bookkeeping."""

@ratelimits.command("prune")
@with_appcontext
def ratelimits_prune():
    # Sweep first so sessions that just expired count as stale
    svc_sessions.sweep_expired(db.session)
    deleted = prune_stale_rate_limits(db.session)
    db.session.commit()
    log_event(current_app, "ratelimits_pruned", deleted=deleted)
    click.echo(f"Pruned {deleted} rate-limit row(s)")

@click.group()
def owner():
    """Feature-board owner tokens."""

@owner.command("token")
@click.option("--label", required=True, help="Who the token is for (shown in audit logs)")
@with_appcontext
def owner_token(label):
    click.echo(tokens.generate(tokens.KIND_OWNER, label))

def register_cli(app):
    app.cli.add_command(courses)
    app.cli.add_command(sessions)
    app.cli.add_command(ratelimits)
    app.cli.add_command(owner)
