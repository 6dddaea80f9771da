"""CLI tools for platform administration."""

import logging

import click

from app.core.config import settings
from app.core.errors import DomainError
from app.core.permissions import get_role_capabilities
from app.core.security import create_access_token
from app.db.enums import EntityKind, InvestigatorStatus, ModerationAction, Role
from app.db.session import SessionLocal
from app.schemas.auth import CallerContext
from app.services import investigator_service, user_service
from app.services.audit_service import AuditRecorder
from app.services.moderation_service import moderate
from app.utils.pagination import PaginationParams, MAX_PER_PAGE


@click.group()
def cli():
    """Lira CLI tools."""
    logging.basicConfig(level=settings.LOG_LEVEL)


@cli.command()
@click.option("--email", required=True, help="Account email")
@click.option("--name", default=None, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.CUSTOMER.value,
    show_default=True,
    help="Account role",
)
def create_user(email: str, name: str | None, role: str):
    """
    Create an account and the profile its role implies.

    Example:
        python -m app.cli create-user --email admin@lira.test --role admin
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(db, email, Role(role), name)
        click.echo(f"✓ Created {role} user: {user.email}")
        click.echo(f"  ID: {user.id}")
        if user.investigator_profile is not None:
            click.echo(f"  Investigator profile: {user.investigator_profile.id} (pending)")
        if user.customer_profile is not None:
            click.echo(f"  Customer profile: {user.customer_profile.id}")
    except DomainError as e:
        db.rollback()
        click.echo(f"❌ {e.message}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Live account email")
@click.option("--hours", default=None, type=int, help="Token lifetime in hours")
def issue_token(email: str, hours: int | None):
    """Print a bearer token for a live account."""
    db = SessionLocal()
    try:
        user = user_service.get_live_user_by_email(db, email)
        if not user:
            click.echo(f"❌ No live user with email {email}")
            return
        click.echo(create_access_token(user.id, user.role, expires_hours=hours))
    finally:
        db.close()


@cli.command()
@click.option(
    "--status",
    "status_filter",
    type=click.Choice([s.value for s in InvestigatorStatus]),
    default=None,
    help="Filter by review status",
)
def list_investigators(status_filter: str | None):
    """List non-deleted investigator profiles."""
    db = SessionLocal()
    try:
        status = InvestigatorStatus(status_filter) if status_filter else None
        items, total = investigator_service.list_investigators(
            db, status, PaginationParams(page=1, per_page=MAX_PER_PAGE)
        )
        click.echo(f"{total} investigator(s)")
        for profile in items:
            click.echo(f"  {profile.id}\t{profile.status}\t{profile.user.email}")
    finally:
        db.close()


@cli.command()
@click.option("--id", "investigator_id", required=True, type=int, help="Investigator profile ID")
@click.option("--admin-email", required=True, help="Email of the acting admin")
@click.option("--note", default=None, help="Review note")
def approve_investigator(investigator_id: int, admin_email: str, note: str | None):
    """Approve a pending investigator (same rules and audit as the API)."""
    db = SessionLocal()
    try:
        admin = user_service.get_live_user_by_email(db, admin_email)
        if not admin or admin.role != Role.ADMIN.value:
            click.echo(f"❌ {admin_email} is not a live admin")
            return
        caller = CallerContext(
            user_id=admin.id,
            role=Role.ADMIN,
            email=admin.email,
            name=admin.name,
            capabilities=get_role_capabilities(Role.ADMIN),
        )
        result = moderate(
            db,
            caller,
            EntityKind.INVESTIGATOR,
            investigator_id,
            ModerationAction.APPROVE,
            note=note,
            recorder=AuditRecorder(),
        )
        click.echo(f"✓ Investigator {investigator_id} approved")
        click.echo(f"  Status: {result.entity.status}")
    except DomainError as e:
        click.echo(f"❌ {e.code}: {e.message}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
