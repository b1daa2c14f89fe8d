"""Flask CLI commands for account provisioning."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from portfolio.services._shared.errors import ServiceError
from portfolio.services.accounts import AccountService

LOGGER = logging.getLogger(__name__)


@click.group("accounts")
def accounts_cli() -> None:
    """Collection of account management commands."""


@accounts_cli.command("init-admin")
@click.argument("email")
@click.password_option(
    "--password",
    envvar="ADMIN_PASSWORD",
    help="Admin password (prompted when omitted; also read from ADMIN_PASSWORD).",
)
@with_appcontext
def init_admin_command(email: str, password: str) -> None:
    """Create the admin account EMAIL unless it already exists."""
    try:
        user, created = AccountService().ensure_admin(email, password)
    except ServiceError as exc:
        raise click.ClickException(str(exc)) from exc

    if created:
        LOGGER.info("accounts.admin.created", extra={"user_id": user.id})
        click.echo(f"Admin user created: {user.email} (id={user.id})")
    else:
        click.echo(f"User already exists: {user.email} (role={user.role}); nothing changed.")
