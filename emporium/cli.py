# Commands (run with the package installed):
# - emporium init-db
#   Create every table on DATABASE_URL (idempotent).
# - emporium create-admin --email ops@emporium.io --password "secret" --role GOD
#   Provision an admin operator. Admins are never created through the API.
# - emporium create-category --name "T-Shirts" --description "Cotton tees"
#   Add a product category.

import click

from emporium.config import get_settings
from emporium.db import build_engine, build_session_factory, create_schema
from emporium.errors import AppError
from emporium.models import ADMIN_ROLES
from emporium.services import auth_service
from emporium.services.catalog_service import CatalogService


def _open_session():
    engine = build_engine(get_settings().DATABASE_URL)
    create_schema(engine)
    return build_session_factory(engine)()


@click.group()
def cli():
    """Emporium maintenance commands."""


@cli.command("init-db")
def init_db():
    """Create all tables."""
    engine = build_engine(get_settings().DATABASE_URL)
    create_schema(engine)
    click.echo("PASS Schema created")


@cli.command("create-admin")
@click.option("--email", prompt=True, help="Admin login email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Admin password")
@click.option(
    "--role",
    type=click.Choice(ADMIN_ROLES, case_sensitive=False),
    default="HELPER",
    show_default=True,
    help="Admin role",
)
def create_admin(email, password, role):
    """Provision an admin operator."""
    db = _open_session()
    try:
        admin = auth_service.create_admin(db, email, password, role)
    except AppError as exc:
        raise click.ClickException(exc.message)
    finally:
        db.close()
    click.echo(f"PASS Created admin {admin.email} (ID: {admin.id}, role: {admin.role})")


@cli.command("create-category")
@click.option("--name", prompt=True, help="Category name")
@click.option("--description", default=None, help="Optional description")
def create_category(name, description):
    """Add a product category."""
    db = _open_session()
    try:
        category = CatalogService(db).create_category(name, description)
    except AppError as exc:
        raise click.ClickException(exc.message)
    finally:
        db.close()
    click.echo(f"PASS Created category {category.name} (ID: {category.id})")


if __name__ == "__main__":
    cli()
