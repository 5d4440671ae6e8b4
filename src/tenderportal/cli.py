"""`tenderportal` command: schema management, health checks, admin seeding, server."""

import sys

import click

from .config import settings
from .db import check_database_health, drop_database, get_database_info, get_db_context, init_database
from .exceptions import DomainError
from .logging import get_logger
from .schemas import Actor, UserCreate
from .services import UserDirectoryService
from .storage import get_storage_client

logger = get_logger(__name__)

CLI_ACTOR = Actor(id="cli", role="admin")


@click.group()
@click.version_option(version=settings.app_version)
def main():
    """TenderPortal - tender publication and bidder applications."""
    pass


@main.command()
def init_db():
    """Create the portal tables."""

    try:
        click.echo(f"🗄️ Creating tables on {get_database_info()['url']}...")
        init_database()
        click.echo("✅ Tables ready")
    except Exception as e:
        click.echo(f"❌ Could not create tables: {e}")
        logger.error("Schema creation failed", error=str(e), exc_info=True)
        sys.exit(1)


@main.command()
@click.confirmation_option(prompt="Drop every table? All data will be lost")
def drop_db():
    """Drop the database schema (refused in production)."""

    try:
        drop_database()
        click.echo("✅ Database tables dropped")
    except RuntimeError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)


@main.command()
def health_check():
    """Report database and Spaces connectivity."""

    healthy = True
    if check_database_health():
        db_info = get_database_info()
        click.echo(f"✅ Database ({db_info['backend']}): {db_info['url']}")
    else:
        healthy = False
        click.echo("❌ Database: unreachable")

    if get_storage_client().health_check():
        click.echo(f"✅ Spaces bucket: {settings.spaces.bucket}")
    else:
        healthy = False
        click.echo(f"❌ Spaces bucket {settings.spaces.bucket}: unreachable")

    click.echo(f"   environment={settings.environment} max_upload={settings.upload.max_file_size_mb}MB")
    if not healthy:
        sys.exit(1)


@main.command()
@click.option('--email', prompt=True, help='Admin email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--department', default=None, help='Department')
@click.option('--position', default=None, help='Position')
def create_admin(email: str, name: str, password: str, department, position):
    """Create an administrator account."""

    payload = UserCreate(
        email=email,
        name=name,
        password=password,
        role="admin",
        department=department,
        position=position,
    )

    try:
        with get_db_context() as session:
            user = UserDirectoryService(session).create_user(CLI_ACTOR, payload)
            user_id, user_email = user.id, user.email
    except DomainError as e:
        click.echo(f"❌ Could not create admin: {e.message}")
        sys.exit(1)

    click.echo(f"✅ Admin created: {user_email} ({user_id})")


@main.command()
@click.option('--host', default='0.0.0.0', help='Bind address')
@click.option('--port', default=8000, type=int, help='Port')
@click.option('--reload/--no-reload', default=None, help='Auto-reload (defaults to debug setting)')
def serve(host: str, port: int, reload):
    """Run the API server with uvicorn."""

    import uvicorn

    click.echo(f"🚀 Starting {settings.app_name} API on {host}:{port}")

    uvicorn.run(
        "tenderportal.api.main:app",
        host=host,
        port=port,
        reload=settings.debug if reload is None else reload,
        log_level=settings.monitoring.log_level.lower(),
    )


if __name__ == '__main__':
    main()
