"""Command-line interface for Gatekeep.

This module provides the CLI commands for running and managing
the Gatekeep service.
"""

import asyncio
import uuid
from pathlib import Path
from typing import NoReturn

import click
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError

from gatekeep.core.config import get_settings
from gatekeep.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version="0.1.0", prog_name="Gatekeep")
def cli() -> None:
    """Gatekeep - credential and session lifecycle service.

    Settings are read from GATEKEEP_* environment variables and .env.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the Gatekeep server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting Gatekeep server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "gatekeep.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates all database tables. Use this only in development.
    In production, use migrations instead.
    """
    from gatekeep.infrastructure.persistence.database import DatabaseManager

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        db = DatabaseManager(settings)
        try:
            if db.is_sqlite and ":memory:" not in settings.database_url:
                Path(settings.database_url.split(":///")[-1]).parent.mkdir(
                    parents=True, exist_ok=True
                )
            await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("keys"),
    show_default=True,
    help="Directory to write the keypair to",
)
@click.option("--key-size", type=int, default=2048, show_default=True, help="RSA key size")
@click.option("--force", is_flag=True, help="Overwrite existing key files")
def generate_keypair(out_dir: Path, key_size: int, force: bool) -> None:
    """Generate an RSA keypair for signing access tokens."""
    from gatekeep.infrastructure.auth import KeyMaterial

    private_path = out_dir / "jwt_private.pem"
    public_path = out_dir / "jwt_public.pem"

    if not force and (private_path.exists() or public_path.exists()):
        click.echo(f"Error: key files already exist in {out_dir}. Use --force.", err=True)
        raise SystemExit(1)

    material = KeyMaterial.generate(key_size=key_size)
    out_dir.mkdir(parents=True, exist_ok=True)
    private_path.write_text(material.private_pem())
    private_path.chmod(0o600)
    public_path.write_text(material.public_pem())

    click.echo(
        f"\nKeypair written.\n"
        f"  Private key: {private_path}\n"
        f"  Public key:  {public_path}\n"
        f"\nSet these in your environment:\n"
        f"  GATEKEEP_JWT_PRIVATE_KEY_PATH={private_path}\n"
        f"  GATEKEEP_JWT_PUBLIC_KEY_PATH={public_path}\n"
    )


@cli.command()
@click.option("--email", type=str, default=None, help="Staff email (prompts if not provided)")
@click.option("--name", type=str, default=None, help="Display name")
@click.option("--role", type=str, default="support", show_default=True, help="Staff role label")
@click.option(
    "--password",
    type=str,
    default=None,
    help="Staff password (prompts if not provided)",
)
def create_staff(email: str | None, name: str | None, role: str, password: str | None) -> None:
    """Create an internal staff user.

    Staff users cannot self-register. They log in through the same endpoint
    as external users.
    """
    from gatekeep.infrastructure.auth import PasswordHasher
    from gatekeep.infrastructure.persistence.database import DatabaseManager
    from gatekeep.infrastructure.persistence.models import InternalUserModel
    from gatekeep.infrastructure.persistence.repositories import InternalUserRepository
    from gatekeep.infrastructure.persistence.timestamps import utcnow

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    if email is None:
        email = click.prompt("Staff email", type=str)
    if "@" not in email or "." not in email.split("@")[-1]:
        click.echo("Error: Invalid email format", err=True)
        raise SystemExit(1)

    if password is None:
        password = click.prompt("Staff password", hide_input=True, confirmation_prompt=True)
    if len(password) < 8:
        click.echo("Error: Password must be at least 8 characters", err=True)
        raise SystemExit(1)

    hasher = PasswordHasher.from_settings(settings)

    async def create() -> str:
        db = DatabaseManager(settings)
        try:
            async with db.session() as session:
                now = utcnow()
                user = InternalUserModel(
                    id=str(uuid.uuid4()),
                    email=email,
                    password_hash=await hasher.hash_async(password),
                    name=name,
                    role=role,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
                await InternalUserRepository(session).create(user)
                await session.commit()
                return user.id
        finally:
            await db.disconnect()

    try:
        user_id = asyncio.run(create())
    except IntegrityError:
        click.echo(f"Error: a staff user with email {email} already exists", err=True)
        raise SystemExit(1)

    logger.info("Staff user created via CLI", user_id=user_id, role=role)
    click.echo(
        f"\nStaff user created successfully!\n"
        f"  User ID: {user_id}\n"
        f"  Email:   {email}\n"
        f"  Role:    {role}\n"
    )


@cli.command()
def info() -> None:
    """Display Gatekeep configuration and system information."""
    settings = get_settings()
    database_url = make_url(settings.database_url).render_as_string(hide_password=True)

    click.echo(f"""
Gatekeep v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}
  Workers:      {settings.workers}

Database:
  URL:          {database_url}
  Pool Size:    {settings.db_pool_size}
  Echo:         {settings.db_echo}

Tokens:
  Access TTL:   {settings.access_token_ttl}
  Refresh TTL:  {settings.refresh_token_ttl_days} days
  Reset TTL:    {settings.password_reset_ttl_minutes} minutes
  Verify TTL:   {settings.email_verification_ttl_hours} hours

Email:
  Provider:     {settings.email_provider}
  From:         {settings.email_from}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `gatekeep` command is run
    or when using `python -m gatekeep`.
    """
    cli()


if __name__ == "__main__":
    main()
