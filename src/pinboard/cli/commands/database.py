"""Database maintenance commands."""

import click

from pinboard.auth.sessions import prune_expired_sessions
from pinboard.cli.base import CliCommand
from pinboard.database import init_db
from pinboard.settings import settings
from pinboard.storage import create_storage_provider


@click.command(name='init-db')
@click.option('--database-url', default=None, help='Override DATABASE_URL for this run')
def init_db_command(database_url: str):
    """Create missing tables and the uploads directory.

    Safe to run repeatedly; existing tables and files are left alone."""
    cmd = InitDbCommand(database_url)
    cmd.run()


class InitDbCommand(CliCommand):
    """Command to create the schema."""

    def run(self):
        self.setup_db()
        try:
            init_db(bind=self.engine)
            uploads_root = create_storage_provider(settings).ensure_root()
            click.echo("Tables ready")
            click.echo(f"Uploads directory: {uploads_root}")
        finally:
            self.cleanup_db()


@click.command(name='prune-sessions')
@click.option('--database-url', default=None, help='Override DATABASE_URL for this run')
def prune_sessions_command(database_url: str):
    """Delete expired server-side sessions."""
    cmd = PruneSessionsCommand(database_url)
    cmd.run()


class PruneSessionsCommand(CliCommand):
    """Command to remove expired session rows."""

    def run(self) -> int:
        self.setup_db()
        try:
            removed = prune_expired_sessions(self.db)
            click.echo(f"Removed {removed} expired session(s)")
            return removed
        finally:
            self.cleanup_db()
