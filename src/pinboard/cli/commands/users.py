"""User administration commands."""

import click

from pinboard.auth.directory import find_by_username
from pinboard.auth.models import USER_ROLES
from pinboard.cli.base import CliCommand
from pinboard.errors import UserNotFound


@click.command(name='set-role')
@click.argument('username')
@click.argument('role', type=click.Choice(USER_ROLES))
@click.option('--database-url', default=None, help='Override DATABASE_URL for this run')
def set_role_command(username: str, role: str, database_url: str):
    """Promote or demote USERNAME to ROLE.

    This is the only way to create an administrator. When several accounts
    share a username the oldest one is changed, matching public lookups."""
    cmd = SetRoleCommand(username, role, database_url)
    cmd.run()


class SetRoleCommand(CliCommand):
    """Command to change a user's role."""

    def __init__(self, username: str, role: str, database_url: str = None):
        super().__init__(database_url)
        self.username = username
        self.role = role

    def run(self):
        self.setup_db()
        try:
            try:
                user = find_by_username(self.db, self.username)
            except UserNotFound:
                raise click.ClickException(f"User {self.username} not found")

            if user.role == self.role:
                click.echo(f"{user.username} is already {self.role}")
                return user
            previous = user.role
            user.role = self.role
            self.db.commit()
            click.echo(f"{user.username}: {previous} -> {self.role}")
            return user
        finally:
            self.cleanup_db()
