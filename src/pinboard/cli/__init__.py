"""Pinboard CLI entry point with lazy command registration."""

from __future__ import annotations

import logging

import click

from pinboard.settings import settings

_COMMANDS_REGISTERED = False


def _register_commands_once() -> None:
    global _COMMANDS_REGISTERED
    if _COMMANDS_REGISTERED:
        return

    from .commands import database, serve, users

    cli.add_command(database.init_db_command, name="init-db")
    cli.add_command(database.prune_sessions_command, name="prune-sessions")
    cli.add_command(users.set_role_command, name="set-role")
    cli.add_command(serve.serve_command, name="serve")

    _COMMANDS_REGISTERED = True


class _LazyCLIGroup(click.Group):
    def list_commands(self, ctx):
        _register_commands_once()
        return super().list_commands(ctx)

    def get_command(self, ctx, cmd_name):
        _register_commands_once()
        return super().get_command(ctx, cmd_name)


@click.group(cls=_LazyCLIGroup)
def cli():
    """Pinboard CLI for database setup and user administration."""
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    cli()
