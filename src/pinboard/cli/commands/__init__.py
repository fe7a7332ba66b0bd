"""CLI commands package."""

from . import (
    database,
    serve,
    users,
)

__all__ = [
    'database',
    'serve',
    'users',
]
