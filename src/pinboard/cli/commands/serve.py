"""Run the API server."""

import click

from pinboard.settings import settings


@click.command(name='serve')
@click.option('--host', default=None, help='Bind address (defaults to API_HOST)')
@click.option('--port', default=None, type=int, help='Port (defaults to API_PORT)')
@click.option('--reload/--no-reload', default=None, help='Auto-reload on code changes (defaults to DEBUG)')
def serve_command(host: str, port: int, reload: bool):
    """Serve the API with uvicorn."""
    import uvicorn

    reload = settings.debug if reload is None else reload
    uvicorn.run(
        "pinboard.api:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        workers=1 if reload else settings.api_workers,
        reload=reload,
    )
