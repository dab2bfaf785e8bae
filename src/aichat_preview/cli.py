"""CLI entry point for aichat-preview."""

import json
import logging
import os

import click
import uvicorn

from .config import get_log_level
from .pipeline import extract_preview


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: $AICHAT_LOG_LEVEL or INFO).")
def main(log_level: str | None):
    """Chat with a model to generate UI code and preview the result."""
    logging.basicConfig(
        level=getattr(logging, (log_level or get_log_level()).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--db", type=click.Path(dir_okay=False), default=None, help="SQLite database for chat messages.")
def serve(port: int, host: str, db: str | None):
    """Start the web API."""
    if db:
        os.environ["AICHAT_PREVIEW_DB"] = db
    click.echo(f"Starting aichat-preview on http://{host}:{port}")
    uvicorn.run("aichat_preview.server:app", host=host, port=port, reload=False)


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
def extract(source):
    """Print the preview units found in a saved model response (use - for stdin)."""
    result = extract_preview(source.read())
    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
