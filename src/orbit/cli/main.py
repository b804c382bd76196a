"""
CLI: inspect and serve an application given as MODULE:ATTR.
ATTR may be an Application or a zero-argument factory returning one.
"""
import importlib
import sys
from pathlib import Path
from typing import Optional

import typer

from orbit.core.app import Application
from orbit.core.errors import ConfigurationError

app = typer.Typer(help="Orbit CLI: list routes and run applications.")


def _load(target: str, app_dir: Path) -> Application:
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        typer.echo(f"Expected MODULE:ATTR, got {target!r}", err=True)
        raise typer.Exit(2)
    path = str(app_dir.resolve())
    if path not in sys.path:
        sys.path.insert(0, path)
    try:
        obj = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        typer.echo(f"Cannot load {target}: {exc}", err=True)
        raise typer.Exit(1)
    if not isinstance(obj, Application) and callable(obj):
        obj = obj()
    if not isinstance(obj, Application):
        typer.echo(f"{target} is not an orbit Application", err=True)
        raise typer.Exit(1)
    return obj


@app.command()
def routes(
    target: str = typer.Argument(..., help="Application as MODULE:ATTR (e.g. main:app)"),
    app_dir: Path = typer.Option(Path("."), "--app-dir", help="Directory added to sys.path"),
) -> None:
    """Build the application and print one line per route."""
    application = _load(target, app_dir)
    try:
        bound = application.routes
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1)
    for route in bound:
        typer.echo(f"POST {route.path}  -> {route.action.qualname} [{route.action.kind}]")


@app.command()
def run(
    target: str = typer.Argument(..., help="Application as MODULE:ATTR (e.g. main:app)"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default from options.addr)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default from options.addr)"),
    app_dir: Path = typer.Option(Path("."), "--app-dir", help="Directory added to sys.path"),
) -> None:
    """Serve the application with uvicorn."""
    application = _load(target, app_dir)
    try:
        application.run(host=host, port=port)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the orbit console command."""
    app()


if __name__ == "__main__":
    main()
