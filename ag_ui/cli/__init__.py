"""Typer application entry points."""

from ag_ui.cli.main import app, main

__all__ = ["app", "main"]
