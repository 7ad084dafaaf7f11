"""Command-line interface for shortsfeed."""

from shortsfeed.cli.main import CLIApplication, create_app, main

__all__ = ["CLIApplication", "create_app", "main"]
