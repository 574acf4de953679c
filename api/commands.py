"""
Flask CLI commands.

    flask --app api sweep-tokens

Meant to be run from cron or any other scheduler.
"""
import click
from flask import current_app


def register_commands(app):
    @app.cli.command("sweep-tokens")
    def sweep_tokens():
        """Delete expired refresh tokens."""
        count = current_app.extensions["tokens"].sweep()
        click.echo(f"Deleted {count} expired refresh token(s)")
