"""
Flask CLI commands:
- flask create-db: create tables using the configured database
- flask drop-db: drop all tables (use with caution)
- flask expire-pending: fail reports stuck in pending
- flask normalize-user-types: rename legacy 'patient' accounts to 'user'
"""
import click
from flask import Flask

from app.extensions import db


def register_cli(app: Flask) -> None:

    @app.cli.command("create-db")
    def create_db_command():
        """Create database tables if they do not exist."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("drop-db")
    @click.confirmation_option(prompt="Drop all tables?")
    def drop_db_command():
        """Drop all database tables. This is destructive."""
        db.drop_all()
        click.echo("Database tables dropped.")

    @app.cli.command("expire-pending")
    @click.option("--max-age", type=int, default=None,
                  help="Seconds a report may stay pending (default: ANALYSIS_STALE_AFTER).")
    def expire_pending_command(max_age):
        """Move reports stuck in pending to error."""
        from app.services.report_service import expire_stale_reports
        expired = expire_stale_reports(max_age)
        click.echo(f"Expired {expired} pending report(s).")

    @app.cli.command("normalize-user-types")
    def normalize_user_types_command():
        """Rename legacy 'patient' accounts to 'user'."""
        from app.models import User
        from app.models.user import LEGACY_USER_TYPES
        updated = 0
        for legacy, current in LEGACY_USER_TYPES.items():
            updated += User.query.filter_by(user_type=legacy).update(
                {User.user_type: current}, synchronize_session=False
            )
        db.session.commit()
        click.echo(f"Updated {updated} user(s).")
