# ==============================================================================
# app/__init__.py
# ------------------------------------------------------------------------------
# Application factory for creating and configuring the Flask app instance.
# ==============================================================================

import os
import logging
import click
from flask import Flask
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Initialize extensions globally to be accessible by other modules
db = SQLAlchemy()
migrate = Migrate()

def create_app(config_class=Config):
    """
    Application factory function. Creates and configures the Flask application.

    Args:
        config_class (class): The configuration class to use.

    Returns:
        Flask: The configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    # Configure logging
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    # Ensure the instance folder exists for the SQLite database and archived uploads
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions with the application instance
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints with the application
    from app.main import bp as main_bp
    app.register_blueprint(main_bp)

    @app.cli.command("init-db")
    def init_db():
        """Creates all database tables."""
        db.create_all()
        app.logger.info("Database tables created.")

    @app.cli.command("import-excel")
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--year', type=int, default=None, help='Accounting year for rows without one.')
    def import_excel(path, year):
        """Imports income and expense rows from an Excel workbook."""
        from app.importer.engine import import_workbook
        from app.importer.workbook import WorkbookError

        with open(path, 'rb') as fh:
            payload = fh.read()
        try:
            result = import_workbook(payload, default_year=year)
        except WorkbookError as e:
            raise click.ClickException(str(e))

        click.echo(f"Income imported: {result.income_imported}")
        click.echo(f"Expense imported: {result.expense_imported}")
        if result.errors:
            click.echo(f"Errors ({len(result.errors)}):")
            for error in result.errors[:20]:
                click.echo(f"  - {error}")
            if len(result.errors) > 20:
                click.echo(f"  ... and {len(result.errors) - 20} more")

    app.logger.info('Finance import service startup complete')

    return app
