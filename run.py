# ==============================================================================
# run.py
# ------------------------------------------------------------------------------
# The main entry point to launch the Flask application.
# ==============================================================================

from app import create_app, db
from app.models import Center, Program, IncomeRecord, ExpenseRecord

# Create the Flask application instance using the factory function
app = create_app()

@app.shell_context_processor
def make_shell_context():
    """Provides a shell context for the `flask shell` command."""
    return {
        'db': db,
        'Center': Center,
        'Program': Program,
        'IncomeRecord': IncomeRecord,
        'ExpenseRecord': ExpenseRecord
    }

if __name__ == '__main__':
    app.run(debug=True)
