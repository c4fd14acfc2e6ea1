# tests/conftest.py

import io
import pytest
import pandas as pd

@pytest.fixture
def app_with_db(tmp_path):
    """
    Creates a new app instance per test with an empty in-memory database,
    and yields the app within an application context.
    """
    from app import create_app, db
    from config import TestConfig

    app = create_app(TestConfig)
    app.config.update({"UPLOAD_FOLDER": str(tmp_path / "uploads")})

    with app.app_context():
        db.create_all()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()

def build_workbook(sheets):
    """
    Writes {sheet name: list of row dicts} to .xlsx bytes, the same way a
    user's spreadsheet would arrive in an upload.
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()

@pytest.fixture
def make_workbook():
    return build_workbook
