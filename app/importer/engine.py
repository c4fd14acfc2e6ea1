# ==============================================================================
# app/importer/engine.py
# ------------------------------------------------------------------------------
# Batch import of income and expense rows from an uploaded workbook.
#
# Every row is resolved, mapped and committed on its own. A failing row is
# rolled back and reported; it never stops the rows after it. There is no
# transaction spanning the batch, so re-importing the same file duplicates
# the rows that already made it in.
# ==============================================================================

import logging
from dataclasses import dataclass, field

from flask import current_app

from app import db
from app.models import IncomeRecord, ExpenseRecord
from app.importer import cells
from app.importer.mappers import map_income_row, map_expense_row
from app.importer.resolver import resolve_center, resolve_program
from app.importer.schema import (
    EXPECTED_SHEETS, INCOME_SHEET, EXPENSE_SHEET, COL_CENTER, COL_PROGRAM
)
from app.importer.workbook import read_workbook

IMPORTED = 'imported'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class RowOutcome:
    """What happened to one spreadsheet row."""
    status: str
    reason: str = None

    @classmethod
    def imported(cls):
        return cls(IMPORTED)

    @classmethod
    def skipped(cls):
        return cls(SKIPPED)

    @classmethod
    def failed(cls, reason):
        return cls(FAILED, reason)


@dataclass
class ImportResult:
    """Running totals of an import call."""
    income_imported: int = 0
    expense_imported: int = 0
    errors: list = field(default_factory=list)

    def record(self, sheet_name, outcome):
        if outcome.status == IMPORTED:
            if sheet_name == INCOME_SHEET:
                self.income_imported += 1
            else:
                self.expense_imported += 1
        elif outcome.status == FAILED:
            self.errors.append(outcome.reason)

    def to_dict(self):
        return {
            'incomeImported': self.income_imported,
            'expenseImported': self.expense_imported,
            'errors': list(self.errors),
        }


# --- Helper Functions ---

def _has_required_fields(row, sheet_name):
    return all(cells.is_present(row.get(col)) for col in EXPECTED_SHEETS[sheet_name]['required_columns'])


def _save_record(record):
    db.session.add(record)
    db.session.commit()


def _import_income_row(row, default_year):
    center = resolve_center(cells.to_text(row.get(COL_CENTER)))
    program = resolve_program(cells.to_text(row.get(COL_PROGRAM)))
    payload = map_income_row(row, center.id, program.id, default_year)
    _save_record(IncomeRecord(**payload))


def _import_expense_row(row, default_year):
    center = resolve_center(cells.to_text(row.get(COL_CENTER)))
    payload = map_expense_row(row, center.id, default_year)
    _save_record(ExpenseRecord(**payload))


ROW_IMPORTERS = {
    INCOME_SHEET: ('Income', _import_income_row),
    EXPENSE_SHEET: ('Expense', _import_expense_row),
}


def process_row(sheet_name, row, excel_row_num, default_year):
    """
    Imports one row and reports the outcome instead of raising.

    Returns:
        RowOutcome: imported, skipped (required field missing) or failed.
    """
    if not _has_required_fields(row, sheet_name):
        logging.debug(f"SKIPPING {sheet_name} row {excel_row_num}: missing a required field.")
        return RowOutcome.skipped()

    label, importer = ROW_IMPORTERS[sheet_name]
    try:
        importer(row, default_year)
    except Exception as e:
        db.session.rollback()
        logging.error(f"{label} row {excel_row_num} could not be imported: {e}", exc_info=True)
        return RowOutcome.failed(f"{label} row error (sheet {sheet_name}, Excel row {excel_row_num}): {e}")

    logging.debug(f"Imported {sheet_name} row {excel_row_num}.")
    return RowOutcome.imported()


# --- Main Import Orchestrator ---

def import_workbook(payload, default_year=None):
    """
    Imports the income and expense sheets of a workbook.

    Args:
        payload (bytes): The raw .xlsx file.
        default_year (int): Year for rows that carry none; falls back to the
            IMPORT_DEFAULT_YEAR setting.

    Returns:
        ImportResult: Counts of imported rows and one message per failed row.

    Raises:
        WorkbookError: If the payload is not a readable workbook.
    """
    if default_year is None:
        default_year = current_app.config['IMPORT_DEFAULT_YEAR']

    logging.info("=" * 80)
    logging.info(f"STARTING EXCEL IMPORT (default year {default_year})")
    logging.info("=" * 80)

    workbook = read_workbook(payload)
    logging.info(f"Workbook opened. Sheets: {workbook.sheet_names}")

    result = ImportResult()
    for sheet_name in (INCOME_SHEET, EXPENSE_SHEET):
        try:
            rows = workbook.rows(sheet_name)
        except Exception as e:
            logging.warning(f"Sheet '{sheet_name}' could not be read: {e}")
            result.errors.append(f"{sheet_name} sheet error: {e}")
            continue

        logging.info(f"--- Processing sheet '{sheet_name}': {len(rows)} rows ---")
        for index, row in enumerate(rows):
            # Header is row 1 in Excel
            excel_row_num = index + 2
            result.record(sheet_name, process_row(sheet_name, row, excel_row_num, default_year))

    logging.info(
        f"--- Import finished. Income: {result.income_imported}, "
        f"Expense: {result.expense_imported}, Errors: {len(result.errors)} ---"
    )
    return result
