# ==============================================================================
# app/importer/mappers.py
# ------------------------------------------------------------------------------
# Pure transformations of one spreadsheet row (plus resolved foreign keys)
# into the keyword arguments of an IncomeRecord / ExpenseRecord.
# ==============================================================================

from app.importer import cells
from app.importer.schema import (
    COL_MONTH, COL_YEAR, COL_CLASSES, COL_STUDENTS, COL_REVENUE,
    COL_CATEGORY, COL_ITEM, COL_POSITION, COL_CONTRACT_TYPE, COL_HOURS,
    COL_UNIT_PRICE, COL_AMOUNT, COL_KILOMETERS, COL_TRAVEL_ALLOWANCE,
    COL_RESPONSIBLE, COL_STATUS, COL_TOTAL, COL_NOTES
)


def resolve_year(row, default_year):
    """
    Accounting year of a row: an explicit year column wins, then the year
    of a date-formatted month cell, then the batch default.
    """
    year = cells.to_year(row.get(COL_YEAR))
    if year is None:
        year = cells.cell_year(row.get(COL_MONTH))
    return year if year is not None else default_year


def map_income_row(row, center_id, program_id, default_year):
    """Builds IncomeRecord fields from a row of the income sheet."""
    return {
        'month': cells.normalize_month(row.get(COL_MONTH)),
        'year': resolve_year(row, default_year),
        'center_id': center_id,
        'program_id': program_id,
        'number_of_classes': max(0, cells.to_int(row.get(COL_CLASSES), default=0)),
        'number_of_students': max(0, cells.to_int(row.get(COL_STUDENTS), default=0)),
        'revenue': cells.to_float(row.get(COL_REVENUE), default=0.0),
        'status': cells.to_text(row.get(COL_STATUS)),
        'notes': cells.to_text(row.get(COL_NOTES)),
    }


def map_expense_row(row, center_id, default_year):
    """
    Builds ExpenseRecord fields from a row of the expense sheet.

    Optional numeric columns become None when missing or unreadable. The
    total is taken from its own column when present, otherwise it is the
    amount plus the travel allowance.
    """
    amount = cells.to_float(row.get(COL_AMOUNT), default=0.0)
    travel_allowance = cells.to_float(row.get(COL_TRAVEL_ALLOWANCE), default=None)
    total = cells.to_float(row.get(COL_TOTAL), default=None)
    if total is None:
        total = amount + (travel_allowance or 0.0)

    return {
        'month': cells.normalize_month(row.get(COL_MONTH)),
        'year': resolve_year(row, default_year),
        'center_id': center_id,
        'category': cells.to_text(row.get(COL_CATEGORY)) or '',
        'item': cells.to_text(row.get(COL_ITEM)) or '',
        'position': cells.to_text(row.get(COL_POSITION)),
        'contract_type': cells.to_text(row.get(COL_CONTRACT_TYPE)),
        'hours': cells.to_float(row.get(COL_HOURS), default=None),
        'unit_price': cells.to_float(row.get(COL_UNIT_PRICE), default=None),
        'amount': amount,
        'kilometers': cells.to_float(row.get(COL_KILOMETERS), default=None),
        'travel_allowance': travel_allowance,
        'responsible': cells.to_text(row.get(COL_RESPONSIBLE)),
        'status': cells.to_text(row.get(COL_STATUS)),
        'total': total,
        'notes': cells.to_text(row.get(COL_NOTES)),
    }
