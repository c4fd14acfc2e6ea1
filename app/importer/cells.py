# ==============================================================================
# app/importer/cells.py
# ------------------------------------------------------------------------------
# Typed parsing of raw spreadsheet cells.
#
# A spreadsheet column has no fixed type: the same "month" column can hold a
# number typed by a person, a date serial that Excel auto-formatted, a date
# object or free text. Every raw value is first classified into a Cell and
# each parser states its own fallback.
# ==============================================================================

import math
import numbers
import re
from collections import namedtuple
from datetime import date, datetime, timedelta

from app.importer.schema import MIN_YEAR, MAX_YEAR

ABSENT = 'absent'
NUMBER = 'number'
TEXT = 'text'
DATE = 'date'

Cell = namedtuple('Cell', ['kind', 'value'])

# Serial 25569 is 1970-01-01 in the 1899-12-30 based spreadsheet calendar.
UNIX_EPOCH = datetime(1970, 1, 1)
UNIX_EPOCH_SERIAL = 25569

_INT_PREFIX = re.compile(r'^[+-]?\d+')
_FLOAT_PREFIX = re.compile(r'^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')


def classify(value):
    """Classifies a raw cell value into a Cell(kind, value)."""
    if value is None:
        return Cell(ABSENT, None)
    if isinstance(value, bool):
        return Cell(TEXT, str(value))
    if isinstance(value, (datetime, date)):
        return Cell(DATE, value)
    if isinstance(value, numbers.Real):
        number = float(value) if not isinstance(value, numbers.Integral) else int(value)
        if isinstance(number, float) and math.isnan(number):
            return Cell(ABSENT, None)
        return Cell(NUMBER, number)
    text = str(value).strip()
    if not text:
        return Cell(ABSENT, None)
    return Cell(TEXT, text)


def is_present(value):
    return classify(value).kind != ABSENT


def _clean_numeric_text(text):
    return text.replace(',', '').replace(' ', '')


def to_int(value, default=0):
    """
    Integer value of a cell. Text is read up to the first non-digit, so
    "3 lớp" gives 3. Returns `default` when nothing can be read.
    """
    cell = classify(value)
    try:
        if cell.kind == NUMBER:
            return int(cell.value)
        if cell.kind == TEXT:
            match = _INT_PREFIX.match(_clean_numeric_text(cell.value))
            if match:
                return int(match.group(0))
    except (ValueError, OverflowError):
        pass
    return default


def to_float(value, default=0.0):
    """Float value of a cell; thousands separators are ignored."""
    cell = classify(value)
    if cell.kind == NUMBER:
        number = float(cell.value)
    elif cell.kind == TEXT:
        match = _FLOAT_PREFIX.match(_clean_numeric_text(cell.value))
        if not match:
            return default
        number = float(match.group(0))
    else:
        return default
    if math.isinf(number):
        return default
    return number


def to_text(value):
    """Trimmed text of a cell, or None. 3.0 renders as "3"."""
    cell = classify(value)
    if cell.kind == ABSENT:
        return None
    if cell.kind == NUMBER and isinstance(cell.value, float) and cell.value.is_integer():
        return str(int(cell.value))
    if cell.kind == DATE:
        return cell.value.isoformat()
    return str(cell.value).strip()


def serial_to_datetime(serial):
    """Converts a spreadsheet date serial (day 0 = 1899-12-30) to a datetime."""
    return UNIX_EPOCH + timedelta(days=serial - UNIX_EPOCH_SERIAL)


def _clamp_month(month):
    return max(1, min(12, month))


def normalize_month(value):
    """
    Turns a raw "month" cell into a calendar month 1-12.

    Numbers above 12 are date serials and give the month of that date.
    Smaller numbers and numeric text are clamped into range. Anything that
    cannot be read gives 1.
    """
    cell = classify(value)
    if cell.kind == DATE:
        return cell.value.month
    if cell.kind == NUMBER:
        try:
            if cell.value > 12:
                return serial_to_datetime(cell.value).month
            return _clamp_month(int(cell.value))
        except (OverflowError, ValueError):
            return 1
    if cell.kind == TEXT:
        return _clamp_month(to_int(cell.value, default=1) or 1)
    return 1


def cell_year(value):
    """
    Year carried by a date-like cell (date object or date serial), if it is
    a plausible accounting year. Plain month numbers carry no year.
    """
    cell = classify(value)
    year = None
    if cell.kind == DATE:
        year = cell.value.year
    elif cell.kind == NUMBER and cell.value > 12:
        try:
            year = serial_to_datetime(cell.value).year
        except (OverflowError, ValueError):
            return None
    if year is not None and MIN_YEAR <= year <= MAX_YEAR:
        return year
    return None


def to_year(value):
    """Year typed into a dedicated year column, or None if implausible."""
    year = to_int(value, default=None)
    if year is not None and MIN_YEAR <= year <= MAX_YEAR:
        return year
    return cell_year(value)
