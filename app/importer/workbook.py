# ==============================================================================
# app/importer/workbook.py
# ------------------------------------------------------------------------------
# Opens an uploaded Excel workbook and exposes its sheets as lists of rows.
# ==============================================================================

import io
import logging
import unicodedata
import pandas as pd


class WorkbookError(Exception):
    """Raised when the payload cannot be read as a spreadsheet at all."""


def _normalize_header(header):
    # Excel files produced on different systems mix NFC and NFD Vietnamese text.
    return unicodedata.normalize('NFC', str(header)).strip()


class Workbook:
    """
    Thin wrapper around a pandas ExcelFile.

    Rows are returned as dictionaries mapping the column header to the raw
    cell value. Empty cells become None; everything else is left exactly as
    the spreadsheet engine produced it (int, float, str or datetime).
    """

    def __init__(self, excel_file):
        self._xls = excel_file

    @property
    def sheet_names(self):
        return list(self._xls.sheet_names)

    def has_sheet(self, sheet_name):
        return sheet_name in self._xls.sheet_names

    def rows(self, sheet_name):
        """
        Reads one sheet.

        Args:
            sheet_name (str): The sheet to read, matched verbatim.

        Returns:
            list: One dict per data row. An absent sheet yields an empty list.
        """
        if not self.has_sheet(sheet_name):
            logging.info(f"Sheet '{sheet_name}' not present in workbook; nothing to read.")
            return []

        # dtype=object keeps integer columns with blanks from turning into floats
        df = pd.read_excel(self._xls, sheet_name=sheet_name, dtype=object)
        df.columns = [_normalize_header(col) for col in df.columns]
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict(orient='records')


def read_workbook(payload):
    """
    Opens a workbook from raw bytes.

    Args:
        payload (bytes): The uploaded file contents.

    Returns:
        Workbook: The opened workbook.

    Raises:
        WorkbookError: If the bytes are not a readable spreadsheet.
    """
    try:
        xls = pd.ExcelFile(io.BytesIO(payload), engine='openpyxl')
    except Exception as e:
        logging.error(f"Could not open uploaded workbook: {e}")
        raise WorkbookError(f"The file is not a valid Excel workbook: {e}") from e
    return Workbook(xls)
