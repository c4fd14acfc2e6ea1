# ==============================================================================
# app/importer/schema.py
# ------------------------------------------------------------------------------
# Defines the expected structure of the uploaded Excel workbook.
# Sheet names and column headers are matched verbatim.
# ==============================================================================

INCOME_SHEET = 'DATA'
EXPENSE_SHEET = 'CHI'

# --- Columns shared by both sheets ---
COL_MONTH = 'THÁNG'
COL_YEAR = 'NĂM'
COL_CENTER = 'TRUNG TÂM'

# --- Income sheet ---
COL_PROGRAM = 'CHƯƠNG TRINH'
COL_CLASSES = 'SỐ LỚP'
COL_STUDENTS = 'SỐ HỌC VIÊN'
COL_REVENUE = 'DOANH THU'

# --- Expense sheet ---
COL_CATEGORY = 'KHOẢN CHI'
COL_ITEM = 'HẠNG MỤC'
COL_POSITION = 'CHỨC VỤ'
COL_CONTRACT_TYPE = 'LOẠI HD'
COL_HOURS = 'SỐ GIỜ'
COL_UNIT_PRICE = 'ĐƠN GIÁ'
COL_AMOUNT = 'THÀNH TIỀN'
COL_KILOMETERS = 'SỐ KM'
COL_TRAVEL_ALLOWANCE = 'PC DI CHUYỂN'
COL_RESPONSIBLE = 'PHỤ TRÁCH'
COL_STATUS = 'TÌNH TRẠNG'
COL_TOTAL = 'TỔNG'
COL_NOTES = 'GHI CHÚ'

EXPECTED_SHEETS = {
    INCOME_SHEET: {
        # A row lacking any of these is skipped without an error.
        'required_columns': [COL_MONTH, COL_CENTER, COL_PROGRAM],
        'optional_columns': [COL_YEAR, COL_CLASSES, COL_STUDENTS, COL_REVENUE, COL_STATUS, COL_NOTES],
    },
    EXPENSE_SHEET: {
        'required_columns': [COL_MONTH, COL_CENTER, COL_CATEGORY, COL_ITEM],
        'optional_columns': [
            COL_YEAR, COL_POSITION, COL_CONTRACT_TYPE, COL_HOURS, COL_UNIT_PRICE,
            COL_AMOUNT, COL_KILOMETERS, COL_TRAVEL_ALLOWANCE, COL_RESPONSIBLE,
            COL_STATUS, COL_TOTAL, COL_NOTES
        ],
    },
}

# Years outside this window are not trusted when read from a cell.
MIN_YEAR = 2000
MAX_YEAR = 2100
