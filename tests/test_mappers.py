# tests/test_mappers.py

from app.importer.mappers import map_income_row, map_expense_row, resolve_year

DEFAULT_YEAR = 2024

def test_income_row_mapping():
    row = {
        'THÁNG': 3, 'TRUNG TÂM': 'Hanoi Center', 'CHƯƠNG TRINH': 'IELTS Prep',
        'SỐ LỚP': 3, 'SỐ HỌC VIÊN': '40', 'DOANH THU': '50,000,000'
    }
    payload = map_income_row(row, center_id=7, program_id=9, default_year=DEFAULT_YEAR)

    assert payload == {
        'month': 3, 'year': 2024, 'center_id': 7, 'program_id': 9,
        'number_of_classes': 3, 'number_of_students': 40, 'revenue': 50000000.0,
        'status': None, 'notes': None,
    }

def test_income_unparseable_numbers_fall_back_to_zero():
    row = {'THÁNG': '5', 'SỐ LỚP': 'nhiều', 'SỐ HỌC VIÊN': None, 'DOANH THU': 'chưa có'}
    payload = map_income_row(row, 1, 1, DEFAULT_YEAR)

    assert payload['number_of_classes'] == 0
    assert payload['number_of_students'] == 0
    assert payload['revenue'] == 0.0

def test_income_counts_are_never_negative():
    payload = map_income_row({'THÁNG': 1, 'SỐ LỚP': -2, 'SỐ HỌC VIÊN': '-10'}, 1, 1, DEFAULT_YEAR)

    assert payload['number_of_classes'] == 0
    assert payload['number_of_students'] == 0

def test_year_sources_in_order():
    # explicit year column
    assert resolve_year({'THÁNG': 45658, 'NĂM': 2023}, DEFAULT_YEAR) == 2023
    # date serial in the month column
    assert resolve_year({'THÁNG': 45658}, DEFAULT_YEAR) == 2025
    # plain month number
    assert resolve_year({'THÁNG': 4}, DEFAULT_YEAR) == DEFAULT_YEAR
    assert resolve_year({'THÁNG': 4, 'NĂM': 'n/a'}, DEFAULT_YEAR) == DEFAULT_YEAR

def test_expense_total_falls_back_to_amount_plus_travel():
    row = {'THÁNG': 2, 'KHOẢN CHI': 'Lương', 'HẠNG MỤC': 'Giáo viên',
           'THÀNH TIỀN': 100000, 'PC DI CHUYỂN': 20000}
    payload = map_expense_row(row, center_id=1, default_year=DEFAULT_YEAR)

    assert payload['amount'] == 100000.0
    assert payload['travel_allowance'] == 20000.0
    assert payload['total'] == 120000.0

def test_expense_explicit_total_wins():
    row = {'THÁNG': 2, 'KHOẢN CHI': 'Lương', 'HẠNG MỤC': 'Giáo viên',
           'THÀNH TIỀN': 100000, 'PC DI CHUYỂN': 20000, 'TỔNG': 150000}
    payload = map_expense_row(row, 1, DEFAULT_YEAR)

    assert payload['total'] == 150000.0

def test_expense_total_without_travel_allowance():
    row = {'THÁNG': 2, 'KHOẢN CHI': 'Thuê', 'HẠNG MỤC': 'Mặt bằng', 'THÀNH TIỀN': '30,000,000'}
    payload = map_expense_row(row, 1, DEFAULT_YEAR)

    assert payload['travel_allowance'] is None
    assert payload['total'] == 30000000.0

def test_expense_optional_fields_distinguish_missing_from_zero():
    row = {
        'THÁNG': '6', 'KHOẢN CHI': ' Lương ', 'HẠNG MỤC': 'Trợ giảng',
        'SỐ GIỜ': 0, 'ĐƠN GIÁ': 'thỏa thuận', 'SỐ KM': None,
        'CHỨC VỤ': 'TA', 'LOẠI HD': None, 'PHỤ TRÁCH': 'Lan',
        'TÌNH TRẠNG': 'Đã chi', 'GHI CHÚ': '  ', 'THÀNH TIỀN': 500000,
    }
    payload = map_expense_row(row, 4, DEFAULT_YEAR)

    assert payload['hours'] == 0.0
    assert payload['unit_price'] is None
    assert payload['kilometers'] is None
    assert payload['contract_type'] is None
    assert payload['notes'] is None
    assert payload['category'] == 'Lương'
    assert payload['position'] == 'TA'
    assert payload['responsible'] == 'Lan'
    assert payload['status'] == 'Đã chi'
    assert payload['month'] == 6
    assert payload['center_id'] == 4

def test_expense_missing_amount_defaults_to_zero():
    payload = map_expense_row({'THÁNG': 1, 'KHOẢN CHI': 'Khác', 'HẠNG MỤC': 'Khác'}, 1, DEFAULT_YEAR)

    assert payload['amount'] == 0.0
    assert payload['total'] == 0.0

def test_income_status_and_notes_are_kept_as_text():
    row = {'THÁNG': 4, 'SỐ LỚP': 1, 'TÌNH TRẠNG': ' Đã thu ', 'GHI CHÚ': 12}
    payload = map_income_row(row, 1, 1, DEFAULT_YEAR)

    assert payload['status'] == 'Đã thu'
    assert payload['notes'] == '12'
