# tests/test_engine.py

import pytest

# The app_with_db and make_workbook fixtures are provided by conftest.py

def _income_row(month=3, center="Hanoi Center", program="IELTS Prep", classes=3, students=40, revenue=50000000):
    return {'THÁNG': month, 'TRUNG TÂM': center, 'CHƯƠNG TRINH': program,
            'SỐ LỚP': classes, 'SỐ HỌC VIÊN': students, 'DOANH THU': revenue}

def _expense_row(month=3, center="Hanoi Center", category="Lương", item="Giáo viên", amount=100000, **extra):
    row = {'THÁNG': month, 'TRUNG TÂM': center, 'KHOẢN CHI': category, 'HẠNG MỤC': item, 'THÀNH TIỀN': amount}
    row.update(extra)
    return row

def test_end_to_end_single_income_row(app_with_db, make_workbook):
    """A date-serial month and brand new dimensions, no expense sheet."""
    from app.models import Center, Program, IncomeRecord
    from app.importer.engine import import_workbook

    payload = make_workbook({'DATA': [_income_row(month=45658)]})
    result = import_workbook(payload)

    assert result.to_dict() == {'incomeImported': 1, 'expenseImported': 0, 'errors': []}
    assert Center.query.filter_by(name="Hanoi Center").count() == 1
    assert Program.query.filter_by(name="IELTS Prep").count() == 1

    record = IncomeRecord.query.one()
    assert record.month == 1
    assert record.year == 2025
    assert record.number_of_classes == 3
    assert record.number_of_students == 40
    assert record.revenue == 50000000

def test_end_to_end_date_formatted_month_cell(app_with_db, make_workbook):
    """openpyxl hands back date-formatted month cells as datetimes."""
    from datetime import datetime
    from app.models import IncomeRecord, ExpenseRecord
    from app.importer.engine import import_workbook

    payload = make_workbook({
        'DATA': [_income_row(month=datetime(2023, 7, 15))],
        'CHI': [_expense_row(month=datetime(2023, 7, 1))],
    })
    result = import_workbook(payload, default_year=2024)

    assert result.to_dict() == {'incomeImported': 1, 'expenseImported': 1, 'errors': []}
    income = IncomeRecord.query.one()
    assert (income.month, income.year) == (7, 2023)
    expense = ExpenseRecord.query.one()
    assert (expense.month, expense.year) == (7, 2023)

def test_income_and_expense_sheets(app_with_db, make_workbook):
    from app.models import Center, ExpenseRecord
    from app.importer.engine import import_workbook

    payload = make_workbook({
        'DATA': [_income_row(), _income_row(program="TOEIC")],
        'CHI': [
            _expense_row(**{'PC DI CHUYỂN': 20000}),
            _expense_row(center="Da Nang", amount=500, **{'TỔNG': 150000}),
        ],
    })
    result = import_workbook(payload, default_year=2023)

    assert result.income_imported == 2
    assert result.expense_imported == 2
    assert result.errors == []
    assert {c.name for c in Center.query.all()} == {"Hanoi Center", "Da Nang"}

    totals = sorted(e.total for e in ExpenseRecord.query.all())
    assert totals == [120000, 150000]
    assert {e.year for e in ExpenseRecord.query.all()} == {2023}

def test_rows_sharing_a_new_center_reuse_it(app_with_db, make_workbook):
    from app.models import Center, IncomeRecord
    from app.importer.engine import import_workbook

    payload = make_workbook({
        'DATA': [_income_row(center="Hue"), _income_row(center="Hue", program="Kids")],
        'CHI': [_expense_row(center="Hue")],
    })
    import_workbook(payload)

    center = Center.query.one()
    assert center.name == "Hue"
    assert {r.center_id for r in IncomeRecord.query.all()} == {center.id}

def test_reimport_reuses_dimensions_but_duplicates_records(app_with_db, make_workbook):
    from app.models import Center, Program, IncomeRecord
    from app.importer.engine import import_workbook

    payload = make_workbook({'DATA': [_income_row()]})
    import_workbook(payload)
    import_workbook(payload)

    assert Center.query.count() == 1
    assert Program.query.count() == 1
    assert IncomeRecord.query.count() == 2

def test_row_missing_required_field_is_skipped_silently(app_with_db, make_workbook):
    from app.models import IncomeRecord
    from app.importer.engine import import_workbook

    payload = make_workbook({
        'DATA': [
            _income_row(center=None),
            _income_row(program="   "),
            _income_row(month=None),
            _income_row(),
        ],
        'CHI': [_expense_row(item=None), _expense_row(category="")],
    })
    result = import_workbook(payload)

    assert result.income_imported == 1
    assert result.expense_imported == 0
    assert result.errors == []
    assert IncomeRecord.query.count() == 1

def test_resolver_failure_is_reported_once(app_with_db, make_workbook, monkeypatch):
    from app.importer import engine
    from app.importer.resolver import resolve_center as real_resolve_center

    def failing_resolve_center(name):
        if name == "Broken":
            raise RuntimeError("center lookup failed")
        return real_resolve_center(name)

    monkeypatch.setattr(engine, "resolve_center", failing_resolve_center)

    payload = make_workbook({'DATA': [_income_row(center="Broken"), _income_row()]})
    result = engine.import_workbook(payload)

    assert result.income_imported == 1
    assert len(result.errors) == 1
    assert "Excel row 2" in result.errors[0]
    assert "center lookup failed" in result.errors[0]

def test_persistence_failure_does_not_stop_later_rows(app_with_db, make_workbook, monkeypatch):
    from app.models import IncomeRecord
    from app.importer import engine

    real_save = engine._save_record
    calls = {'count': 0}

    def flaky_save(record):
        calls['count'] += 1
        if calls['count'] == 3:
            raise RuntimeError("database unavailable")
        real_save(record)

    monkeypatch.setattr(engine, "_save_record", flaky_save)

    rows = [_income_row(program=f"Program {i}", revenue=i * 1000) for i in range(1, 6)]
    result = engine.import_workbook(make_workbook({'DATA': rows}))

    assert calls['count'] == 5
    assert result.income_imported == 4
    assert len(result.errors) == 1
    # Third data row sits on Excel row 4, below the header
    assert "Excel row 4" in result.errors[0]
    assert sorted(r.revenue for r in IncomeRecord.query.all()) == [1000, 2000, 4000, 5000]

def test_constraint_violation_is_reported_and_rolled_back(app_with_db, make_workbook, monkeypatch):
    from app.models import ExpenseRecord
    from app.importer import engine

    real_map = engine.map_expense_row

    def map_without_total(row, center_id, default_year):
        payload = real_map(row, center_id, default_year)
        if payload['item'] == 'Bad':
            payload['total'] = None
        return payload

    monkeypatch.setattr(engine, "map_expense_row", map_without_total)

    payload = make_workbook({'CHI': [_expense_row(item="Bad"), _expense_row(item="Good")]})
    result = engine.import_workbook(payload)

    assert result.expense_imported == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Expense row error")
    assert [e.item for e in ExpenseRecord.query.all()] == ["Good"]

def test_missing_sheets_import_nothing(app_with_db, make_workbook):
    from app.importer.engine import import_workbook

    result = import_workbook(make_workbook({'Sheet1': [{'A': 1}]}))

    assert result.to_dict() == {'incomeImported': 0, 'expenseImported': 0, 'errors': []}

def test_unreadable_file_is_fatal(app_with_db):
    from app.importer.engine import import_workbook
    from app.importer.workbook import WorkbookError

    with pytest.raises(WorkbookError):
        import_workbook(b"this is not a spreadsheet")

def test_row_outcomes_fold_into_result():
    from app.importer.engine import ImportResult, RowOutcome

    result = ImportResult()
    result.record('DATA', RowOutcome.imported())
    result.record('DATA', RowOutcome.skipped())
    result.record('CHI', RowOutcome.imported())
    result.record('CHI', RowOutcome.failed("boom"))

    assert result.to_dict() == {'incomeImported': 1, 'expenseImported': 1, 'errors': ["boom"]}
