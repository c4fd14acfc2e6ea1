# ==============================================================================
# app/main/utils.py
# ------------------------------------------------------------------------------
# Aggregation of income and expense records into profit/loss tables and
# Excel exports.
# ==============================================================================
import io
import math
from datetime import date
import pandas as pd

from app import db
from app.models import Center, Program, IncomeRecord, ExpenseRecord
from app.importer import schema

PL_COLUMNS = ['centerId', 'centerName', 'year', 'month', 'income', 'expense', 'profit']

# Empty query results must still merge on integer keys
_KEY_DTYPES = {'centerId': 'int64', 'year': 'int64', 'month': 'int64'}


def _apply_filters(query, model, center_id=None, year=None, month=None):
    """Month only narrows the result together with a year."""
    if center_id:
        query = query.filter(model.center_id == center_id)
    if year:
        query = query.filter(model.year == year)
        if month:
            query = query.filter(model.month == month)
    return query


def _income_frame(**filters):
    query = db.session.query(IncomeRecord.center_id, IncomeRecord.year, IncomeRecord.month, IncomeRecord.revenue)
    rows = [tuple(r) for r in _apply_filters(query, IncomeRecord, **filters)]
    frame = pd.DataFrame(rows, columns=['centerId', 'year', 'month', 'income'])
    return frame.astype(_KEY_DTYPES | {'income': 'float64'})


def _expense_frame(**filters):
    query = db.session.query(ExpenseRecord.center_id, ExpenseRecord.year, ExpenseRecord.month, ExpenseRecord.total)
    rows = [tuple(r) for r in _apply_filters(query, ExpenseRecord, **filters)]
    frame = pd.DataFrame(rows, columns=['centerId', 'year', 'month', 'expense'])
    return frame.astype(_KEY_DTYPES | {'expense': 'float64'})


def _center_names():
    return {c.id: c.name for c in Center.query.all()}


def build_profit_loss(center_id=None, year=None, month=None):
    """
    Sums income and expense per (center, year, month) and derives profit.

    Returns:
        pd.DataFrame: PL_COLUMNS, newest period first.
    """
    keys = ['centerId', 'year', 'month']
    filters = {'center_id': center_id, 'year': year, 'month': month}
    income = _income_frame(**filters).groupby(keys, as_index=False)['income'].sum()
    expense = _expense_frame(**filters).groupby(keys, as_index=False)['expense'].sum()

    merged = income.merge(expense, on=keys, how='outer')
    if merged.empty:
        return pd.DataFrame(columns=PL_COLUMNS)

    merged[['income', 'expense']] = merged[['income', 'expense']].fillna(0).astype(float)
    merged['profit'] = merged['income'] - merged['expense']
    merged['centerName'] = merged['centerId'].map(_center_names()).fillna('Unknown')
    merged = merged.sort_values(['year', 'month'], ascending=[False, False], kind='stable')
    return merged[PL_COLUMNS].reset_index(drop=True)


def _month_window(today, months=12):
    """(year, month) pairs of the trailing window ending at today's month, oldest first."""
    window = []
    for back in range(months - 1, -1, -1):
        month, year = today.month - back, today.year
        if month <= 0:
            month += 12
            year -= 1
        window.append((year, month))
    return window


def build_dashboard(today=None):
    """
    Headline figures for the dashboard across every imported record.

    Args:
        today (date, optional): Anchors the trailing 12-month trend and the
            3-year comparison. Defaults to the current date.

    Returns:
        dict: summary totals, monthly trend, top centers, expense categories,
        profit margins and yearly comparison.
    """
    today = today or date.today()
    income = _income_frame()
    expense = _expense_frame()
    names = _center_names()

    revenue_total = float(income['income'].sum())
    expense_total = float(expense['expense'].sum())

    keys = ['year', 'month']
    window = pd.DataFrame(_month_window(today), columns=keys)
    trend = window \
        .merge(income.groupby(keys, as_index=False)['income'].sum(), on=keys, how='left') \
        .merge(expense.groupby(keys, as_index=False)['expense'].sum(), on=keys, how='left') \
        .fillna(0)
    monthly = [{
        'month': int(row.month),
        'year': int(row.year),
        'revenue': float(row.income),
        'expenses': float(row.expense),
    } for row in trend.itertuples(index=False)]

    center_revenue = income.groupby('centerId')['income'].sum()
    center_expense = expense.groupby('centerId')['expense'].sum()
    top = center_revenue.sort_values(ascending=False, kind='stable').head(5)
    top_centers = [{'centerId': int(cid), 'centerName': names.get(cid, 'Unknown'), 'revenue': float(rev)}
                   for cid, rev in top.items()]

    categories = pd.DataFrame([tuple(r) for r in db.session.query(ExpenseRecord.category, ExpenseRecord.total)],
                              columns=['category', 'total'])
    category_totals = categories.groupby('category')['total'].sum().sort_values(ascending=False, kind='stable')
    expense_categories = [{'categoryName': name or 'Unknown', 'amount': float(amount)}
                          for name, amount in category_totals.head(6).items()]

    margins = []
    for cid, rev in center_revenue.items():
        if rev > 0:
            profit = float(rev) - float(center_expense.get(cid, 0))
            margins.append({'centerName': names.get(cid, 'Unknown'),
                            'profitMargin': round(profit / float(rev) * 100, 2)})
    margins.sort(key=lambda m: m['profitMargin'], reverse=True)

    yearly = []
    for year in range(today.year - 2, today.year + 1):
        year_revenue = float(income.loc[income['year'] == year, 'income'].sum())
        year_expense = float(expense.loc[expense['year'] == year, 'expense'].sum())
        yearly.append({'year': year, 'revenue': year_revenue, 'expenses': year_expense,
                       'profit': year_revenue - year_expense})

    return {
        'summary': {
            'totalRevenue': revenue_total,
            'totalExpenses': expense_total,
            'totalProfit': revenue_total - expense_total,
            'centerCount': Center.query.count(),
        },
        'monthlyTrends': monthly,
        'topCenters': top_centers,
        'expenseCategories': expense_categories,
        'profitMargins': margins[:5],
        'yearlyComparison': yearly,
    }


def paginate_frame(frame, page, limit):
    """Slices a DataFrame into one page and describes the pagination."""
    total_count = len(frame)
    total_pages = math.ceil(total_count / limit) if limit else 0
    start = (page - 1) * limit
    data = frame.iloc[start:start + limit].astype(object).to_dict(orient='records')
    return data, {
        'page': page,
        'limit': limit,
        'totalCount': total_count,
        'totalPages': total_pages,
        'hasNext': page < total_pages,
        'hasPrev': page > 1,
    }


def _margin(revenue, profit):
    return f"{(profit / revenue) * 100:.2f}%" if revenue > 0 else '0%'


def build_summary_sheets(center_id=None, year=None, month=None):
    """
    Builds the three sheets of the summary export: overall totals, a 1-12
    monthly breakdown and per-center performance.
    """
    filters = {'center_id': center_id, 'year': year, 'month': month}
    income = _income_frame(**filters)
    expense = _expense_frame(**filters)

    revenue_total = float(income['income'].sum()) if not income.empty else 0.0
    expense_total = float(expense['expense'].sum()) if not expense.empty else 0.0
    profit_total = revenue_total - expense_total
    overview = pd.DataFrame([
        ['Tổng doanh thu', revenue_total],
        ['Tổng chi phí', expense_total],
        ['Lợi nhuận', profit_total],
        ['Tỷ suất lợi nhuận', _margin(revenue_total, profit_total)],
    ], columns=['Chỉ số', 'Giá trị'])

    months = pd.Index(range(1, 13), name='month')
    monthly_income = income.groupby('month')['income'].sum().reindex(months, fill_value=0)
    monthly_expense = expense.groupby('month')['expense'].sum().reindex(months, fill_value=0)
    monthly = pd.DataFrame({
        'Tháng': months,
        'Năm': year or date.today().year,
        'Doanh thu': monthly_income.values,
        'Chi phí': monthly_expense.values,
        'Lợi nhuận': monthly_income.values - monthly_expense.values,
    })

    per_center_income = income.groupby('centerId')['income'].sum()
    per_center_expense = expense.groupby('centerId')['expense'].sum()
    names = _center_names()
    center_rows = []
    for cid, center_revenue in per_center_income.items():
        center_expense = float(per_center_expense.get(cid, 0))
        center_profit = float(center_revenue) - center_expense
        center_rows.append([names.get(cid, 'Unknown'), float(center_revenue), center_expense,
                            center_profit, _margin(float(center_revenue), center_profit)])
    centers = pd.DataFrame(center_rows, columns=['Trung tâm', 'Doanh thu', 'Chi phí', 'Lợi nhuận', 'Tỷ suất'])

    return {'Tổng quan': overview, 'Theo tháng': monthly, 'Theo trung tâm': centers}


def build_income_sheet(center_id=None, year=None, month=None):
    """Income records laid out with the import headers, so the file re-imports."""
    query = db.session.query(IncomeRecord, Center.name, Program.name) \
        .join(Center, IncomeRecord.center_id == Center.id) \
        .join(Program, IncomeRecord.program_id == Program.id)
    query = _apply_filters(query, IncomeRecord, center_id=center_id, year=year, month=month)
    rows = [{
        schema.COL_MONTH: rec.month,
        schema.COL_YEAR: rec.year,
        schema.COL_CENTER: center_name,
        schema.COL_PROGRAM: program_name,
        schema.COL_CLASSES: rec.number_of_classes,
        schema.COL_STUDENTS: rec.number_of_students,
        schema.COL_REVENUE: rec.revenue,
        schema.COL_STATUS: rec.status,
        schema.COL_NOTES: rec.notes,
    } for rec, center_name, program_name in query.order_by(IncomeRecord.year, IncomeRecord.month, IncomeRecord.id)]
    columns = schema.EXPECTED_SHEETS[schema.INCOME_SHEET]
    return pd.DataFrame(rows, columns=columns['required_columns'] + columns['optional_columns'])


def build_expense_sheet(center_id=None, year=None, month=None):
    """Expense records laid out with the import headers."""
    query = db.session.query(ExpenseRecord, Center.name).join(Center, ExpenseRecord.center_id == Center.id)
    query = _apply_filters(query, ExpenseRecord, center_id=center_id, year=year, month=month)
    rows = [{
        schema.COL_MONTH: rec.month,
        schema.COL_YEAR: rec.year,
        schema.COL_CENTER: center_name,
        schema.COL_CATEGORY: rec.category,
        schema.COL_ITEM: rec.item,
        schema.COL_POSITION: rec.position,
        schema.COL_CONTRACT_TYPE: rec.contract_type,
        schema.COL_HOURS: rec.hours,
        schema.COL_UNIT_PRICE: rec.unit_price,
        schema.COL_AMOUNT: rec.amount,
        schema.COL_KILOMETERS: rec.kilometers,
        schema.COL_TRAVEL_ALLOWANCE: rec.travel_allowance,
        schema.COL_RESPONSIBLE: rec.responsible,
        schema.COL_STATUS: rec.status,
        schema.COL_TOTAL: rec.total,
        schema.COL_NOTES: rec.notes,
    } for rec, center_name in query.order_by(ExpenseRecord.year, ExpenseRecord.month, ExpenseRecord.id)]
    columns = schema.EXPECTED_SHEETS[schema.EXPENSE_SHEET]
    return pd.DataFrame(rows, columns=columns['required_columns'] + columns['optional_columns'])


def write_workbook(sheets):
    """Writes {sheet name: DataFrame} to an in-memory .xlsx file."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for sheet_name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
    buffer.seek(0)
    return buffer


def write_csv(sheets):
    """Writes the first sheet of {sheet name: DataFrame} to an in-memory UTF-8 CSV file."""
    frame = next(iter(sheets.values()))
    buffer = io.BytesIO()
    frame.to_csv(buffer, index=False, encoding='utf-8')
    buffer.seek(0)
    return buffer
