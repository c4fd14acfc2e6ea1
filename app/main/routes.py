# ==============================================================================
# app/main/routes.py
# ------------------------------------------------------------------------------
# JSON endpoints of the main blueprint: Excel import, profit/loss analytics
# and Excel/CSV export.
# ==============================================================================

import os
from datetime import datetime
from flask import request, current_app, jsonify, send_file
from werkzeug.utils import secure_filename

from app import db
from app.main import bp
from app.main.forms import ImportForm, ReportFilterForm
from app.main.utils import (build_profit_loss, build_dashboard, paginate_frame, build_summary_sheets,
                            build_income_sheet, build_expense_sheet, write_workbook, write_csv)
from app.importer.engine import import_workbook
from app.importer.schema import INCOME_SHEET, EXPENSE_SHEET
from app.importer.workbook import WorkbookError

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

# --- Helper Functions ---

def allowed_file(filename):
    """Checks if the file extension is allowed based on the app config."""
    return '.' in filename and \
           os.path.splitext(filename)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']

def _form_errors(form):
    return [f"{name}: {message}" for name, messages in form.errors.items() for message in messages]

def store_upload(filename, payload):
    """Archives an uploaded workbook under UPLOAD_FOLDER and returns its path."""
    timestamp = datetime.utcnow().strftime('%Y%m%d%H%M%S')
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], f"{timestamp}_{secure_filename(filename)}")
    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)
    with open(filepath, 'wb') as fh:
        fh.write(payload)
    return filepath

def _report_filters():
    form = ReportFilterForm(formdata=request.args)
    if not form.validate():
        return None, form
    return {'center_id': form.centerId.data, 'year': form.year.data, 'month': form.month.data}, form

# --- Import ---

@bp.route('/api/import', methods=['POST'])
def import_excel():
    """Imports the income and expense sheets of an uploaded workbook."""
    form = ImportForm()
    if not form.validate_on_submit():
        return jsonify({'error': 'Invalid import request', 'details': _form_errors(form)}), 400

    upload = form.file.data
    if not allowed_file(upload.filename or ''):
        return jsonify({'error': 'Invalid file type. Only Excel files (.xlsx) are allowed.'}), 400

    payload = upload.read()

    stored_path = None
    if form.store_file.data:
        try:
            stored_path = store_upload(upload.filename, payload)
        except OSError as e:
            # Archiving is best effort; the import still runs
            current_app.logger.error(f"Could not store uploaded file '{upload.filename}': {e}", exc_info=True)

    try:
        result = import_workbook(payload, default_year=form.year.data)
    except WorkbookError as e:
        current_app.logger.warning(f"Rejected upload '{upload.filename}': {e}")
        return jsonify({'error': 'Failed to import Excel file', 'details': [str(e)]}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Excel import failed: {e}", exc_info=True)
        return jsonify({'error': 'Failed to import Excel file'}), 500

    current_app.logger.info(
        f"Imported '{upload.filename}': income={result.income_imported}, "
        f"expense={result.expense_imported}, errors={len(result.errors)}"
    )
    response = {
        'success': True,
        'message': f"Import completed. Income: {result.income_imported}, Expense: {result.expense_imported}",
        'results': result.to_dict(),
    }
    if stored_path:
        response['storedFile'] = os.path.basename(stored_path)
    return jsonify(response)

# --- Analytics ---

@bp.route('/api/analytics/profit-loss')
def profit_loss():
    """Income, expense and profit per center and month, newest first."""
    filters, form = _report_filters()
    if filters is None:
        return jsonify({'error': 'Invalid filters', 'details': _form_errors(form)}), 400

    try:
        frame = build_profit_loss(**filters)
    except Exception as e:
        current_app.logger.error(f"Error calculating profit/loss: {e}", exc_info=True)
        return jsonify({'error': 'Failed to calculate profit/loss'}), 500

    data, pagination = paginate_frame(frame, form.page.data or 1, form.limit.data or 10)
    return jsonify({'data': data, 'pagination': pagination})

@bp.route('/api/analytics/dashboard')
def dashboard():
    """Totals, 12-month trend and center rankings for the dashboard."""
    try:
        data = build_dashboard()
    except Exception as e:
        current_app.logger.error(f"Error fetching dashboard data: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch dashboard data'}), 500
    return jsonify(data)

# --- Export ---

# Record exports reuse the import sheet names so the file can be uploaded again
EXPORT_BUILDERS = {
    'income': lambda filters: {INCOME_SHEET: build_income_sheet(**filters)},
    'expense': lambda filters: {EXPENSE_SHEET: build_expense_sheet(**filters)},
    'combined': lambda filters: {INCOME_SHEET: build_income_sheet(**filters),
                                 EXPENSE_SHEET: build_expense_sheet(**filters)},
    'summary': lambda filters: build_summary_sheets(**filters),
    'dashboard': lambda filters: build_summary_sheets(**filters),
}

EXPORT_FORMATS = {
    'xlsx': (write_workbook, XLSX_MIMETYPE),
    'csv': (write_csv, 'text/csv'),
}

@bp.route('/api/export')
def export_excel():
    """
    Downloads records or the profit/loss summary.

    `format=xlsx` (default) writes every sheet; `format=csv` writes only the
    first one.
    """
    export_type = request.args.get('type', 'summary')
    if export_type not in EXPORT_BUILDERS:
        return jsonify({'error': f"Unknown export type '{export_type}'"}), 400

    export_format = request.args.get('format', 'xlsx')
    if export_format not in EXPORT_FORMATS:
        return jsonify({'error': f"Unknown export format '{export_format}'"}), 400

    filters, form = _report_filters()
    if filters is None:
        return jsonify({'error': 'Invalid filters', 'details': _form_errors(form)}), 400

    writer, mimetype = EXPORT_FORMATS[export_format]
    try:
        buffer = writer(EXPORT_BUILDERS[export_type](filters))
    except Exception as e:
        current_app.logger.error(f"Error exporting '{export_type}' as {export_format}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to export data'}), 500

    filename = f"{export_type}_{datetime.utcnow().strftime('%Y%m%d')}.{export_format}"
    return send_file(buffer, mimetype=mimetype, as_attachment=True, download_name=filename)
