# ==============================================================================
# app/main/forms.py
# ------------------------------------------------------------------------------
# Defines web forms using Flask-WTF for user input and validation.
# ==============================================================================

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import IntegerField, BooleanField
from wtforms.validators import NumberRange, Optional

class ImportForm(FlaskForm):
    """Multipart upload of an Excel workbook for the batch importer."""

    class Meta:
        # Called as a JSON API by the front-end, not from a rendered page
        csrf = False

    file = FileField('Excel file', validators=[FileRequired(message="No file provided.")])
    year = IntegerField('Year', validators=[Optional(), NumberRange(min=2000, max=2100)])
    store_file = BooleanField('Keep a copy of the uploaded file')


class ReportFilterForm(FlaskForm):
    """Query-string filters shared by the analytics and export endpoints."""

    class Meta:
        csrf = False

    centerId = IntegerField('Center', validators=[Optional()])
    year = IntegerField('Year', validators=[Optional(), NumberRange(min=2000, max=2100)])
    month = IntegerField('Month', validators=[Optional(), NumberRange(min=1, max=12)])
    page = IntegerField('Page', default=1, validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField('Limit', default=10, validators=[Optional(), NumberRange(min=1, max=500)])
