# ==============================================================================
# app/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from app import db


class Center(db.Model):
    """
    A training center. Income and expense records are attributed to it.
    The name is the natural key used by the Excel importer.
    """
    __tablename__ = 'center'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False, index=True)
    code = db.Column(db.String(64), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Deleting a center removes all of its records as well.
    income_records = db.relationship('IncomeRecord', backref='center', lazy='dynamic', cascade="all, delete-orphan")
    expense_records = db.relationship('ExpenseRecord', backref='center', lazy='dynamic', cascade="all, delete-orphan")

    def __repr__(self):
        return f'<Center {self.id}: {self.name}>'


class Program(db.Model):
    """A course offering. Only income records reference it."""
    __tablename__ = 'program'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False, index=True)
    code = db.Column(db.String(64), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    income_records = db.relationship('IncomeRecord', backref='program', lazy='dynamic', cascade="all, delete-orphan")

    def __repr__(self):
        return f'<Program {self.id}: {self.name}>'


class IncomeRecord(db.Model):
    """Monthly revenue of one program at one center."""
    __tablename__ = 'income_record'
    id = db.Column(db.Integer, primary_key=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    center_id = db.Column(db.Integer, db.ForeignKey('center.id'), nullable=False, index=True)
    program_id = db.Column(db.Integer, db.ForeignKey('program.id'), nullable=False, index=True)
    number_of_classes = db.Column(db.Integer, nullable=False, default=0)
    number_of_students = db.Column(db.Integer, nullable=False, default=0)
    revenue = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(64))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.Index('ix_income_record_year_month', 'year', 'month'),)

    def __repr__(self):
        return f'<IncomeRecord {self.id}: {self.year}-{self.month} center={self.center_id}>'


class ExpenseRecord(db.Model):
    """
    One expense line of a center for a month. Optional numeric columns stay
    NULL when the source did not provide them, which is not the same as zero.
    """
    __tablename__ = 'expense_record'
    id = db.Column(db.Integer, primary_key=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    center_id = db.Column(db.Integer, db.ForeignKey('center.id'), nullable=False, index=True)
    category = db.Column(db.String(255), nullable=False)
    item = db.Column(db.String(255), nullable=False)
    position = db.Column(db.String(255))
    contract_type = db.Column(db.String(128))
    hours = db.Column(db.Float)
    unit_price = db.Column(db.Float)
    amount = db.Column(db.Float, nullable=False)
    kilometers = db.Column(db.Float)
    travel_allowance = db.Column(db.Float)
    responsible = db.Column(db.String(255))
    status = db.Column(db.String(128))
    total = db.Column(db.Float, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.Index('ix_expense_record_year_month', 'year', 'month'),)

    def __repr__(self):
        return f'<ExpenseRecord {self.id}: {self.year}-{self.month} {self.category}/{self.item}>'
