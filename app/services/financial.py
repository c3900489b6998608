import logging

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import (FinancialServiceError, INVALID_INPUT, NOT_FOUND, handle_firebase_error,
                        validate_required_fields)
from app.firestore_models import FINANCIAL_TYPES

logger = logging.getLogger(__name__)

OPTIONAL_FIELDS = ('receiptNumber', 'studentName', 'studentClass', 'month', 'academicYear')


def _validate(data, context):
    validate_required_fields(data, ['type', 'category', 'amount', 'date'], context)
    if data['type'] not in FINANCIAL_TYPES:
        raise FinancialServiceError(f"Invalid record type: {data['type']}", INVALID_INPUT, context)
    try:
        amount = float(data['amount'])
    except (TypeError, ValueError):
        raise FinancialServiceError('Amount must be a number.', INVALID_INPUT, context)
    if amount <= 0:
        raise FinancialServiceError('Amount must be greater than zero.', INVALID_INPUT, context)
    return amount


def get_all_financial_records():
    try:
        records = dao.get_all_financial_records()
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'financial.get_all', FinancialServiceError)
    return sorted(records, key=lambda r: r.get('date', ''), reverse=True)


def get_financial_records_by_type(record_type):
    return dao.get_financial_records_by_type(record_type)


def get_financial_records_by_date_range(start_date, end_date):
    return dao.get_financial_records_by_date_range(start_date, end_date)


def add_financial_record(data, created_by=None):
    amount = _validate(data, 'financial.add')
    record = {
        'type': data['type'],
        'category': data['category'],
        'amount': amount,
        'description': data.get('description', ''),
        'date': data['date'],
    }
    record.update({k: data[k] for k in OPTIONAL_FIELDS if data.get(k)})
    if created_by:
        record['createdBy'] = created_by
    try:
        record_id = dao.create_financial_record(record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'financial.add', FinancialServiceError)
    logger.info('Financial %s of %.2f recorded (%s)', record['type'], amount, record['category'])
    return record_id


def update_financial_record(record_id, data):
    existing = dao.get_financial_record(record_id)
    if not existing:
        raise FinancialServiceError('Financial record not found.', NOT_FOUND, 'financial.update')
    merged = {**existing, **data}
    updates = dict(data)
    updates['amount'] = _validate(merged, 'financial.update')
    try:
        dao.update_financial_record(record_id, updates)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'financial.update', FinancialServiceError)


def delete_financial_record(record_id):
    try:
        dao.delete_financial_record(record_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'financial.delete', FinancialServiceError)


def get_financial_stats(month=None, year=None):
    """Income/expense totals, optionally for one month (``'03'``, ``'2026'``)."""
    records = get_all_financial_records()
    if month and year:
        prefix = f'{year}-{int(month):02d}'
        records = [r for r in records if r.get('date', '').startswith(prefix)]

    income = [r for r in records if r.get('type') == 'income']
    expense = [r for r in records if r.get('type') == 'expense']
    total_income = sum(r.get('amount', 0) for r in income)
    total_expense = sum(r.get('amount', 0) for r in expense)
    return {
        'totalIncome': total_income,
        'totalExpense': total_expense,
        'balance': total_income - total_expense,
        'incomeRecords': len(income),
        'expenseRecords': len(expense),
    }
