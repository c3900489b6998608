"""Bulk user creation from an Excel sheet."""

import io
import logging
import re
from datetime import date, datetime

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill

from app.errors import FirebaseServiceError, INVALID_INPUT, validate_email, validate_roll_number
from app.firestore_models import STUDENT_CLASSES
from app.services import users as user_service

logger = logging.getLogger(__name__)

COMMON_HEADERS = ['First Name', 'Last Name', 'Email', 'Phone', 'Address', 'Password']
STUDENT_HEADERS = COMMON_HEADERS + ['Class', 'Roll Number', 'Age', 'Father Name', 'Mother Name',
                                    'Admission Date']
CRITICAL_STUDENT_HEADERS = COMMON_HEADERS + ['Class', 'Roll Number']

FIELD_NAMES = {
    'First Name': 'firstName',
    'Last Name': 'lastName',
    'Email': 'email',
    'Phone': 'phone',
    'Address': 'address',
    'Password': 'password',
    'Class': 'class',
    'Roll Number': 'rollNumber',
    'Age': 'age',
    'Father Name': 'fatherName',
    'Mother Name': 'motherName',
    'Admission Date': 'admissionDate',
}

_ADMISSION_FORMATS = ('%m/%d/%Y', '%Y-%m-%d', '%d-%m-%Y')


def expected_headers(user_type):
    return STUDENT_HEADERS if user_type == 'student' else COMMON_HEADERS


def critical_headers(user_type):
    return CRITICAL_STUDENT_HEADERS if user_type == 'student' else COMMON_HEADERS


def normalize_header(header):
    return re.sub(r'\s+', ' ', str(header or '').strip().lower())


def find_column_index(headers, target):
    """Index of ``target`` in ``headers`` or -1.

    Exact match after normalisation first, then the squashed, ``_`` and ``-``
    spellings, then substring containment either way.
    """
    normalized = [normalize_header(h) for h in headers]
    wanted = normalize_header(target)
    if wanted in normalized:
        return normalized.index(wanted)

    variations = [wanted, wanted.replace(' ', ''), wanted.replace(' ', '_'), wanted.replace(' ', '-')]
    for index, header in enumerate(normalized):
        if not header:
            continue
        for variation in variations:
            if variation in header or header in variation:
                return index
    return -1


def build_template(user_type):
    """Return an .xlsx template (bytes) with headers and sample rows."""
    headers = expected_headers(user_type)
    wb = Workbook()
    ws = wb.active
    ws.title = 'Students' if user_type == 'student' else 'Teachers'
    ws.append(headers)

    header_font = Font(bold=True)
    header_fill = PatternFill(start_color='E0E0E0', end_color='E0E0E0', fill_type='solid')
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill

    for i in range(1, 6):
        row = [f'{user_type.title()}{i}', 'Example', f'{user_type}{i}@example.com',
               f'98765432{i:02d}', f'{i} Example Street', 'password123']
        if user_type == 'student':
            row += [STUDENT_CLASSES[(i - 1) % len(STUDENT_CLASSES)], f'2026{i:03d}', 3 + i,
                    f'Father{i}', f'Mother{i}', '06/01/2026']
        ws.append(row)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _clean(value):
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.strftime('%m/%d/%Y')
    if isinstance(value, date):
        return value.strftime('%m/%d/%Y')
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _to_int(value):
    digits = re.sub(r'[^\d]', '', value)
    return int(digits) if digits else 0


def _parse_admission_date(value):
    for fmt in _ADMISSION_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def validate_row(user, user_type):
    """Return the list of problems with one parsed row."""
    errors = []
    for key, label in (('firstName', 'First name'), ('lastName', 'Last name'), ('email', 'Email'),
                       ('phone', 'Phone'), ('address', 'Address'), ('password', 'Password')):
        if not user.get(key):
            errors.append(f'{label} is required')

    if user.get('email'):
        try:
            validate_email(user['email'])
        except FirebaseServiceError:
            errors.append('Invalid email format')
    if user.get('phone') and len(re.sub(r'\D', '', user['phone'])) != 10:
        errors.append('Phone must contain exactly 10 digits')

    if user_type == 'student':
        if not user.get('class'):
            errors.append('Class is required')
        elif user['class'].lower() not in STUDENT_CLASSES:
            errors.append(f"Class must be one of: {', '.join(STUDENT_CLASSES)}")
        if not user.get('rollNumber'):
            errors.append('Roll number is required')
        else:
            try:
                validate_roll_number(user['rollNumber'])
            except FirebaseServiceError as e:
                errors.append(e.message)
        age = user.get('age') or 0
        if age <= 0:
            errors.append('Age must be a positive number')
        elif age < 3 or age > 18:
            errors.append('Age must be between 3 and 18')
        if not user.get('fatherName'):
            errors.append('Father name is required')
        if not user.get('motherName'):
            errors.append('Mother name is required')
        if not user.get('admissionDate'):
            errors.append('Admission date is required')
        elif _parse_admission_date(user['admissionDate']) is None:
            errors.append('Admission date must be MM/DD/YYYY, YYYY-MM-DD or DD-MM-YYYY')
    return errors


def parse_workbook(file, user_type):
    """Read the first sheet into a list of row dicts.

    Each row carries ``rowNumber``, ``errors`` and ``isValid``. Raises
    ``FirebaseServiceError`` when the sheet is empty or critical headers
    cannot be matched.
    """
    wb = load_workbook(file, data_only=True)
    ws = wb.active
    rows = list(ws.iter_rows(values_only=True))
    if len(rows) < 2:
        raise FirebaseServiceError('Excel file must have at least a header row and one data row.',
                                   INVALID_INPUT, 'bulk_import.parse')

    headers = [_clean(h) for h in rows[0]]
    columns = {}
    missing = []
    for header in expected_headers(user_type):
        index = find_column_index(headers, header)
        if index == -1:
            missing.append(header)
        else:
            columns[header] = index

    missing_critical = [h for h in missing if h in critical_headers(user_type)]
    if missing_critical:
        raise FirebaseServiceError(
            f"Missing critical headers: {', '.join(missing_critical)}. "
            f"Found headers: {', '.join(h for h in headers if h)}",
            INVALID_INPUT, 'bulk_import.parse',
        )

    parsed = []
    for row_number, row in enumerate(rows[1:], start=2):
        cells = [_clean(c) for c in row]
        if not any(cells):
            continue
        user = {}
        for header, index in columns.items():
            user[FIELD_NAMES[header]] = cells[index] if index < len(cells) else ''
        if user_type == 'student':
            user['age'] = _to_int(user.get('age', ''))
            user['class'] = user.get('class', '').lower()
        user['rowNumber'] = row_number
        user['errors'] = validate_row(user, user_type)
        user['isValid'] = not user['errors']
        parsed.append(user)
    return parsed


def create_users(rows, user_type, created_by):
    """Create every valid row; one failure does not stop the rest."""
    results = {'successful': 0, 'failed': 0, 'errors': []}
    for row in rows:
        if not row.get('isValid'):
            results['failed'] += 1
            results['errors'].append(f"Row {row['rowNumber']} ({row.get('email')}): "
                                     f"{'; '.join(row['errors'])}")
            continue

        user_data = {k: v for k, v in row.items()
                     if k not in ('password', 'rowNumber', 'errors', 'isValid')}
        user_data['role'] = user_type
        try:
            user_service.create_user(row['email'], row['password'], user_data, created_by)
            results['successful'] += 1
        except FirebaseServiceError as e:
            logger.warning('Bulk create failed for row %s (%s): %s', row['rowNumber'], row['email'], e.message)
            results['failed'] += 1
            results['errors'].append(f"Row {row['rowNumber']} ({row['email']}): {e.message}")

    logger.info('Bulk %s creation: %d created, %d failed', user_type, results['successful'], results['failed'])
    return results
