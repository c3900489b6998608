import logging

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import NOT_FOUND, StudentServiceError, handle_firebase_error
from app.firestore_models import Student

logger = logging.getLogger(__name__)


def get_all_students():
    try:
        return [Student.from_dict(s, s['id']) for s in dao.get_all_students()]
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'students.get_all', StudentServiceError)


def get_students_by_class(class_name):
    try:
        return [Student.from_dict(s, s['id']) for s in dao.get_students_by_class(class_name)]
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'students.get_by_class', StudentServiceError)


def get_student_by_roll_number(roll_number):
    data = dao.get_student_by_roll_number(roll_number)
    return Student.from_dict(data, data['id']) if data else None


def get_student_by_auth_uid(auth_uid):
    data = dao.get_student_by_auth_uid(auth_uid)
    return Student.from_dict(data, data['id']) if data else None


def update_student_by_roll_number(roll_number, data):
    existing = dao.get_student_by_roll_number(roll_number)
    if not existing:
        raise StudentServiceError(f'Student with roll number {roll_number} not found',
                                  NOT_FOUND, 'students.update')
    try:
        dao.update_student(existing['id'], data)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'students.update', StudentServiceError)
    logger.info('Student %s updated', roll_number)


def delete_student_by_roll_number(roll_number):
    existing = dao.get_student_by_roll_number(roll_number)
    if not existing:
        raise StudentServiceError(f'Student with roll number {roll_number} not found',
                                  NOT_FOUND, 'students.delete')
    try:
        dao.delete_student(existing['id'])
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'students.delete', StudentServiceError)
    logger.info('Student %s deleted', roll_number)
