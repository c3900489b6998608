"""
Drift detection between student-role ``users`` and ``students``.

The two collections are kept in step by convention only (see
``app.services.users``). ``check_student_sync`` and ``find_orphaned_students``
only read; removing orphans is the separate ``cleanup_orphaned_students``
operation, run explicitly from the command line.
"""

import logging

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao

logger = logging.getLogger(__name__)


def _student_user_roll_numbers(student_users):
    # Students are keyed by roll number; fall back to the document id for
    # documents written before the rollNumber field existed.
    return {u.get('rollNumber') or u['id'] for u in student_users}


def check_student_sync():
    """Compare roll numbers of student users against the students collection."""
    student_users = dao.get_users_by_role('student')
    students = dao.get_all_students()

    user_rolls = _student_user_roll_numbers(student_users)
    student_rolls = {s.get('rollNumber') or s['id'] for s in students}

    missing_from_students = sorted(user_rolls - student_rolls)
    missing_from_users = sorted(student_rolls - user_rolls)

    report = {
        'usersCount': len(student_users),
        'studentsCount': len(students),
        'missingFromStudents': missing_from_students,
        'missingFromUsers': missing_from_users,
        'isSync': not missing_from_students and not missing_from_users,
    }
    if report['isSync']:
        logger.info('users and students are in sync (%d students)', len(students))
    else:
        logger.warning('users/students drift: %d missing from students, %d missing from users',
                       len(missing_from_students), len(missing_from_users))
    return report


def find_orphaned_students():
    """Students whose id and roll number both match no student user."""
    user_rolls = _student_user_roll_numbers(dao.get_users_by_role('student'))
    return [
        s for s in dao.get_all_students()
        if s['id'] not in user_rolls and s.get('rollNumber') not in user_rolls
    ]


def cleanup_orphaned_students():
    """Delete orphaned student records. Returns ``(deleted_ids, failed_ids)``."""
    deleted, failed = [], []
    for student in find_orphaned_students():
        try:
            dao.delete_student(student['id'])
            deleted.append(student['id'])
        except GoogleAPICallError as e:
            logger.warning('Could not delete orphaned student %s: %s', student['id'], e)
            failed.append(student['id'])
    logger.info('Orphan cleanup: %d deleted, %d failed', len(deleted), len(failed))
    return deleted, failed
