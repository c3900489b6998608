"""Print whether student-role users and student records line up.

Read only. Use ``flask --app main sync cleanup`` to remove orphaned records.
"""
import sys

from app import create_app
from app.services import sync


def main():
    app = create_app()
    with app.app_context():
        report = sync.check_student_sync()

    print(f"Student users:   {report['usersCount']}")
    print(f"Student records: {report['studentsCount']}")
    if report['isSync']:
        print("Collections are in sync.")
        return 0

    if report['missingFromStudents']:
        print("\nUsers without a student record:")
        for roll in report['missingFromStudents']:
            print(f"  - {roll}")
    if report['missingFromUsers']:
        print("\nStudent records without a user:")
        for roll in report['missingFromUsers']:
            print(f"  - {roll}")
    return 1


if __name__ == '__main__':
    sys.exit(main())
