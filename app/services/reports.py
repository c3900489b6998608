"""Teacher remarks and termly academic reports."""

import logging

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import (INVALID_INPUT, NOT_FOUND, ReportServiceError, handle_firebase_error,
                        validate_required_fields)
from app.firestore_models import REMARK_TYPES, AcademicReport, SubjectResult, _now

logger = logging.getLogger(__name__)


def audit_info(actor):
    """Snapshot of who made a change, stored next to the change."""
    return {
        'userId': actor.get('userId', ''),
        'userName': actor.get('userName', ''),
        'userEmail': actor.get('userEmail', ''),
        'userRole': actor.get('userRole', ''),
        'timestamp': _now(),
    }


# ---------------------------------------------------------------------------
# Remarks
# ---------------------------------------------------------------------------

def get_remarks(class_name=None):
    """Remarks for a class (or every class), newest date first."""
    try:
        remarks = dao.get_remarks(class_name)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'remarks.get', ReportServiceError)
    return sorted(remarks, key=lambda r: r.get('date', ''), reverse=True)


def get_remarks_by_student(student_id):
    return sorted(dao.get_remarks_by_student(student_id), key=lambda r: r.get('date', ''), reverse=True)


def add_remark(data, actor):
    validate_required_fields(data, ['studentId', 'class', 'remark', 'date'], 'remarks.add')
    remark_type = data.get('type', 'neutral')
    if remark_type not in REMARK_TYPES:
        raise ReportServiceError(f'Invalid remark type: {remark_type}', INVALID_INPUT, 'remarks.add')

    record = {
        'studentId': data['studentId'],
        'studentName': data.get('studentName', ''),
        'class': data['class'],
        'subject': data.get('subject', ''),
        'remark': data['remark'],
        'type': remark_type,
        'date': data['date'],
        'createdBy': actor.get('userId', ''),
        'createdByInfo': audit_info(actor),
    }
    try:
        return dao.create_remark(record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'remarks.add', ReportServiceError)


def update_remark(remark_id, data, actor):
    if not dao.get_remark(remark_id):
        raise ReportServiceError('Remark not found.', NOT_FOUND, 'remarks.update')
    if 'type' in data and data['type'] not in REMARK_TYPES:
        raise ReportServiceError(f"Invalid remark type: {data['type']}", INVALID_INPUT, 'remarks.update')
    updates = dict(data)
    updates['updatedBy'] = actor.get('userId', '')
    updates['updatedByInfo'] = audit_info(actor)
    try:
        dao.update_remark(remark_id, updates)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'remarks.update', ReportServiceError)


def delete_remark(remark_id):
    try:
        dao.delete_remark(remark_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'remarks.delete', ReportServiceError)


# ---------------------------------------------------------------------------
# Academic reports
# ---------------------------------------------------------------------------

def build_report(data):
    """Normalise a submitted report; grades are recomputed from marks."""
    validate_required_fields(data, ['studentId', 'class', 'term'], 'reports.save')
    subjects = []
    for raw in data.get('subjects', []):
        raw = dict(raw)
        raw.pop('grade', None)
        subject = SubjectResult.from_dict(raw)
        if not subject.subject:
            raise ReportServiceError('Every subject needs a name.', INVALID_INPUT, 'reports.save')
        if not subject.not_applicable and not 0 <= subject.marks <= subject.max_marks:
            raise ReportServiceError(
                f'Marks for {subject.subject} must be between 0 and {subject.max_marks}.',
                INVALID_INPUT, 'reports.save')
        subjects.append(subject)
    return AcademicReport(
        student_id=data['studentId'],
        student_name=data.get('studentName', ''),
        student_class=data['class'],
        term=data['term'],
        subjects=subjects,
    )


def with_overall(report):
    """Report dict plus ``overallPercentage`` and ``overallGrade``."""
    data = report.to_dict()
    data['id'] = report.id
    overall = report.overall()
    data['overallPercentage'] = overall['percentage']
    data['overallGrade'] = overall['grade']
    return data


def get_academic_reports(class_name=None):
    return [with_overall(AcademicReport.from_dict(r, r['id']))
            for r in dao.get_academic_reports(class_name)]


def get_academic_reports_by_student(student_id):
    return [with_overall(AcademicReport.from_dict(r, r['id']))
            for r in dao.get_academic_reports_by_student(student_id)]


def add_academic_report(data, actor):
    report = build_report(data)
    record = report.to_dict()
    record['createdBy'] = actor.get('userId', '')
    record['createdByInfo'] = audit_info(actor)
    try:
        report_id = dao.create_academic_report(record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'reports.add', ReportServiceError)
    logger.info('Academic report %s (%s, %s) added', report_id, report.student_id, report.term)
    return report_id


def update_academic_report(report_id, data, actor):
    existing = dao.get_academic_report(report_id)
    if not existing:
        raise ReportServiceError('Academic report not found.', NOT_FOUND, 'reports.update')
    report = build_report({**existing, **data})
    record = report.to_dict()
    record['updatedBy'] = actor.get('userId', '')
    record['updatedByInfo'] = audit_info(actor)
    try:
        dao.update_academic_report(report_id, record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'reports.update', ReportServiceError)


def delete_academic_report(report_id):
    try:
        dao.delete_academic_report(report_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'reports.delete', ReportServiceError)
