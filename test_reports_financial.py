import pytest

from app.errors import FinancialServiceError, ReportServiceError
from app.services import financial as financial_service
from app.services import reports as report_service

ACTOR = {'userId': 't1', 'userName': 'Asha Verma', 'userEmail': 't1@example.com', 'userRole': 'teacher'}


def test_remark_carries_audit_info(db):
    remark_id = report_service.add_remark(
        {'studentId': 'LK001', 'class': 'lkg', 'remark': 'Helpful in class', 'date': '2026-03-10',
         'type': 'positive'}, ACTOR)
    stored = db.docs('remarks')[remark_id]
    assert stored['createdBy'] == 't1'
    assert stored['createdByInfo']['userName'] == 'Asha Verma'
    assert stored['createdByInfo']['userRole'] == 'teacher'


def test_remark_type_validated(db):
    with pytest.raises(ReportServiceError):
        report_service.add_remark({'studentId': 'LK001', 'class': 'lkg', 'remark': 'x',
                                   'date': '2026-03-10', 'type': 'angry'}, ACTOR)


def test_remarks_sorted_newest_first(db):
    for day in ('2026-03-01', '2026-03-09', '2026-03-05'):
        report_service.add_remark({'studentId': 'LK001', 'class': 'lkg', 'remark': day, 'date': day}, ACTOR)
    assert [r['date'] for r in report_service.get_remarks('lkg')] == ['2026-03-09', '2026-03-05', '2026-03-01']


def test_academic_report_recomputes_grades(db):
    report_id = report_service.add_academic_report({
        'studentId': 'LK001', 'class': 'lkg', 'term': 'Term 1',
        'subjects': [
            {'subject': 'English', 'marks': 92, 'maxMarks': 100, 'grade': 'F'},
            {'subject': 'Maths', 'marks': 40, 'maxMarks': 50},
            {'subject': 'Art', 'notApplicable': True},
        ],
    }, ACTOR)
    report = report_service.get_academic_reports_by_student('LK001')[0]
    assert report['id'] == report_id
    grades = {s['subject']: s['grade'] for s in report['subjects']}
    assert grades['English'] == 'A+'
    assert grades['Maths'] == 'A'
    assert grades['Art'] == 'N/A'
    assert report['overallPercentage'] == pytest.approx(88.0, abs=0.1)


def test_academic_report_marks_range(db):
    with pytest.raises(ReportServiceError):
        report_service.add_academic_report({
            'studentId': 'LK001', 'class': 'lkg', 'term': 'Term 1',
            'subjects': [{'subject': 'Maths', 'marks': 120, 'maxMarks': 100}],
        }, ACTOR)


def test_financial_stats(db):
    financial_service.add_financial_record({'type': 'income', 'category': 'Fees', 'amount': 2500,
                                            'date': '2026-03-02'})
    financial_service.add_financial_record({'type': 'income', 'category': 'Fees', 'amount': '500',
                                            'date': '2026-02-20'})
    financial_service.add_financial_record({'type': 'expense', 'category': 'Supplies', 'amount': 800,
                                            'date': '2026-03-05'})

    total = financial_service.get_financial_stats()
    assert total['totalIncome'] == 3000
    assert total['balance'] == 2200

    march = financial_service.get_financial_stats(3, 2026)
    assert march == {'totalIncome': 2500, 'totalExpense': 800, 'balance': 1700,
                     'incomeRecords': 1, 'expenseRecords': 1}


@pytest.mark.parametrize('record', [
    {'type': 'gift', 'category': 'x', 'amount': 1, 'date': '2026-03-01'},
    {'type': 'income', 'category': 'x', 'amount': -5, 'date': '2026-03-01'},
    {'type': 'income', 'category': 'x', 'amount': 'lots', 'date': '2026-03-01'},
])
def test_financial_validation(db, record):
    with pytest.raises(FinancialServiceError):
        financial_service.add_financial_record(record)
