"""
Firestore document models using Python dataclasses.

Each model includes:
  - An `id` field for the Firestore document ID
  - A `to_dict()` instance method for serialization
  - A `from_dict(data, doc_id)` classmethod for deserialization

Attribute names are snake_case; the stored field names are the camelCase
names the web and mobile clients already read (``firstName``, ``rollNumber``,
``createdAt``, ...). Datetime fields are kept as native datetime objects
since Firestore handles them natively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set


ROLES = ('admin', 'teacher', 'student')
STUDENT_CLASSES = ('play', 'nursery', 'lkg', 'ukg', '1st')
ATTENDANCE_STATUSES = ('present', 'absent', 'late')
REMARK_TYPES = ('positive', 'negative', 'neutral')
FINANCIAL_TYPES = ('income', 'expense')


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _parse_datetime(value) -> Optional[datetime]:
    """Convert a value to datetime. Accepts datetime objects, ISO-format
    strings, and Firestore DatetimeWithNanoseconds objects."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        value = value.replace("Z", "+00:00")
        try:
            return datetime.fromisoformat(value)
        except (ValueError, TypeError):
            return None
    return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _without_none(data: Dict[str, Any]) -> Dict[str, Any]:
    # Firestore stores explicit nulls; optional fields are left out instead.
    return {k: v for k, v in data.items() if v is not None}


# ===========================================================================
# 1. User
# ===========================================================================

@dataclass
class User:
    id: Optional[str] = None          # roll number for students, auth UID otherwise
    uid: Optional[str] = None         # Firebase Auth UID
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str = "student"
    roll_number: Optional[str] = None
    student_class: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_admin(self) -> bool:
        return self.role == "admin"

    def is_teacher(self) -> bool:
        return self.role == "teacher"

    def is_student(self) -> bool:
        return self.role == "student"

    def document_id(self) -> Optional[str]:
        """Students are keyed by roll number, everyone else by auth UID."""
        if self.is_student() and self.roll_number:
            return self.roll_number
        return self.uid

    def has_student_record(self) -> bool:
        return self.is_student() and bool(self.student_class) and bool(self.roll_number)

    def missing_student_fields(self) -> List[str]:
        missing = []
        if not self.student_class:
            missing.append("class")
        if not self.roll_number:
            missing.append("rollNumber")
        return missing

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "uid": self.uid,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "role": self.role,
            "rollNumber": self.roll_number,
            "class": self.student_class,
            "isActive": self.is_active,
            "createdAt": self.created_at or _now(),
            "createdBy": self.created_by,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> User:
        return cls(
            id=doc_id,
            uid=data.get("uid"),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            email=data.get("email", ""),
            phone=data.get("phone"),
            address=data.get("address"),
            role=data.get("role", "student"),
            roll_number=data.get("rollNumber"),
            student_class=data.get("class"),
            is_active=data.get("isActive", True),
            created_at=_parse_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
        )


# ===========================================================================
# 2. Student
# ===========================================================================

@dataclass
class Student:
    id: Optional[str] = None          # == roll_number
    roll_number: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
    student_class: str = ""
    user_id: Optional[str] = None
    auth_uid: Optional[str] = None
    age: Optional[int] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    admission_date: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_user(cls, user: User, extra: Optional[Dict[str, Any]] = None) -> Student:
        """Build the `students` mirror of a student-role user."""
        extra = extra or {}
        return cls(
            id=user.roll_number,
            roll_number=user.roll_number or "",
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            address=user.address,
            student_class=user.student_class or "",
            user_id=user.roll_number,
            auth_uid=user.uid,
            age=extra.get("age"),
            parent_name=extra.get("parentName"),
            parent_phone=extra.get("parentPhone"),
            admission_date=extra.get("admissionDate"),
            created_by=user.created_by,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "rollNumber": self.roll_number,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "class": self.student_class,
            "userId": self.user_id,
            "authUid": self.auth_uid,
            "age": self.age,
            "parentName": self.parent_name,
            "parentPhone": self.parent_phone,
            "admissionDate": self.admission_date,
            "createdAt": self.created_at or _now(),
            "createdBy": self.created_by,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> Student:
        return cls(
            id=doc_id,
            roll_number=data.get("rollNumber", ""),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            email=data.get("email", ""),
            phone=data.get("phone"),
            address=data.get("address"),
            student_class=data.get("class", ""),
            user_id=data.get("userId"),
            auth_uid=data.get("authUid"),
            age=data.get("age"),
            parent_name=data.get("parentName"),
            parent_phone=data.get("parentPhone"),
            admission_date=data.get("admissionDate"),
            created_at=_parse_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
        )


# ===========================================================================
# 3. Attendance
# ===========================================================================

@dataclass
class StudentAttendance:
    student_id: str = ""
    roll_number: str = ""
    status: str = "present"
    student_name: Optional[str] = None
    remarks: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "studentId": self.student_id,
            "rollNumber": self.roll_number,
            "studentName": self.student_name,
            "status": self.status,
            "remarks": self.remarks,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StudentAttendance:
        roll_number = data.get("rollNumber") or data.get("studentId", "")
        return cls(
            student_id=data.get("studentId") or roll_number,
            roll_number=roll_number,
            status=data.get("status", "present"),
            student_name=data.get("studentName"),
            remarks=data.get("remarks"),
        )


@dataclass
class Attendance:
    id: Optional[str] = None
    student_class: str = ""
    date: str = ""                    # YYYY-MM-DD
    students: List[StudentAttendance] = field(default_factory=list)
    marked_by: Optional[Dict[str, Any]] = None
    updated_by: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def status_counts(self, roll_numbers: Optional[Set[str]] = None) -> Dict[str, int]:
        """Counts per status, limited to ``roll_numbers`` when given."""
        counts = {status: 0 for status in ATTENDANCE_STATUSES}
        for entry in self.students:
            if roll_numbers is not None and entry.roll_number not in roll_numbers:
                continue
            if entry.status in counts:
                counts[entry.status] += 1
        return counts

    def status_for(self, roll_number: str) -> Optional[str]:
        for entry in self.students:
            if entry.roll_number == roll_number:
                return entry.status
        return None

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "class": self.student_class,
            "date": self.date,
            "students": [s.to_dict() for s in self.students],
            "markedBy": self.marked_by,
            "updatedBy": self.updated_by,
            "createdAt": self.created_at or _now(),
            "updatedAt": self.updated_at,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> Attendance:
        return cls(
            id=doc_id,
            student_class=data.get("class", ""),
            date=data.get("date", ""),
            students=[StudentAttendance.from_dict(s) for s in data.get("students", [])],
            marked_by=data.get("markedBy"),
            updated_by=data.get("updatedBy"),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
        )


# ===========================================================================
# 4. Holiday
# ===========================================================================

@dataclass
class Holiday:
    id: Optional[str] = None
    name: str = ""
    start_date: str = ""              # YYYY-MM-DD
    end_date: str = ""                # YYYY-MM-DD, inclusive
    created_at: Optional[datetime] = None
    created_by: Optional[Dict[str, Any]] = None

    def overlaps(self, start: str, end: str) -> bool:
        return self.start_date <= end and self.end_date >= start

    def contains(self, day: str) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "name": self.name,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "createdAt": self.created_at or _now(),
            "createdBy": self.created_by,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> Holiday:
        start = data.get("startDate", "")
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            start_date=start,
            end_date=data.get("endDate") or start,
            created_at=_parse_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
        )


# ===========================================================================
# 5. Academic report
# ===========================================================================

GRADE_THRESHOLDS = (
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
)


def calculate_grade(marks: float, max_marks: float) -> str:
    percentage = (marks / max_marks) * 100
    for threshold, grade in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return grade
    return "D"


@dataclass
class SubjectResult:
    subject: str = ""
    marks: float = 0
    max_marks: float = 100
    grade: str = ""
    remarks: str = ""
    not_applicable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "marks": self.marks,
            "maxMarks": self.max_marks,
            "grade": self.grade,
            "remarks": self.remarks,
            "notApplicable": self.not_applicable,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SubjectResult:
        result = cls(
            subject=data.get("subject", ""),
            marks=data.get("marks") or 0,
            max_marks=data.get("maxMarks") or 100,
            grade=data.get("grade", ""),
            remarks=data.get("remarks", ""),
            not_applicable=bool(data.get("notApplicable", False)),
        )
        if result.not_applicable:
            result.grade = "N/A"
        elif not result.grade and result.max_marks:
            result.grade = calculate_grade(result.marks, result.max_marks)
        return result


@dataclass
class AcademicReport:
    id: Optional[str] = None
    student_id: str = ""
    student_name: str = ""
    student_class: str = ""
    term: str = ""
    subjects: List[SubjectResult] = field(default_factory=list)

    def overall(self) -> Dict[str, Any]:
        """Overall percentage and grade over applicable (non N/A) subjects."""
        applicable = [s for s in self.subjects if not s.not_applicable]
        total_marks = sum(s.marks or 0 for s in applicable)
        total_max = sum(s.max_marks or 0 for s in applicable)
        if total_max <= 0:
            return {"percentage": 0, "grade": "N/A"}
        return {
            "percentage": round(total_marks / total_max * 100),
            "grade": calculate_grade(total_marks, total_max),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            "class": self.student_class,
            "term": self.term,
            "subjects": [s.to_dict() for s in self.subjects],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> AcademicReport:
        return cls(
            id=doc_id,
            student_id=data.get("studentId", ""),
            student_name=data.get("studentName", ""),
            student_class=data.get("class", ""),
            term=data.get("term", ""),
            subjects=[SubjectResult.from_dict(s) for s in data.get("subjects", [])],
        )


# ===========================================================================
# 6. WhatsApp
# ===========================================================================

@dataclass
class WhatsAppMessage:
    message_id: str = ""
    sender: str = ""
    recipient: str = ""
    text: str = ""
    type: str = "text"
    timestamp: Optional[datetime] = None
    direction: str = "incoming"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messageId": self.message_id,
            "from": self.sender,
            "to": self.recipient,
            "text": self.text,
            "type": self.type,
            "timestamp": self.timestamp or _now(),
            "direction": self.direction,
        }


@dataclass
class WhatsAppUser:
    phone_number: str = ""
    name: Optional[str] = None
    role: str = "parent"
    student_id: Optional[str] = None
    language: Optional[str] = None
    created_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "phoneNumber": self.phone_number,
            "name": self.name,
            "role": self.role,
            "studentId": self.student_id,
            "language": self.language,
            "createdAt": self.created_at or _now(),
            "lastMessageAt": self.last_message_at,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WhatsAppUser:
        return cls(
            phone_number=data.get("phoneNumber", ""),
            name=data.get("name"),
            role=data.get("role", "parent"),
            student_id=data.get("studentId"),
            language=data.get("language"),
            created_at=_parse_datetime(data.get("createdAt")),
            last_message_at=_parse_datetime(data.get("lastMessageAt")),
        )
