"""
services/reference_data.py

Lookups against the reference tables (subjects, students).
NCC courses are never part of a result sheet and carry no credit.
"""

from typing import Dict, List, Optional

from sqlalchemy import distinct
from sqlalchemy.orm import Session

from models.students import Student as StudentModel
from models.subjects import Subject as SubjectModel


def _non_ncc(query):
    return query.filter(SubjectModel.is_ncc_course.isnot(True))


# ✅ subject codes of a department + semester (sheet columns)
def subject_codes_for(db: Session, department: str, semester: int) -> List[str]:
    rows = (
        _non_ncc(db.query(SubjectModel.code))
        .filter(SubjectModel.department == department, SubjectModel.semester == semester)
        .order_by(SubjectModel.code)
        .all()
    )
    codes = []
    for (code,) in rows:
        if code and code not in codes:
            codes.append(code)
    return codes


# ✅ {code: credits} for subjects with a known numeric credit
def subject_credits(db: Session, department: Optional[str] = None) -> Dict[str, int]:
    query = _non_ncc(db.query(SubjectModel.code, SubjectModel.credits)).filter(SubjectModel.credits.isnot(None))
    if department:
        query = query.filter(SubjectModel.department == department)
    return {code: credits for code, credits in query.all() if code and isinstance(credits, int)}


# ✅ students of a class, ordered by register number
def class_roster(db: Session, class_year: str) -> List[StudentModel]:
    return (
        db.query(StudentModel)
        .filter(StudentModel.class_year == class_year)
        .order_by(StudentModel.register_number)
        .all()
    )


def class_years(db: Session) -> List[str]:
    rows = db.query(distinct(StudentModel.class_year)).filter(StudentModel.class_year.isnot(None)).all()
    return sorted(v for (v,) in rows if v)


def subject_options(db: Session, department: Optional[str] = None) -> dict:
    rows = _non_ncc(db.query(SubjectModel.department, SubjectModel.semester)).all()
    departments = sorted({d for d, _ in rows if d})
    semesters = sorted({s for d, s in rows if isinstance(s, int) and (not department or d == department)})
    # subjects carry no year column; a degree spans four years
    return {"departments": departments, "years": [1, 2, 3, 4], "semesters": semesters}
