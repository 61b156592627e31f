"""
services/sheet_service.py

Sheet lifecycle operations used by routers/results.py:
lookup, single cell update, preview/generate, filter values and the
per-student semester history.
"""

import logging
import re
import time
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schemas.common import SheetKey
from schemas.results import GenerateSheetRequest, GradeSheet, PreviewRequest, StudentRecord
from services import reference_data
from services.grading import VALID_GRADES, is_valid_grade
from services.sheet_repository import SheetRepository
from utils.errors import ConflictError, NotFoundError, UnclassifiedServerError, ValidationError

logger = logging.getLogger(__name__)

REG_NO_PATTERN = re.compile(r"^\d{12}$")
SUBJECT_CODE_PATTERN = re.compile(r"^[A-Z]{2}\d{4}$")


def _valid_grades_text() -> str:
    return ", ".join(sorted(VALID_GRADES))


# ==========================================================
# [READ] sheet by identity
# ==========================================================
def load_sheet(repo: SheetRepository, key: SheetKey) -> GradeSheet:
    sheet = repo.get_sheet(key)
    if sheet is None:
        raise NotFoundError("No result sheet found for the given filters", code="SHEET_NOT_FOUND")
    return sheet


def sheet_response(sheet: GradeSheet) -> dict:
    roster = sorted(sheet.result_data, key=lambda r: r.stu_reg_no)
    return {
        "sheet_id": sheet.sheet_id,
        "department": sheet.department,
        "year": sheet.year,
        "semester": sheet.semester,
        "batch": sheet.batch,
        "exam_cycle": sheet.exam_cycle,
        "result_data": [r.model_dump() for r in roster],
    }


# ==========================================================
# [UPDATE] single cell
# ==========================================================
def update_grade(repo: SheetRepository, key: SheetKey, stu_reg_no: str, sub_code: str, new_grade: str) -> dict:
    if not is_valid_grade(new_grade):
        raise ValidationError(f"Invalid grade value. Valid grades: {_valid_grades_text()}")
    if not REG_NO_PATTERN.match(stu_reg_no):
        raise ValidationError("Invalid student registration number format")
    if not SUBJECT_CODE_PATTERN.match(sub_code):
        raise ValidationError("Invalid subject code format")

    if not repo.sheet_exists(key):
        raise NotFoundError("Result sheet not found for the specified filters", code="SHEET_NOT_FOUND")

    try:
        matched = repo.patch_student_grades(key, stu_reg_no, {sub_code: new_grade})
        if not matched:
            repo.rollback()
            raise NotFoundError("Student registration number not found in the result sheet",
                                code="STUDENT_NOT_FOUND")
        repo.commit()
    except SQLAlchemyError:
        repo.rollback()
        logger.exception(f"grade update failed: {stu_reg_no}/{sub_code}")
        raise UnclassifiedServerError("Failed to update grade. Please try again later.")

    logger.info(f"grade updated: {key.batch}/{key.department} S{key.semester} {stu_reg_no} {sub_code}={new_grade}")
    return {
        "success": True,
        "message": "Grade updated successfully",
        "updatedFields": {"student": stu_reg_no, "subject": sub_code, "grade": new_grade},
    }


# ==========================================================
# [CREATE] preview / generate
# ==========================================================
def preview_sheet(db: Session, request: PreviewRequest) -> dict:
    codes = reference_data.subject_codes_for(db, request.department, request.semester)
    students = reference_data.class_roster(db, request.class_year)
    return {"subjectCodes": codes, "subjectCount": len(codes), "studentCount": len(students)}


def generate_sheet(db: Session, repo: SheetRepository, request: GenerateSheetRequest) -> dict:
    codes = reference_data.subject_codes_for(db, request.department, request.semester)
    if not codes:
        raise NotFoundError("No subjects found for the provided filters", code="SUBJECTS_NOT_FOUND")

    students = reference_data.class_roster(db, request.class_year)
    if not students:
        raise NotFoundError("No students found for the selected class", code="STUDENTS_NOT_FOUND")

    sheet = GradeSheet(
        sheet_id=request.sheet_id if request.sheet_id is not None else int(time.time()),
        batch=request.batch,
        department=request.department,
        year=request.year_label,
        year_num=request.year,
        semester=request.semester,
        exam_cycle=request.exam_cycle,
        result_data=[
            StudentRecord(stu_reg_no=str(s.register_number), stu_name=s.name or "",
                          res_data={code: "" for code in codes})
            for s in students
        ],
    )

    key = request.sheet_key()
    exists = repo.sheet_exists(key)
    if exists and not request.overwrite:
        raise ConflictError("A sheet already exists for these filters. Use overwrite to replace.")

    try:
        if exists:
            repo.replace_sheet(sheet)
        else:
            repo.insert_sheet(sheet)
        repo.commit()
    except SQLAlchemyError:
        repo.rollback()
        logger.exception(f"sheet generation failed: {key.batch}/{key.department} Y{key.year_num} S{key.semester}")
        raise UnclassifiedServerError("Internal server error")

    logger.info(f"sheet {'replaced' if exists else 'created'}: id={sheet.sheet_id} "
                f"students={len(sheet.result_data)} subjects={len(codes)}")
    return {
        "success": True,
        "sheet_id": sheet.sheet_id,
        "replaced": exists,
        "studentCount": len(sheet.result_data),
        "subjectCount": len(codes),
    }


# ==========================================================
# [READ] per-student history across semesters
# ==========================================================
def student_history(sheets: List[GradeSheet], batch: str, department: str) -> dict:
    student_map: Dict[str, dict] = {}
    for sheet in sheets:
        for record in sheet.result_data:
            if not record.stu_reg_no:
                continue
            student = student_map.setdefault(record.stu_reg_no, {
                "regNo": record.stu_reg_no,
                "name": record.stu_name or "Unknown",
                "department": sheet.department,
                "batch": sheet.batch,
                "allSemesters": [],
            })
            student["allSemesters"].append({
                "semester": sheet.semester,
                "year": sheet.year,
                "year_num": sheet.year_num,
                "res_data": dict(record.res_data),
                "sheet_id": sheet.sheet_id,
            })

    students = sorted(student_map.values(), key=lambda s: s["regNo"])
    for student in students:
        student["allSemesters"].sort(key=lambda s: (s["year_num"], s["semester"]))

    return {
        "students": students,
        "totalStudents": len(students),
        "batchInfo": {
            "batch": batch,
            "department": department,
            "totalSemesters": max((s.semester for s in sheets), default=0),
        },
    }


def credits_for(db: Session, department: Optional[str]) -> Dict[str, int]:
    return reference_data.subject_credits(db, department)
