"""
services/bulk_merge.py

Merges an uploaded grade sheet into a stored sheet.

1. rows flagged status="error" are skipped
2. "NONE" / empty cells are dropped, every other grade is validated;
   all problems are collected and reported together before any write
3. known register numbers get a sparse patch (only the listed subjects,
   name only when changed); unknown ones are appended
4. every patch and the last_updated stamp are committed in one transaction
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from schemas.common import SheetKey
from schemas.results import BulkUpdateEntry, StudentRecord
from services.grading import EMPTY_GRADE_MARKER, is_valid_grade
from services.sheet_repository import SheetRepository
from utils.errors import NotFoundError, UnclassifiedServerError, ValidationError

logger = logging.getLogger(__name__)

ROW_STATUS_ERROR = "error"


@dataclass
class BulkMergeResult:
    new_students: int = 0
    updated_students: int = 0
    total_operations: int = 0

    @property
    def message(self) -> str:
        if self.total_operations == 0:
            return "No valid updates to apply"
        return "Bulk update completed successfully"

    def as_response(self) -> dict:
        return {
            "message": self.message,
            "newStudents": self.new_students,
            "updatedStudents": self.updated_students,
            "totalOperations": self.total_operations,
        }


def _clean_grades(entry: BulkUpdateEntry, errors: List[dict]) -> Dict[str, str]:
    valid: Dict[str, str] = {}
    for subject, grade in entry.grades.items():
        if not grade or grade == EMPTY_GRADE_MARKER:
            continue
        if not is_valid_grade(grade):
            errors.append({
                "regNo": entry.register_number,
                "subject": subject,
                "grade": grade,
                "message": f'Invalid grade "{grade}" for {entry.register_number} in subject {subject}',
            })
            continue
        valid[subject] = grade
    return valid


def validate_entries(entries: Iterable[BulkUpdateEntry]) -> tuple:
    """Returns (rows to apply as (entry, grades) pairs, error list)."""
    rows, errors = [], []
    for entry in entries:
        if entry.status == ROW_STATUS_ERROR:
            continue
        if not entry.register_number or not entry.name:
            errors.append({
                "regNo": entry.register_number or None,
                "subject": None,
                "grade": None,
                "message": "Missing registration number or name for update",
            })
            continue
        rows.append((entry, _clean_grades(entry, errors)))
    return rows, errors


def merge_bulk_updates(repo: SheetRepository, key: SheetKey, entries: Iterable[BulkUpdateEntry],
                       now: Optional[datetime] = None) -> BulkMergeResult:
    sheet = repo.get_sheet(key)
    if sheet is None:
        raise NotFoundError("Result sheet not found", code="SHEET_NOT_FOUND")

    rows, errors = validate_entries(entries)
    if errors:
        logger.info(f"bulk update rejected: {len(errors)} invalid rows for {key.batch}/{key.department} "
                    f"Y{key.year_num} S{key.semester}")
        raise ValidationError("Validation errors", details=errors)

    existing = {r.stu_reg_no: r for r in sheet.result_data}
    pending_new: Dict[str, StudentRecord] = {}
    patches: List[tuple] = []
    result = BulkMergeResult()

    for entry, grades in rows:
        reg_no = entry.register_number

        if reg_no in pending_new:
            # repeated row for a student added earlier in this batch
            pending = pending_new[reg_no]
            pending.stu_name = entry.name
            pending.res_data.update(grades)
            result.updated_students += 1
            continue

        current = existing.get(reg_no)
        if current is None:
            pending_new[reg_no] = StudentRecord(stu_reg_no=reg_no, stu_name=entry.name, res_data=dict(grades))
            result.new_students += 1
            continue

        new_name = entry.name if entry.name != current.stu_name else None
        if new_name is None and not grades:
            continue
        patches.append((reg_no, grades, new_name))
        if new_name is not None:
            current.stu_name = new_name
        current.res_data.update(grades)
        result.updated_students += 1

    result.total_operations = len(patches) + len(pending_new)
    if result.total_operations == 0:
        return result

    try:
        for reg_no, grades, new_name in patches:
            if not repo.patch_student_grades(key, reg_no, grades, name=new_name):
                repo.rollback()
                raise NotFoundError(f"Student {reg_no} no longer exists in the result sheet",
                                    code="STUDENT_NOT_FOUND")
        for record in pending_new.values():
            repo.append_student(key, record)
        repo.touch(key, now or datetime.now(timezone.utc))
        repo.commit()
    except SQLAlchemyError:
        repo.rollback()
        logger.exception(f"bulk update failed for {key.batch}/{key.department} Y{key.year_num} S{key.semester}")
        raise UnclassifiedServerError("Internal server error during bulk update")

    logger.info(f"bulk update applied: new={result.new_students} updated={result.updated_students} "
                f"ops={result.total_operations}")
    return result
