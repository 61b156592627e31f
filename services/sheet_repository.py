"""
services/sheet_repository.py

Storage port for result sheets. The grade logic only talks to SheetRepository,
so it runs the same against MySQL (SqlSheetRepository) or an in-memory fake.

Write methods stage changes; nothing is visible to other sessions until
commit(). A failed batch calls rollback() and leaves the sheet untouched.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import distinct
from sqlalchemy.orm import Session, selectinload

from models.result_sheets import ResultSheet as ResultSheetModel, SheetStudent as SheetStudentModel
from schemas.common import SheetKey
from schemas.results import GradeSheet, StudentRecord


class SheetRepository(ABC):
    @abstractmethod
    def get_sheet(self, key: SheetKey) -> Optional[GradeSheet]: ...
    @abstractmethod
    def sheet_exists(self, key: SheetKey) -> bool: ...
    @abstractmethod
    def list_sheets(self, batch: str, department: str, register_number: Optional[str] = None) -> List[GradeSheet]: ...
    @abstractmethod
    def filter_values(self) -> Dict[str, list]: ...
    @abstractmethod
    def insert_sheet(self, sheet: GradeSheet) -> None: ...
    @abstractmethod
    def replace_sheet(self, sheet: GradeSheet) -> None: ...
    @abstractmethod
    def patch_student_grades(self, key: SheetKey, stu_reg_no: str, patch: Dict[str, str],
                             name: Optional[str] = None) -> bool: ...
    @abstractmethod
    def append_student(self, key: SheetKey, record: StudentRecord) -> None: ...
    @abstractmethod
    def touch(self, key: SheetKey, when: datetime) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...


def _to_domain(row: ResultSheetModel) -> GradeSheet:
    return GradeSheet(
        sheet_id=row.sheet_id,
        batch=row.batch,
        department=row.department,
        year=row.year,
        year_num=row.year_num,
        semester=row.semester,
        exam_cycle=row.exam_cycle,
        last_updated=row.last_updated,
        result_data=[
            StudentRecord(stu_reg_no=s.stu_reg_no, stu_name=s.stu_name or "", res_data=dict(s.res_data or {}))
            for s in row.students
        ],
    )


class SqlSheetRepository(SheetRepository):
    """SQLAlchemy backed repository; one instance per request session."""

    def __init__(self, db: Session):
        self.db = db

    def _identity_filter(self, query, key: SheetKey):
        return query.filter(
            ResultSheetModel.batch == key.batch,
            ResultSheetModel.department == key.department,
            ResultSheetModel.year_num == key.year_num,
            ResultSheetModel.semester == key.semester,
        )

    def _sheet_row(self, key: SheetKey) -> Optional[ResultSheetModel]:
        return self._identity_filter(self.db.query(ResultSheetModel), key).first()

    def get_sheet(self, key: SheetKey) -> Optional[GradeSheet]:
        row = (
            self._identity_filter(self.db.query(ResultSheetModel), key)
            .options(selectinload(ResultSheetModel.students))
            .first()
        )
        return _to_domain(row) if row else None

    def sheet_exists(self, key: SheetKey) -> bool:
        return self._identity_filter(self.db.query(ResultSheetModel.id), key).first() is not None

    def list_sheets(self, batch: str, department: str, register_number: Optional[str] = None) -> List[GradeSheet]:
        query = (
            self.db.query(ResultSheetModel)
            .filter(ResultSheetModel.batch == batch, ResultSheetModel.department == department)
        )
        if register_number:
            query = query.filter(
                ResultSheetModel.students.any(SheetStudentModel.stu_reg_no == register_number)
            )
        rows = (
            query.options(selectinload(ResultSheetModel.students))
            .order_by(ResultSheetModel.year_num, ResultSheetModel.semester)
            .all()
        )
        return [_to_domain(r) for r in rows]

    def filter_values(self) -> Dict[str, list]:
        def _distinct(column):
            return sorted(v for (v,) in self.db.query(distinct(column)).all() if v is not None)

        return {
            "batches": _distinct(ResultSheetModel.batch),
            "departments": _distinct(ResultSheetModel.department),
            "years": _distinct(ResultSheetModel.year_num),
            "semesters": _distinct(ResultSheetModel.semester),
        }

    def _build_row(self, sheet: GradeSheet) -> ResultSheetModel:
        return ResultSheetModel(
            sheet_id=sheet.sheet_id,
            batch=sheet.batch,
            department=sheet.department,
            year=sheet.year,
            year_num=sheet.year_num,
            semester=sheet.semester,
            exam_cycle=sheet.exam_cycle,
            last_updated=sheet.last_updated,
            students=[
                SheetStudentModel(stu_reg_no=r.stu_reg_no, stu_name=r.stu_name, res_data=dict(r.res_data))
                for r in sheet.result_data
            ],
        )

    def insert_sheet(self, sheet: GradeSheet) -> None:
        self.db.add(self._build_row(sheet))

    def replace_sheet(self, sheet: GradeSheet) -> None:
        existing = self._sheet_row(sheet.key)
        if existing is not None:
            self.db.delete(existing)
            # unique identity must be free before the replacement is inserted
            self.db.flush()
        self.db.add(self._build_row(sheet))

    def _student_row(self, key: SheetKey, stu_reg_no: str) -> Optional[SheetStudentModel]:
        return (
            self._identity_filter(self.db.query(SheetStudentModel).join(SheetStudentModel.sheet), key)
            .filter(SheetStudentModel.stu_reg_no == stu_reg_no)
            .first()
        )

    def patch_student_grades(self, key: SheetKey, stu_reg_no: str, patch: Dict[str, str],
                             name: Optional[str] = None) -> bool:
        row = self._student_row(key, stu_reg_no)
        if row is None:
            return False
        if patch:
            # reassign so the JSON column is marked dirty
            row.res_data = {**(row.res_data or {}), **patch}
        if name is not None:
            row.stu_name = name
        return True

    def append_student(self, key: SheetKey, record: StudentRecord) -> None:
        sheet = self._sheet_row(key)
        self.db.add(SheetStudentModel(
            sheet_pk=sheet.id,
            stu_reg_no=record.stu_reg_no,
            stu_name=record.stu_name,
            res_data=dict(record.res_data),
        ))

    def touch(self, key: SheetKey, when: datetime) -> None:
        sheet = self._sheet_row(key)
        if sheet is not None:
            sheet.last_updated = when

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
