from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import require_admin_token
from models.students import Student as StudentModel
from schemas.students import Student, StudentCreate
from utils.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/students", tags=["students"], dependencies=[Depends(require_admin_token)])


# ✅ [CREATE] register a student
@router.post("/", status_code=201)
def create_student(student: StudentCreate, db: Session = Depends(get_db)):
    exists = db.query(StudentModel.id).filter(StudentModel.register_number == student.register_number).first()
    if exists:
        raise ConflictError("Student with this register number already exists")

    db_student = StudentModel(**student.model_dump())
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    return {"success": True, "data": Student.model_validate(db_student).model_dump()}


# ✅ [READ] list students, optionally one class
@router.get("/")
def read_students(class_year: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(StudentModel)
    if class_year:
        query = query.filter(StudentModel.class_year == class_year)
    records = query.order_by(StudentModel.register_number).all()
    return {"success": True, "data": [Student.model_validate(r).model_dump() for r in records]}


# ✅ [READ] one student by register number
@router.get("/{register_number}")
def read_student(register_number: str, db: Session = Depends(get_db)):
    student = db.query(StudentModel).filter(StudentModel.register_number == register_number).first()
    if student is None:
        raise NotFoundError("Student not found", code="STUDENT_NOT_FOUND")
    return {"success": True, "data": Student.model_validate(student).model_dump()}


# ✅ [DELETE] remove a student from the roster
@router.delete("/{register_number}")
def delete_student(register_number: str, db: Session = Depends(get_db)):
    student = db.query(StudentModel).filter(StudentModel.register_number == register_number).first()
    if student is None:
        raise NotFoundError("Student not found", code="STUDENT_NOT_FOUND")

    db.delete(student)
    db.commit()
    return {"success": True, "data": {"register_number": register_number}, "message": "Student deleted successfully"}
