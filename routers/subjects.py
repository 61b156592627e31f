from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import require_admin_token
from models.subjects import Subject as SubjectModel
from schemas.subjects import Subject, SubjectCreate, SubjectCredit
from services import reference_data
from utils.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/subjects", tags=["subjects"], dependencies=[Depends(require_admin_token)])


# ✅ [CREATE] add a subject
@router.post("/", status_code=201)
def create_subject(subject: SubjectCreate, db: Session = Depends(get_db)):
    duplicate = (
        db.query(SubjectModel)
        .filter(
            SubjectModel.code == subject.code,
            SubjectModel.department == subject.department,
            SubjectModel.semester == subject.semester,
        )
        .first()
    )
    if duplicate:
        raise ConflictError("Subject already exists for this department and semester")

    db_subject = SubjectModel(**subject.model_dump())
    db.add(db_subject)
    db.commit()
    db.refresh(db_subject)
    return {
        "success": True,
        "data": Subject.model_validate(db_subject).model_dump(),
        "message": "Subject created successfully",
    }


# ✅ [READ] credits map used for GPA (NCC excluded, unknown credits left out)
@router.get("/credits")
def read_subject_credits(department: Optional[str] = None, db: Session = Depends(get_db)):
    credits = reference_data.subject_credits(db, department)
    return {
        "subjects": [SubjectCredit(code=c, credits=v).model_dump() for c, v in sorted(credits.items())],
        "message": "Subject credits fetched successfully",
    }


# ✅ [READ] list subjects
@router.get("/")
def read_subjects(department: Optional[str] = None, semester: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(SubjectModel)
    if department:
        query = query.filter(SubjectModel.department == department)
    if semester is not None:
        query = query.filter(SubjectModel.semester == semester)
    records = query.order_by(SubjectModel.semester, SubjectModel.code).all()
    return {
        "success": True,
        "data": [Subject.model_validate(r).model_dump() for r in records],
    }


# ✅ [READ] one subject
@router.get("/{subject_id}")
def read_subject(subject_id: int, db: Session = Depends(get_db)):
    subject = db.query(SubjectModel).filter(SubjectModel.id == subject_id).first()
    if subject is None:
        raise NotFoundError("Subject not found", code="SUBJECT_NOT_FOUND")
    return {"success": True, "data": Subject.model_validate(subject).model_dump()}


# ✅ [UPDATE] replace subject fields
@router.put("/{subject_id}")
def update_subject(subject_id: int, updated: SubjectCreate, db: Session = Depends(get_db)):
    subject = db.query(SubjectModel).filter(SubjectModel.id == subject_id).first()
    if subject is None:
        raise NotFoundError("Subject not found", code="SUBJECT_NOT_FOUND")

    for key, value in updated.model_dump().items():
        setattr(subject, key, value)

    db.commit()
    db.refresh(subject)
    return {
        "success": True,
        "data": Subject.model_validate(subject).model_dump(),
        "message": "Subject updated successfully",
    }


# ✅ [DELETE] remove a subject
@router.delete("/{subject_id}")
def delete_subject(subject_id: int, db: Session = Depends(get_db)):
    subject = db.query(SubjectModel).filter(SubjectModel.id == subject_id).first()
    if subject is None:
        raise NotFoundError("Subject not found", code="SUBJECT_NOT_FOUND")

    db.delete(subject)
    db.commit()
    return {"success": True, "data": {"subject_id": subject_id}, "message": "Subject deleted successfully"}
