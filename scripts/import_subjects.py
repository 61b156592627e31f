import csv
import sys
from sqlalchemy.orm import Session
from database.db import Base, SessionLocal, engine
from models.subjects import Subject as SubjectModel  # ✅ model import

CSV_PATH = "data/subjects.csv"  # ✅ code,name,department,semester,credits,is_elective,is_ncc_course

TRUE_VALUES = {"1", "true", "yes", "y"}

def _to_bool(value) -> bool:
    return str(value or "").strip().lower() in TRUE_VALUES

def _to_credits(value):
    value = str(value or "").strip()
    return int(value) if value.isdigit() and int(value) > 0 else None  # blank / 0 = unknown credit

def read_subject_rows(csv_path: str = CSV_PATH) -> list:
    with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        return [
            SubjectModel(
                code=row["code"].strip().upper(),             # subject code
                name=(row.get("name") or "").strip() or None,  # title
                department=row["department"].strip(),
                semester=int(row["semester"]),
                credits=_to_credits(row.get("credits")),
                is_elective=_to_bool(row.get("is_elective")),
                is_ncc_course=_to_bool(row.get("is_ncc_course")),
            )
            for row in reader
            if (row.get("code") or "").strip()
        ]

def migrate_subjects(csv_path: str = CSV_PATH):
    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    try:
        subjects = read_subject_rows(csv_path)
        db.add_all(subjects)
        db.commit()
    finally:
        db.close()
    print(f"✅ subjects CSV -> DB done ({len(subjects)} rows)")

if __name__ == "__main__":
    migrate_subjects(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
