import csv
import sys
from sqlalchemy.orm import Session
from database.db import Base, SessionLocal, engine
from models.students import Student as StudentModel  # ✅ model import

CSV_PATH = "data/students.csv"  # ✅ register_number,name,class_year,department,batch

def read_student_rows(csv_path: str = CSV_PATH) -> list:
    students = {}
    with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for row in reader:
            register_number = (row.get("register_number") or "").strip()
            if not register_number:
                continue
            # last row wins for a repeated register number
            students[register_number] = StudentModel(
                register_number=register_number,
                name=(row.get("name") or "").strip(),
                class_year=(row.get("class_year") or "").strip() or None,
                department=(row.get("department") or "").strip() or None,
                batch=(row.get("batch") or "").strip() or None,
            )
    return list(students.values())

def migrate_students(csv_path: str = CSV_PATH):
    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    try:
        students = read_student_rows(csv_path)
        db.add_all(students)
        db.commit()
    finally:
        db.close()
    print(f"✅ students CSV -> DB done ({len(students)} rows)")

if __name__ == "__main__":
    migrate_students(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
