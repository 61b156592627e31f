from sqlalchemy import (
    JSON, BigInteger, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from database.db import Base

class ResultSheet(Base):
    __tablename__ = "semester_result_sheets"  # one sheet per (batch, department, year, semester)
    __table_args__ = (
        UniqueConstraint("batch", "department", "year_num", "semester", name="uq_result_sheet_identity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sheet_id = Column(BigInteger, nullable=False)              # public sheet id
    batch = Column(String(20), nullable=False)                 # e.g. 2023-2027
    department = Column(String(100), nullable=False)
    year = Column(String(20), nullable=False)                  # display label (e.g. "II-IT")
    year_num = Column(Integer, nullable=False)                 # numeric year for querying
    semester = Column(Integer, nullable=False)
    exam_cycle = Column(String(50), nullable=False)            # e.g. "NOV/DEC 2024"
    last_updated = Column(DateTime)

    students = relationship(
        "SheetStudent",
        back_populates="sheet",
        cascade="all, delete-orphan",
        order_by="SheetStudent.id",
    )


class SheetStudent(Base):
    __tablename__ = "result_sheet_students"  # roster entry of a sheet
    __table_args__ = (
        UniqueConstraint("sheet_pk", "stu_reg_no", name="uq_sheet_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sheet_pk = Column(Integer, ForeignKey("semester_result_sheets.id", ondelete="CASCADE"), nullable=False, index=True)
    stu_reg_no = Column(String(20), nullable=False)
    stu_name = Column(String(100), nullable=False, default="")
    res_data = Column(JSON, nullable=False, default=dict)     # {subject_code: grade}, "" = not graded

    sheet = relationship("ResultSheet", back_populates="students")
