from sqlalchemy import Boolean, Column, Integer, String
from database.db import Base

class Subject(Base):
    __tablename__ = "subjects"  # subject catalogue with credits

    id = Column(Integer, primary_key=True, index=True)         # surrogate key
    code = Column(String(20), nullable=False, index=True)      # subject code (e.g. CS3401)
    name = Column(String(150))                                 # subject title
    department = Column(String(100), nullable=False)           # offering department
    semester = Column(Integer, nullable=False)                 # semester number (1-8)
    credits = Column(Integer)                                  # credit value, may be unknown
    is_elective = Column(Boolean, default=False, nullable=False)
    is_ncc_course = Column(Boolean, default=False, nullable=False)  # NCC courses carry no credit
