from sqlalchemy import Column, Integer, String
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # student roster (register number, class)

    id = Column(Integer, primary_key=True, index=True)                       # surrogate key
    register_number = Column(String(20), nullable=False, unique=True, index=True)  # 12 digit university register number
    name = Column(String(100), nullable=False)                              # student name
    class_year = Column(String(50), index=True)                             # class label (e.g. "II-IT A")
    department = Column(String(100))                                        # department name
    batch = Column(String(20))                                              # admission batch (e.g. "2023-2027")
