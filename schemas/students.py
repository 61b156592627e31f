from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

# ✅ input: POST body
class StudentCreate(BaseModel):
    register_number: str = Field(..., pattern=r"^\d{12}$")  # 12 digit register number
    name: str = Field(..., min_length=1)
    class_year: Optional[str] = None                        # class label (e.g. "II-IT A")
    department: Optional[str] = None
    batch: Optional[str] = None                             # e.g. 2023-2027

    model_config = ConfigDict(str_strip_whitespace=True)

# ✅ output
class Student(BaseModel):
    id: int
    register_number: str
    name: str
    class_year: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
