from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

# ✅ input: POST body
class SubjectCreate(BaseModel):
    code: str = Field(..., pattern=r"^[A-Z]{2}\d{4}$")  # subject code (e.g. CS3401)
    name: Optional[str] = None                          # subject title
    department: str = Field(..., min_length=1)          # offering department
    semester: int = Field(..., ge=1, le=8)              # semester number
    credits: Optional[int] = Field(default=None, gt=0)  # credit value, unknown allowed
    is_elective: bool = False
    is_ncc_course: bool = False

    model_config = ConfigDict(str_strip_whitespace=True)

# ✅ output: GET / POST responses
class Subject(BaseModel):
    id: int
    code: str
    name: Optional[str] = None
    department: str
    semester: int
    credits: Optional[int] = None
    is_elective: bool = False
    is_ncc_course: bool = False

    model_config = ConfigDict(from_attributes=True)

class SubjectCredit(BaseModel):
    code: str
    credits: int
