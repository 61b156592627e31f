from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.common import SheetKey


# ==========================================================
# Stored shapes (what a sheet looks like once loaded)
# ==========================================================

class StudentRecord(BaseModel):
    stu_reg_no: str                                  # register number, unique inside a sheet
    stu_name: str = ""                               # student name
    res_data: Dict[str, str] = Field(default_factory=dict)  # {subject_code: grade}, "" = not graded


class GradeSheet(BaseModel):
    sheet_id: int
    batch: str
    department: str
    year: str                                        # display label (e.g. "II-IT")
    year_num: int
    semester: int
    exam_cycle: str
    last_updated: Optional[datetime] = None
    result_data: List[StudentRecord] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def key(self) -> SheetKey:
        return SheetKey(batch=self.batch, department=self.department, year_num=self.year_num, semester=self.semester)


# ==========================================================
# Requests
# ==========================================================

class _SheetIdentityRequest(BaseModel):
    batch: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    year: int                                        # numeric year (year_num)
    semester: int

    model_config = ConfigDict(str_strip_whitespace=True)

    def sheet_key(self) -> SheetKey:
        return SheetKey(batch=self.batch, department=self.department, year_num=self.year, semester=self.semester)


class GradeUpdateRequest(_SheetIdentityRequest):
    """✅ PATCH /results/sheet body"""
    stu_reg_no: str = Field(..., min_length=1)
    sub_code: str = Field(..., min_length=1)
    new_grade: str = Field(..., min_length=1)


class BulkUpdateEntry(BaseModel):
    """One parsed row of an uploaded grade sheet"""
    register_number: Optional[str] = Field(default="", alias="regNo")
    name: Optional[str] = ""
    grades: Dict[str, Optional[str]] = Field(default_factory=dict)
    status: Optional[str] = None                     # "error" rows are skipped

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class BulkUpdateRequest(_SheetIdentityRequest):
    """✅ PATCH /results/bulk-update body"""
    updates: List[BulkUpdateEntry] = Field(..., min_length=1)


class PreviewRequest(BaseModel):
    batch: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    year: int
    semester: int
    class_year: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)


class GenerateSheetRequest(PreviewRequest):
    """✅ POST /results/generate body"""
    year_label: str = Field(..., min_length=1)       # stored as the sheet's display year
    exam_cycle: str = Field(..., min_length=1)
    sheet_id: Optional[int] = None                   # defaults to epoch seconds
    overwrite: bool = False                          # replace an existing sheet

    def sheet_key(self) -> SheetKey:
        return SheetKey(batch=self.batch, department=self.department, year_num=self.year, semester=self.semester)


class ExportOptions(BaseModel):
    format: str
    selected_students: List[str] = Field(default_factory=list, alias="selectedStudents")
    selected_subjects: List[str] = Field(default_factory=list, alias="selectedSubjects")
    include_header: bool = Field(default=False, alias="includeHeader")
    include_stats: bool = Field(default=False, alias="includeStats")   # excel only: Statistics sheet
    sort_by: Optional[str] = Field(default=None, alias="sortBy")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExportRequest(_SheetIdentityRequest):
    export_options: ExportOptions = Field(..., alias="exportOptions")

    model_config = ConfigDict(populate_by_name=True)
