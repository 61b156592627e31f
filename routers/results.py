from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.rate_limit import enforce_rate_limit
from dependencies.repositories import get_sheet_repository
from dependencies.security import require_admin_token
from schemas.common import SheetKey
from schemas.results import (
    BulkUpdateRequest, ExportRequest, GenerateSheetRequest, GradeUpdateRequest, PreviewRequest,
)
from services import export_service, reference_data, result_analysis, sheet_service
from services.bulk_merge import merge_bulk_updates
from services.sheet_repository import SheetRepository
from utils.errors import NotFoundError, ValidationError

router = APIRouter(
    prefix="/results",
    tags=["results"],
    dependencies=[Depends(require_admin_token)],
)


def sheet_key_query(
    batch: str = Query(..., min_length=1),
    department: str = Query(..., min_length=1),
    year: int = Query(...),
    semester: int = Query(...),
) -> SheetKey:
    try:
        return SheetKey(batch=batch, department=department, year_num=year, semester=semester)
    except PydanticValidationError:
        raise ValidationError("Missing required parameters: batch, department, year, semester")


# ==========================================================
# [1] sheet read / single cell update
# ==========================================================

# ✅ [READ] sheet by (batch, department, year, semester), roster sorted by register number
@router.get("/sheet", dependencies=[Depends(enforce_rate_limit)])
def get_sheet(key: SheetKey = Depends(sheet_key_query), repo: SheetRepository = Depends(get_sheet_repository)):
    sheet = sheet_service.load_sheet(repo, key)
    return sheet_service.sheet_response(sheet)


# ✅ [UPDATE] one (student, subject) cell
@router.patch("/sheet", dependencies=[Depends(enforce_rate_limit)])
def update_sheet_cell(body: GradeUpdateRequest, repo: SheetRepository = Depends(get_sheet_repository)):
    return sheet_service.update_grade(repo, body.sheet_key(), body.stu_reg_no, body.sub_code, body.new_grade)


# ✅ [UPDATE] merge an uploaded grade sheet
@router.patch("/bulk-update", dependencies=[Depends(enforce_rate_limit)])
def bulk_update(body: BulkUpdateRequest, repo: SheetRepository = Depends(get_sheet_repository)):
    result = merge_bulk_updates(repo, body.sheet_key(), body.updates)
    return result.as_response()


# ==========================================================
# [2] sheet generation
# ==========================================================

# ✅ [PREVIEW] subjects / students a generated sheet would contain
@router.post("/preview", dependencies=[Depends(enforce_rate_limit)])
def preview_sheet(body: PreviewRequest, db: Session = Depends(get_db)):
    return sheet_service.preview_sheet(db, body)


# ✅ [CREATE] empty-grade sheet for a class (overwrite replaces the whole sheet)
@router.post("/generate", dependencies=[Depends(enforce_rate_limit)])
def generate_sheet(
    body: GenerateSheetRequest,
    db: Session = Depends(get_db),
    repo: SheetRepository = Depends(get_sheet_repository),
):
    return sheet_service.generate_sheet(db, repo, body)


# ==========================================================
# [3] filter / option lists
# ==========================================================

# ✅ distinct values over existing sheets
@router.get("/filters")
def get_filters(repo: SheetRepository = Depends(get_sheet_repository)):
    return repo.filter_values()


# ✅ departments / semesters available for generation
@router.get("/options")
def get_options(department: Optional[str] = None, db: Session = Depends(get_db)):
    return reference_data.subject_options(db, department)


# ✅ class labels of the student roster
@router.get("/classes")
def get_classes(db: Session = Depends(get_db)):
    return {"classes": reference_data.class_years(db)}


# ==========================================================
# [4] analysis
# ==========================================================

# ✅ detailed statistics of one sheet
@router.get("/analysis", dependencies=[Depends(enforce_rate_limit)])
def analyze_sheet(
    key: SheetKey = Depends(sheet_key_query),
    db: Session = Depends(get_db),
    repo: SheetRepository = Depends(get_sheet_repository),
):
    sheet = sheet_service.load_sheet(repo, key)
    credits = sheet_service.credits_for(db, key.department)
    return result_analysis.analyze_sheet(sheet, credits)


# ✅ GPA / CGPA across every semester of a batch + department
#    (register_number keeps only the sheets that student appears in)
@router.get("/comprehensive-analysis", dependencies=[Depends(enforce_rate_limit)])
def comprehensive_analysis(
    batch: str = Query(..., min_length=1),
    department: str = Query(..., min_length=1),
    register_number: Optional[str] = None,
    db: Session = Depends(get_db),
    repo: SheetRepository = Depends(get_sheet_repository),
):
    batch, department = batch.strip(), department.strip()
    register_number = register_number.strip() if register_number else None
    sheets = repo.list_sheets(batch, department, register_number)
    if not sheets:
        raise NotFoundError("No result sheets found", code="SHEET_NOT_FOUND")
    credits = sheet_service.credits_for(db, department)
    return result_analysis.comprehensive_analysis(sheets, credits)


# ✅ every semester's grades per student (CGPA worksheet)
@router.get("/student-history", dependencies=[Depends(enforce_rate_limit)])
def student_history(
    batch: str = Query(..., min_length=1),
    department: str = Query(..., min_length=1),
    repo: SheetRepository = Depends(get_sheet_repository),
):
    batch, department = batch.strip(), department.strip()
    sheets = repo.list_sheets(batch, department)
    return sheet_service.student_history(sheets, batch, department)


# ==========================================================
# [5] export
# ==========================================================

# ✅ CSV / Excel / JSON export of a sheet
@router.post("/export", dependencies=[Depends(enforce_rate_limit)])
def export_sheet(body: ExportRequest, repo: SheetRepository = Depends(get_sheet_repository)):
    options = body.export_options
    export_service.check_format(options)
    sheet = sheet_service.load_sheet(repo, body.sheet_key())

    if options.format == "csv":
        return Response(
            content=export_service.export_csv(sheet, options),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export_service.export_filename(sheet, "csv")}"'},
        )
    if options.format == "excel":
        return Response(
            content=export_service.export_excel(sheet, options),
            media_type=export_service.XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{export_service.export_filename(sheet, "xlsx")}"'},
        )
    return export_service.export_json(sheet, options)
