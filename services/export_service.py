import csv
import io
from typing import Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font

from schemas.results import ExportOptions, GradeSheet, StudentRecord
from services.grading import is_arrear, round_percentage
from utils.errors import ValidationError

SUPPORTED_FORMATS = ("csv", "json", "excel")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _select_rows(sheet: GradeSheet, options: ExportOptions) -> List[StudentRecord]:
    rows = list(sheet.result_data)
    if options.selected_students:
        wanted = set(options.selected_students)
        rows = [r for r in rows if r.stu_reg_no in wanted]
    if options.sort_by == "name":
        rows.sort(key=lambda r: r.stu_name)
    else:
        rows.sort(key=lambda r: r.stu_reg_no)
    return rows


def _select_subjects(rows: List[StudentRecord], options: ExportOptions) -> List[str]:
    if options.selected_subjects:
        return list(options.selected_subjects)
    return sorted(rows[0].res_data) if rows else []


def export_filename(sheet: GradeSheet, extension: str) -> str:
    return f"results_{sheet.department}_{sheet.batch}_Y{sheet.year_num}_S{sheet.semester}.{extension}".replace(" ", "_")


def _table(sheet: GradeSheet, rows: List[StudentRecord], subjects: List[str], include_header: bool) -> List[list]:
    """Header block (optional), column row, one row per student."""
    table = []
    if include_header:
        table.append([f"{sheet.department} - {sheet.batch}"])
        table.append([f"Year {sheet.year_num}, Semester {sheet.semester} - {sheet.exam_cycle}"])
        table.append([])
    table.append(["Reg_No", "Student_Name", *subjects])
    for r in rows:
        table.append([r.stu_reg_no, r.stu_name, *[r.res_data.get(s, "") for s in subjects]])
    return table


def export_csv(sheet: GradeSheet, options: ExportOptions) -> str:
    rows = _select_rows(sheet, options)
    subjects = _select_subjects(rows, options)

    buffer = io.StringIO()
    csv.writer(buffer).writerows(_table(sheet, rows, subjects, options.include_header))
    return buffer.getvalue()


def export_json(sheet: GradeSheet, options: ExportOptions) -> dict:
    rows = _select_rows(sheet, options)
    subjects = _select_subjects(rows, options)
    body = {
        "subjects": subjects,
        "students": [
            {"regNo": r.stu_reg_no, "name": r.stu_name, "grades": {s: r.res_data.get(s, "") for s in subjects}}
            for r in rows
        ],
    }
    if options.include_header:
        body["header"] = {
            "department": sheet.department,
            "batch": sheet.batch,
            "year": sheet.year_num,
            "semester": sheet.semester,
            "examCycle": sheet.exam_cycle,
        }
    return body


def check_format(options: ExportOptions) -> None:
    if options.format not in SUPPORTED_FORMATS:
        raise ValidationError("Unsupported export format")


def export_stats(rows: List[StudentRecord], subjects: List[str]) -> dict:
    """Counts over the exported cells only: a student passes with no arrear among `subjects`."""
    distribution: Dict[str, int] = {}
    passed = 0
    for r in rows:
        grades = [r.res_data.get(s) for s in subjects]
        for grade in grades:
            if grade:
                distribution[grade] = distribution.get(grade, 0) + 1
        if not any(is_arrear(g) for g in grades):
            passed += 1
    return {
        "totalStudents": len(rows),
        "totalSubjects": len(subjects),
        "passPercentage": round_percentage(passed / len(rows) * 100) if rows else 0,
        "gradeDistribution": distribution,
    }


def export_excel(sheet: GradeSheet, options: ExportOptions) -> bytes:
    rows = _select_rows(sheet, options)
    subjects = _select_subjects(rows, options)

    wb = Workbook()
    ws = wb.active
    ws.title = "Results"
    for line in _table(sheet, rows, subjects, options.include_header):
        ws.append(line)
    header_row = 4 if options.include_header else 1
    for cell in ws[header_row]:
        cell.font = Font(bold=True)

    if options.include_stats:
        stats = export_stats(rows, subjects)
        st = wb.create_sheet("Statistics")
        st.append(["Statistics Summary"])
        st.append([])
        st.append(["Total Students", stats["totalStudents"]])
        st.append(["Total Subjects", stats["totalSubjects"]])
        st.append([])
        st.append(["Pass Percentage", f"{stats['passPercentage']}%"])
        st.append([])
        st.append(["Grade Distribution"])
        for grade, count in stats["gradeDistribution"].items():
            st.append([grade, count])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
