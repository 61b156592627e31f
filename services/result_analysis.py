"""
services/result_analysis.py

Result analysis over loaded GradeSheet objects. Pure functions, no DB access.

- aggregate_students: one entry per register number across every sheet
  (semester GPA, CGPA, arrears)
- cohort_overview / performance_category: batch level statistics
- semester_analysis: per sheet statistics
- comprehensive_analysis: everything above in one response body
- analyze_sheet: detailed statistics of a single sheet
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from schemas.results import GradeSheet
from services.grading import (
    EXCELLENT_GRADES, calculate_gpa, count_arrears, default_credits, grade_point,
    is_arrear, is_graded, round_half_up, round_percentage,
)

STATUS_PASSED = "Passed"
STATUS_HAS_ARREARS = "Has Arrears"

TOP_LIST_SIZE = 10
SHEET_TOP_LIST_SIZE = 5


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values))


# ==========================================================
# [students] multi-semester aggregation
# ==========================================================

def aggregate_students(sheets: Iterable[GradeSheet], credits: Optional[Mapping[str, int]] = None) -> List[dict]:
    """
    Semester GPA uses the subject credit map (unknown credits get the
    configured default). CGPA always weighs every graded subject with that
    flat default, so the two figures can disagree for the same student.
    """
    student_map: Dict[str, dict] = {}
    flat_credits = default_credits()

    for sheet in sheets:
        for record in sheet.result_data:
            student = student_map.get(record.stu_reg_no)
            if student is None:
                student = {
                    "regNo": record.stu_reg_no,
                    "name": record.stu_name,
                    "semesters": [],
                    "totalCredits": 0,
                    "totalWeightedPoints": 0,
                    "totalArrears": 0,
                    "overallStatus": STATUS_PASSED,
                }
                student_map[record.stu_reg_no] = student

            grades = dict(record.res_data)
            arrears = count_arrears(grades)
            student["semesters"].append({
                "year": sheet.year_num,
                "semester": sheet.semester,
                "gpa": calculate_gpa(grades, credits),
                "grades": grades,
                "arrearCount": arrears,
                "subjectCount": len(grades),
            })
            student["totalArrears"] += arrears

            for grade in grades.values():
                if not is_graded(grade):
                    continue
                student["totalWeightedPoints"] += grade_point(grade) * flat_credits
                student["totalCredits"] += flat_credits

    students = []
    for student in student_map.values():
        student["semesters"].sort(key=lambda s: (s["year"], s["semester"]))
        if student["totalArrears"] > 0:
            student["overallStatus"] = STATUS_HAS_ARREARS
        student["cgpa"] = (
            round_half_up(student["totalWeightedPoints"] / student["totalCredits"])
            if student["totalCredits"] > 0 else 0.0
        )
        student["totalSemesters"] = len(student["semesters"])
        student["averageGPA"] = _mean([s["gpa"] for s in student["semesters"]])
        students.append(student)

    # stable: ties keep first-seen order
    students.sort(key=lambda s: s["cgpa"], reverse=True)
    return students


def top_performers(students: Sequence[dict], limit: int = TOP_LIST_SIZE) -> List[dict]:
    return list(students[:limit])


def needs_attention(students: Sequence[dict], limit: int = TOP_LIST_SIZE) -> List[dict]:
    return [s for s in students if s["totalArrears"] > 0][:limit]


# ==========================================================
# [cohort] batch level statistics
# ==========================================================

def performance_category(cgpa: float) -> str:
    if cgpa >= 9:
        return "excellent"
    if cgpa >= 8:
        return "veryGood"
    if cgpa >= 7:
        return "good"
    if cgpa >= 6:
        return "average"
    return "belowAverage"


def cohort_overview(students: Sequence[dict], total_semesters: int) -> dict:
    distribution = {"excellent": 0, "veryGood": 0, "good": 0, "average": 0, "belowAverage": 0}
    for student in students:
        distribution[performance_category(student["cgpa"])] += 1

    return {
        "totalStudents": len(students),
        "passedStudents": sum(1 for s in students if s["overallStatus"] == STATUS_PASSED),
        "studentsWithArrears": sum(1 for s in students if s["totalArrears"] > 0),
        "averageCGPA": _mean([s["cgpa"] for s in students]),
        "totalSemesters": total_semesters,
        "performanceDistribution": distribution,
    }


def semester_analysis(sheets: Iterable[GradeSheet], credits: Optional[Mapping[str, int]] = None) -> List[dict]:
    results = []
    for sheet in sheets:
        roster = sheet.result_data
        total = len(roster)
        passed = sum(1 for r in roster if count_arrears(r.res_data) == 0)
        results.append({
            "year": sheet.year_num,
            "semester": sheet.semester,
            "totalStudents": total,
            "averageGPA": _mean([calculate_gpa(r.res_data, credits) for r in roster]),
            "passPercentage": round_percentage(passed / total * 100) if total else 0,
        })
    return results


def comprehensive_analysis(sheets: Sequence[GradeSheet], credits: Optional[Mapping[str, int]] = None) -> dict:
    ordered = sorted(sheets, key=lambda s: (s.year_num, s.semester))
    students = aggregate_students(ordered, credits)

    return {
        "overview": cohort_overview(students, len(ordered)),
        "students": students,
        "semesterAnalysis": semester_analysis(ordered, credits),
        "topPerformers": top_performers(students),
        "needsAttention": needs_attention(students),
    }


# ==========================================================
# [sheet] single sheet analysis
# ==========================================================

def analyze_sheet(sheet: GradeSheet, credits: Optional[Mapping[str, int]] = None) -> dict:
    roster = sorted(sheet.result_data, key=lambda r: r.stu_reg_no)
    all_subjects = sorted({code for r in roster for code in r.res_data})

    grade_distribution: Dict[str, int] = {}
    subject_wise = {
        subject: {"totalStudents": 0, "passCount": 0, "failCount": 0, "gradeDistribution": {}, "averageGPA": 0.0}
        for subject in all_subjects
    }
    student_details, top, attention, gpas = [], [], [], []
    passed_students = 0

    for record in roster:
        gpa = calculate_gpa(record.res_data, credits)
        if gpa > 0:
            gpas.append(gpa)

        failed_subjects, excellent, graded = [], 0, 0
        for subject in all_subjects:
            grade = record.res_data.get(subject)
            if not is_graded(grade):
                continue
            graded += 1
            grade_distribution[grade] = grade_distribution.get(grade, 0) + 1
            stats = subject_wise[subject]
            stats["totalStudents"] += 1
            stats["gradeDistribution"][grade] = stats["gradeDistribution"].get(grade, 0) + 1
            if is_arrear(grade):
                stats["failCount"] += 1
                failed_subjects.append(subject)
            else:
                stats["passCount"] += 1
            if grade in EXCELLENT_GRADES:
                excellent += 1

        if not failed_subjects:
            passed_students += 1

        student_details.append({
            "regNo": record.stu_reg_no,
            "name": record.stu_name,
            "gpa": gpa,
            "totalSubjects": graded,
            "passedSubjects": graded - len(failed_subjects),
            "arrearsCount": len(failed_subjects),
            "failedSubjects": failed_subjects,
            "excellentGrades": excellent,
            "grades": dict(record.res_data),
            "status": "Passed" if not failed_subjects else "Failed",
        })
        if excellent:
            top.append({"regNo": record.stu_reg_no, "name": record.stu_name, "gpa": gpa,
                        "totalGrades": graded, "excellentGrades": excellent})
        if failed_subjects:
            attention.append({"regNo": record.stu_reg_no, "name": record.stu_name, "gpa": gpa,
                              "failedSubjects": failed_subjects, "arrearsCount": len(failed_subjects)})

    for subject in all_subjects:
        points = [grade_point(r.res_data.get(subject)) for r in roster]
        subject_wise[subject]["averageGPA"] = _mean([p for p in points if p > 0])

    top.sort(key=lambda s: (-s["gpa"], -(s["excellentGrades"] / s["totalGrades"])))
    attention.sort(key=lambda s: (-s["arrearsCount"], s["gpa"]))
    student_details.sort(key=lambda s: s["gpa"], reverse=True)

    total = len(roster)
    average_gpa = _mean(gpas)
    return {
        "totalStudents": total,
        "passedStudents": passed_students,
        "failedStudents": total - passed_students,
        "passPercentage": round_percentage(passed_students / total * 100) if total else 0,
        "averageGPA": average_gpa,
        "totalSubjects": sum(len(r.res_data) for r in roster),
        "passedSubjects": sum(1 for r in roster for g in r.res_data.values() if is_graded(g) and not is_arrear(g)),
        "totalArrears": sum(s["arrearsCount"] for s in student_details),
        "gradeDistribution": grade_distribution,
        "subjectWiseAnalysis": subject_wise,
        "topPerformers": top[:SHEET_TOP_LIST_SIZE],
        "needsAttention": attention[:SHEET_TOP_LIST_SIZE],
        "studentDetails": student_details,
    }
