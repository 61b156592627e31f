from config.settings import settings
from schemas.results import GradeSheet, StudentRecord
from services.result_analysis import (
    aggregate_students, analyze_sheet, cohort_overview, comprehensive_analysis, needs_attention,
    performance_category, semester_analysis, top_performers,
)


def make_sheet(year_num, semester, roster, batch="2023-2027", department="IT"):
    return GradeSheet(
        sheet_id=year_num * 10 + semester, batch=batch, department=department, year=f"Y{year_num}",
        year_num=year_num, semester=semester, exam_cycle="NOV/DEC 2024",
        result_data=[StudentRecord(stu_reg_no=reg, stu_name=name, res_data=grades) for reg, name, grades in roster],
    )


def test_student_across_two_semesters():
    sheets = [
        make_sheet(1, 1, [("1", "Asha", {"A": "O"})]),
        make_sheet(1, 2, [("1", "Asha", {"B": "U"})]),
    ]
    [student] = aggregate_students(sheets, {"A": 3, "B": 3})

    assert student["totalArrears"] == 1
    assert student["overallStatus"] == "Has Arrears"
    assert student["cgpa"] == 5.00
    assert [s["gpa"] for s in student["semesters"]] == [10.0, 0.0]
    assert student["averageGPA"] == 5.0
    assert student["totalSemesters"] == 2


def test_semesters_sorted_by_year_then_semester():
    sheets = [
        make_sheet(2, 3, [("1", "Asha", {"A": "B"})]),
        make_sheet(1, 2, [("1", "Asha", {"A": "A"})]),
        make_sheet(1, 1, [("1", "Asha", {"A": "O"})]),
    ]
    [student] = aggregate_students(sheets)
    assert [(s["year"], s["semester"]) for s in student["semesters"]] == [(1, 1), (1, 2), (2, 3)]


def test_cgpa_uses_flat_default_credits_while_gpa_uses_credit_map():
    sheets = [make_sheet(1, 1, [("1", "Asha", {"MA101": "O", "CS102": "C"})])]
    [student] = aggregate_students(sheets, {"MA101": 4, "CS102": 1})

    # gpa: (4*10 + 1*5) / 5 = 9.0 ; cgpa: (3*10 + 3*5) / 6 = 7.5
    assert student["semesters"][0]["gpa"] == 9.0
    assert student["cgpa"] == 7.5


def test_students_sorted_by_cgpa_descending():
    sheets = [make_sheet(1, 1, [
        ("1", "Low", {"A": "C"}),
        ("2", "High", {"A": "O"}),
        ("3", "Mid", {"A": "B"}),
    ])]
    students = aggregate_students(sheets)
    assert [s["regNo"] for s in students] == ["2", "3", "1"]


def test_top_and_attention_lists_keep_cgpa_order():
    roster = []
    for i in range(15):
        grade = "U" if i % 2 else ["O", "A+", "A", "B+", "B", "C"][i % 6]
        roster.append((f"{i:02d}", f"S{i}", {"X": grade, "Y": "A"}))
    students = aggregate_students([make_sheet(1, 1, roster)])

    top = top_performers(students)
    attention = needs_attention(students)
    assert len(top) == 10
    assert len(attention) <= 10
    assert top == students[:10]
    cgpas = [s["cgpa"] for s in attention]
    assert cgpas == sorted(cgpas, reverse=True)
    assert all(s["totalArrears"] > 0 for s in attention)


def test_performance_category_boundaries():
    assert performance_category(9.0) == "excellent"
    assert performance_category(10.0) == "excellent"
    assert performance_category(8.999) == "veryGood"
    assert performance_category(8.0) == "veryGood"
    assert performance_category(7.99) == "good"
    assert performance_category(6.0) == "average"
    assert performance_category(5.99) == "belowAverage"


def test_cohort_overview():
    students = [
        {"cgpa": 9.0, "overallStatus": "Passed", "totalArrears": 0},
        {"cgpa": 8.5, "overallStatus": "Passed", "totalArrears": 0},
        {"cgpa": 4.0, "overallStatus": "Has Arrears", "totalArrears": 2},
    ]
    overview = cohort_overview(students, total_semesters=4)
    assert overview["totalStudents"] == 3
    assert overview["passedStudents"] == 2
    assert overview["studentsWithArrears"] == 1
    assert overview["averageCGPA"] == 7.17
    assert overview["totalSemesters"] == 4
    assert overview["performanceDistribution"] == {
        "excellent": 1, "veryGood": 1, "good": 0, "average": 0, "belowAverage": 1,
    }


def test_semester_analysis_pass_percentage():
    sheet = make_sheet(1, 1, [
        ("1", "A", {"X": "O"}),
        ("2", "B", {"X": "RA"}),
        ("3", "C", {"X": "B"}),
    ])
    [row] = semester_analysis([sheet])
    assert row["totalStudents"] == 3
    assert row["passPercentage"] == 67
    # (10 + 0 + 6) / 3 = 5.33
    assert row["averageGPA"] == 5.33


def test_semester_analysis_empty_roster():
    [row] = semester_analysis([make_sheet(1, 1, [])])
    assert row == {"year": 1, "semester": 1, "totalStudents": 0, "averageGPA": 0.0, "passPercentage": 0}


def test_comprehensive_analysis_shape():
    sheets = [
        make_sheet(1, 2, [("1", "Asha", {"B": "U"}), ("2", "Ravi", {"B": "A"})]),
        make_sheet(1, 1, [("1", "Asha", {"A": "O"}), ("2", "Ravi", {"A": "A+"})]),
    ]
    result = comprehensive_analysis(sheets)

    assert set(result) == {"overview", "students", "semesterAnalysis", "topPerformers", "needsAttention"}
    assert result["overview"]["totalSemesters"] == 2
    assert [(s["year"], s["semester"]) for s in result["semesterAnalysis"]] == [(1, 1), (1, 2)]
    assert [s["regNo"] for s in result["needsAttention"]] == ["1"]


def test_cgpa_flat_weight_follows_configured_default(monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_SUBJECT_CREDITS", 5)
    sheets = [make_sheet(1, 1, [("1", "Asha", {"MA101": "O", "CS102": "C"})])]
    [student] = aggregate_students(sheets)

    assert student["totalCredits"] == 10
    assert student["totalWeightedPoints"] == 75
    assert student["cgpa"] == 7.5


def test_analyze_sheet():
    sheet = make_sheet(1, 1, [
        ("2", "Ravi", {"MA101": "O", "CS102": "A"}),
        ("1", "Asha", {"MA101": "U", "CS102": "B"}),
        ("3", "Mani", {"MA101": "", "CS102": ""}),
    ])
    result = analyze_sheet(sheet, {"MA101": 4, "CS102": 3})

    assert result["totalStudents"] == 3
    assert result["passedStudents"] == 2
    assert result["failedStudents"] == 1
    assert result["gradeDistribution"] == {"U": 1, "B": 1, "O": 1, "A": 1}
    assert result["subjectWiseAnalysis"]["MA101"]["failCount"] == 1
    assert result["subjectWiseAnalysis"]["MA101"]["averageGPA"] == 10.0
    assert [s["regNo"] for s in result["topPerformers"]] == ["2"]
    assert result["needsAttention"][0]["failedSubjects"] == ["MA101"]
    assert result["studentDetails"][0]["regNo"] == "2"
    assert result["totalArrears"] == 1
