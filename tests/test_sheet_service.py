import pytest
from sqlalchemy.exc import OperationalError

from factories import add_student, add_subject
from fakes import InMemorySheetRepository
from schemas.common import SheetKey
from schemas.results import GenerateSheetRequest, GradeSheet, StudentRecord
from services.sheet_service import generate_sheet, update_grade
from utils.errors import UnclassifiedServerError

KEY = SheetKey(batch="2023-2027", department="IT", year_num=2, semester=3)
REG = "710023205001"


def stored_sheet():
    return GradeSheet(
        sheet_id=1, batch=KEY.batch, department=KEY.department, year="II-IT",
        year_num=KEY.year_num, semester=KEY.semester, exam_cycle="NOV/DEC 2024",
        result_data=[StudentRecord(stu_reg_no=REG, stu_name="Asha", res_data={"CS3401": "B"})],
    )


class FailingPatchRepository(InMemorySheetRepository):
    def patch_student_grades(self, key, stu_reg_no, patch, name=None):
        super().patch_student_grades(key, stu_reg_no, patch, name)
        raise OperationalError("UPDATE result_sheet_students", {}, Exception("deadlock"))


class FailingInsertRepository(InMemorySheetRepository):
    def insert_sheet(self, sheet):
        super().insert_sheet(sheet)
        raise OperationalError("INSERT INTO semester_result_sheets", {}, Exception("disk full"))


def test_update_grade_store_failure_rolls_back():
    repo = FailingPatchRepository([stored_sheet()])

    with pytest.raises(UnclassifiedServerError) as exc:
        update_grade(repo, KEY, REG, "CS3401", "O")

    assert exc.value.message == "Failed to update grade. Please try again later."
    assert repo.commits == 0
    assert repo.rollbacks == 1
    assert repo.committed[KEY].result_data[0].res_data == {"CS3401": "B"}
    assert repo.get_sheet(KEY).result_data[0].res_data == {"CS3401": "B"}


def test_update_grade_commits_once():
    repo = InMemorySheetRepository([stored_sheet()])
    update_grade(repo, KEY, REG, "CS3401", "O")

    assert repo.commits == 1
    assert repo.committed[KEY].result_data[0].res_data == {"CS3401": "O"}


def test_generate_store_failure_leaves_no_sheet(db_session):
    add_subject(db_session, "CS3401")
    add_student(db_session, REG, "Asha")
    repo = FailingInsertRepository()
    request = GenerateSheetRequest(
        batch=KEY.batch, department=KEY.department, year=KEY.year_num, semester=KEY.semester,
        class_year="II-IT A", year_label="II-IT", exam_cycle="NOV/DEC 2024", sheet_id=7,
    )

    with pytest.raises(UnclassifiedServerError) as exc:
        generate_sheet(db_session, repo, request)

    assert exc.value.message == "Internal server error"
    assert repo.commits == 0
    assert repo.rollbacks == 1
    assert not repo.sheet_exists(KEY)
