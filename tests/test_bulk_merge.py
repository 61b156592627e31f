from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from fakes import InMemorySheetRepository
from schemas.common import SheetKey
from schemas.results import BulkUpdateEntry, GradeSheet, StudentRecord
from services.bulk_merge import merge_bulk_updates
from utils.errors import NotFoundError, UnclassifiedServerError, ValidationError

KEY = SheetKey(batch="2023-2027", department="IT", year_num=2, semester=3)
NOW = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


def make_repo(*records):
    sheet = GradeSheet(
        sheet_id=1, batch=KEY.batch, department=KEY.department, year="II-IT",
        year_num=KEY.year_num, semester=KEY.semester, exam_cycle="NOV/DEC 2024",
        result_data=[StudentRecord(stu_reg_no=r, stu_name=n, res_data=g) for r, n, g in records],
    )
    return InMemorySheetRepository([sheet])


def entry(reg, name, grades, status="valid"):
    return BulkUpdateEntry(regNo=reg, name=name, grades=grades, status=status)


def roster(repo):
    return {r.stu_reg_no: r for r in repo.committed[KEY].result_data}


def test_error_rows_are_skipped():
    repo = make_repo(("A", "Asha", {"CS101": "B"}))
    result = merge_bulk_updates(repo, KEY, [entry("A", "Asha", {"CS101": "O"}, status="error")], NOW)

    assert (result.new_students, result.updated_students, result.total_operations) == (0, 0, 0)
    assert result.message == "No valid updates to apply"
    assert roster(repo)["A"].res_data == {"CS101": "B"}
    assert repo.commits == 0


def test_sparse_patch_keeps_untouched_subjects():
    repo = make_repo(("A", "Asha", {"CS101": "B"}))
    result = merge_bulk_updates(repo, KEY, [entry("A", "Asha", {"CS102": "A"})], NOW)

    assert result.updated_students == 1
    assert roster(repo)["A"].res_data == {"CS101": "B", "CS102": "A"}


def test_new_student_is_appended_with_exactly_the_valid_grades():
    repo = make_repo(("A", "Asha", {"CS101": "B"}))
    result = merge_bulk_updates(repo, KEY, [entry("B", "Ravi", {"CS101": "O", "CS102": "NONE", "CS103": ""})], NOW)

    assert result.new_students == 1
    assert result.total_operations == 1
    assert roster(repo)["B"].res_data == {"CS101": "O"}
    assert roster(repo)["B"].stu_name == "Ravi"


def test_name_change_is_applied():
    repo = make_repo(("A", "Asha", {"CS101": "B"}))
    result = merge_bulk_updates(repo, KEY, [entry("A", "Asha K", {})], NOW)

    assert result.updated_students == 1
    assert roster(repo)["A"].stu_name == "Asha K"
    assert roster(repo)["A"].res_data == {"CS101": "B"}


def test_unchanged_student_is_not_counted():
    repo = make_repo(("A", "Asha", {"CS101": "B"}))
    result = merge_bulk_updates(repo, KEY, [entry("A", "Asha", {"CS101": "NONE"})], NOW)
    assert result.total_operations == 0
    assert result.updated_students == 0


def test_one_invalid_grade_aborts_whole_batch():
    repo = make_repo(("A", "Asha", {"CS101": "B"}))
    entries = [entry(f"R{i}", f"Student {i}", {"CS101": "A"}) for i in range(10)]
    entries.append(entry("R99", "Broken", {"CS101": "Z"}))

    with pytest.raises(ValidationError) as exc:
        merge_bulk_updates(repo, KEY, entries, NOW)

    assert exc.value.message == "Validation errors"
    assert len(exc.value.details) == 1
    assert exc.value.details[0]["regNo"] == "R99"
    assert exc.value.details[0]["subject"] == "CS101"
    assert exc.value.details[0]["grade"] == "Z"
    assert repo.write_calls == 0
    assert repo.commits == 0
    assert set(roster(repo)) == {"A"}


def test_all_validation_errors_are_reported():
    repo = make_repo()
    entries = [
        entry("R1", "One", {"CS101": "Q", "CS102": "B++"}),
        entry("", "No Reg", {"CS101": "O"}),
        entry("R3", "Three", {"CS101": "X"}, status="error"),
    ]
    with pytest.raises(ValidationError) as exc:
        merge_bulk_updates(repo, KEY, entries, NOW)
    assert len(exc.value.details) == 3


def test_last_updated_is_stamped():
    repo = make_repo(("A", "Asha", {}))
    merge_bulk_updates(repo, KEY, [entry("A", "Asha", {"CS101": "O"})], NOW)
    assert repo.committed[KEY].last_updated == NOW
    assert repo.commits == 1


def test_repeated_new_student_is_merged_into_one_record():
    repo = make_repo()
    result = merge_bulk_updates(repo, KEY, [
        entry("B", "Ravi", {"CS101": "O"}),
        entry("B", "Ravi", {"CS102": "A"}),
    ], NOW)

    assert result.new_students == 1
    assert result.updated_students == 1
    assert [r.stu_reg_no for r in repo.committed[KEY].result_data] == ["B"]
    assert roster(repo)["B"].res_data == {"CS101": "O", "CS102": "A"}


def test_mixed_batch_counts():
    repo = make_repo(("A", "Asha", {"CS101": "B"}), ("C", "Charu", {"CS101": "C"}))
    result = merge_bulk_updates(repo, KEY, [
        entry("A", "Asha", {"CS101": "A+"}),
        entry("B", "Ravi", {"CS101": "O"}),
        entry("C", "Charu", {"CS101": "U"}, status="error"),
    ], NOW)

    assert result.as_response() == {
        "message": "Bulk update completed successfully",
        "newStudents": 1,
        "updatedStudents": 1,
        "totalOperations": 2,
    }
    assert roster(repo)["C"].res_data == {"CS101": "C"}


def test_missing_sheet():
    repo = InMemorySheetRepository()
    with pytest.raises(NotFoundError) as exc:
        merge_bulk_updates(repo, KEY, [entry("A", "Asha", {"CS101": "O"})], NOW)
    assert exc.value.code == "SHEET_NOT_FOUND"


class FailingTouchRepository(InMemorySheetRepository):
    """Store goes away after the roster writes were staged."""

    def touch(self, key, when):
        raise OperationalError("UPDATE semester_result_sheets", {}, Exception("connection lost"))


class VanishingRowRepository(InMemorySheetRepository):
    """Row deleted by another writer between read and patch."""

    def patch_student_grades(self, key, stu_reg_no, patch, name=None):
        self.write_calls += 1
        return False


def make_failing_repo(repo_class, *records):
    return repo_class([make_repo(*records).committed[KEY]])


def test_store_failure_rolls_back_whole_batch():
    repo = make_failing_repo(FailingTouchRepository, ("A", "Asha", {"CS101": "B"}))

    with pytest.raises(UnclassifiedServerError) as exc:
        merge_bulk_updates(repo, KEY, [
            entry("A", "Asha", {"CS101": "O"}),
            entry("B", "Ravi", {"CS101": "A"}),
        ], NOW)

    assert exc.value.status_code == 500
    assert "connection lost" not in exc.value.message
    assert repo.commits == 0
    assert repo.rollbacks == 1
    assert set(roster(repo)) == {"A"}
    assert roster(repo)["A"].res_data == {"CS101": "B"}


def test_vanished_student_aborts_batch():
    repo = make_failing_repo(VanishingRowRepository, ("A", "Asha", {"CS101": "B"}))

    with pytest.raises(NotFoundError) as exc:
        merge_bulk_updates(repo, KEY, [
            entry("B", "Ravi", {"CS101": "A"}),
            entry("A", "Asha", {"CS101": "O"}),
        ], NOW)

    assert exc.value.code == "STUDENT_NOT_FOUND"
    assert repo.commits == 0
    assert repo.rollbacks == 1
    assert set(roster(repo)) == {"A"}

