"""
services/grading.py

Anna University 10-point grading: grade points, validity checks and the
semester GPA formula  GPA = Σ(Ci × GPi) / Σ(Ci).

Credit policy for GPA: a subject whose credit is unknown is counted with
settings.DEFAULT_SUBJECT_CREDITS (3 unless configured). Ungraded cells ("" / None) are left out of both sums.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Mapping, Optional

from config.settings import settings

# ✅ grade -> grade point
GRADE_POINTS: Dict[str, int] = {
    "O": 10,
    "A+": 9,
    "A": 8,
    "B+": 7,
    "B": 6,
    "C": 5,
    "D": 4,
    "P": 4,
    "U": 0,
    "AB": 0,
    "UA": 0,
    "RA": 0,
    "SA": 0,
    "W": 0,
    "WD": 0,
}

VALID_GRADES = frozenset(GRADE_POINTS)

# failing / re-appear grades that count as an arrear
ARREAR_GRADES = frozenset({"U", "RA", "UA"})

EXCELLENT_GRADES = frozenset({"O", "A+", "A"})

# marker used by uploaded sheets for "no grade in this cell"
EMPTY_GRADE_MARKER = "NONE"


def grade_point(grade: Optional[str]) -> int:
    """Unknown or empty grades resolve to 0."""
    if not grade:
        return 0
    return GRADE_POINTS.get(grade.strip(), 0)


def is_valid_grade(grade: Optional[str]) -> bool:
    return isinstance(grade, str) and grade in VALID_GRADES


def is_graded(grade: Optional[str]) -> bool:
    return bool(grade and grade.strip())


def is_arrear(grade: Optional[str]) -> bool:
    return grade in ARREAR_GRADES


def count_arrears(grades: Mapping[str, str]) -> int:
    return sum(1 for g in grades.values() if is_arrear(g))


def round_half_up(value: float, places: int = 2) -> float:
    """Half-up rounding on the decimal representation (2.675 -> 2.68)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def default_credits() -> int:
    return settings.DEFAULT_SUBJECT_CREDITS


def round_percentage(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def resolve_credits(subject_code: str, credits: Optional[Mapping[str, int]]) -> int:
    if credits:
        value = credits.get(subject_code)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
    return default_credits()


def calculate_gpa(grades: Mapping[str, str], credits: Optional[Mapping[str, int]] = None) -> float:
    total_weighted_points = 0
    total_credits = 0

    for subject_code, grade in grades.items():
        if not is_graded(grade):
            continue
        subject_credits = resolve_credits(subject_code, credits)
        total_weighted_points += subject_credits * grade_point(grade)
        total_credits += subject_credits

    if total_credits == 0:
        return 0.0
    return round_half_up(total_weighted_points / total_credits)
