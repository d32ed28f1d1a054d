"""
Grade computation.

All functions are total over numbers: out-of-range scores (negative, above
100) are accepted as-is. Range validation belongs to the input boundary.
"""

from typing import Optional, Union

Number = Union[int, float]

# (threshold, grade), highest first; a score exactly on a threshold gets that grade
GRADE_BANDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"), (50, "E"))
FINAL_SCORE_BANDS = ((70, "A"), (60, "B"), (50, "C"), (45, "D"), (40, "E"))


def _n(value: Optional[Number]) -> Number:
    return value or 0


def total_score(
    classwork: Optional[Number] = None,
    test: Optional[Number] = None,
    examination: Optional[Number] = None,
) -> Number:
    return _n(classwork) + _n(test) + _n(examination)


def _band(score: Number, bands) -> str:
    for threshold, letter in bands:
        if score >= threshold:
            return letter
    return "F"


def grade(total: Number) -> str:
    """A >= 90, B >= 80, C >= 70, D >= 60, E >= 50, otherwise F."""
    return _band(total, GRADE_BANDS)


def ca_average(ca1: Optional[Number] = None, ca2: Optional[Number] = None, ca3: Optional[Number] = None) -> float:
    """Average of three continuous-assessment tests (each out of 30)."""
    return round((_n(ca1) + _n(ca2) + _n(ca3)) / 3, 2)


def final_score(
    ca1: Optional[Number] = None,
    ca2: Optional[Number] = None,
    ca3: Optional[Number] = None,
    exam: Optional[Number] = None,
) -> float:
    """CA average (max 30) plus exam score (max 70)."""
    return round(ca_average(ca1, ca2, ca3) + _n(exam), 2)


def grade_from_final_score(score: Number) -> str:
    """A >= 70, B >= 60, C >= 50, D >= 45, E >= 40, otherwise F."""
    return _band(score, FINAL_SCORE_BANDS)
