import pytest

from schooldesk.domain import ca_average, final_score, grade, grade_from_final_score, total_score


@pytest.mark.parametrize(
    "total,expected",
    [
        (100, "A"), (90, "A"), (89.99, "B"), (80, "B"), (79, "C"), (70, "C"),
        (69.5, "D"), (60, "D"), (50, "E"), (49, "F"), (0, "F"),
    ],
)
def test_grade_bands(total, expected):
    assert grade(total) == expected


def test_out_of_range_totals_are_graded_as_is():
    assert grade(150) == "A"
    assert grade(-5) == "F"


def test_total_score_treats_missing_parts_as_zero():
    assert total_score(20, 30, 40) == 90
    assert total_score(classwork=10) == 10
    assert total_score(None, None, None) == 0


def test_ca_average_and_final_score():
    assert ca_average(20, 25, 30) == 25
    assert ca_average(10, 10, 11) == 10.33
    assert final_score(20, 25, 30, 60) == 85


@pytest.mark.parametrize(
    "score,expected",
    [(70, "A"), (69, "B"), (60, "B"), (50, "C"), (45, "D"), (40, "E"), (39.9, "F")],
)
def test_grade_from_final_score(score, expected):
    assert grade_from_final_score(score) == expected
