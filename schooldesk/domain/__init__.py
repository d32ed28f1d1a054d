from schooldesk.domain.grading import (
    ca_average,
    final_score,
    grade,
    grade_from_final_score,
    total_score,
)
from schooldesk.domain.invariants import (
    PAID,
    PART_PAYMENT,
    UNPAID,
    ensure_not_registered,
    ensure_results_unlocked,
    ensure_same_day_edit,
    fee_status,
)

__all__ = [
    "PAID",
    "PART_PAYMENT",
    "UNPAID",
    "ca_average",
    "ensure_not_registered",
    "ensure_results_unlocked",
    "ensure_same_day_edit",
    "fee_status",
    "final_score",
    "grade",
    "grade_from_final_score",
    "total_score",
]
