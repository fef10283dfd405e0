# grading/services/aggregator.py
from __future__ import annotations
import logging
import math
from typing import Iterable, Mapping, Optional

from grading.core.errors import NotFoundError
from grading.database.grading_repository import GradingRepository
from grading.schemas.data import ItemGrade

logger = logging.getLogger(__name__)

# (soglia minima inclusa, voto), dalla più alta alla più bassa
LETTER_BANDS: tuple[tuple[float, str], ...] = (
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
)
FAILING = "F"


def percentage(grades: Iterable[ItemGrade], max_points_by_item: Mapping[int, float]) -> float:
    """Points earned over points possible, as 0-100.

    Only grades whose item appears in ``max_points_by_item`` count. Returns 0.0
    when nothing is possible yet.
    """
    earned = 0.0
    possible = 0.0
    for grade in grades:
        if grade.item_id not in max_points_by_item:
            continue
        earned += grade.points_earned
        possible += max_points_by_item[grade.item_id]
    if possible <= 0:
        return 0.0
    return earned / possible * 100


def letter_grade(pct: float) -> str:
    if math.isnan(pct):
        return FAILING
    for threshold, letter in LETTER_BANDS:
        if pct >= threshold:
            return letter
    return FAILING


async def compute_final_grade(repo: GradingRepository, *, course_id: int, student_id: int) -> Optional[str]:
    """Recomputes and caches the student's final grade for the course.

    Ungraded items are left out of both sides of the percentage. With no
    gradable items or no grades at all the result is None, never "F".
    The enrollment's final_grade is overwritten with the result.
    """
    enrollment = await repo.get_active_enrollment(course_id=course_id, student_id=student_id)
    if enrollment is None:
        raise NotFoundError("Active enrollment not found")

    max_points = {
        item.id: item.max_points
        for item in await repo.list_items(course_id=course_id)
        if item.type.gradable
    }
    grades = []
    if max_points:
        grades = [
            g for g in await repo.list_grades_by_enrollment(enrollment_id=enrollment.id)
            if g.item_id in max_points
        ]

    final_grade = letter_grade(percentage(grades, max_points)) if grades else None
    await repo.set_final_grade(enrollment_id=enrollment.id, final_grade=final_grade)
    logger.info("Final grade updated",
                extra={"course_id": course_id, "student_id": student_id,
                       "graded_items": len(grades), "final_grade": final_grade})
    return final_grade
