# grading/services/grade_service.py
from __future__ import annotations
import logging
import math

from grading.core.errors import ForbiddenError, InvalidItemKindError, NotFoundError, OutOfRangeError
from grading.database.grading_repository import GradingRepository
from grading.schemas.data import EnrollmentStatus, ItemGrade
from grading.schemas.payloads import MyGrades
from grading.services.aggregator import compute_final_grade
from grading.services.submission_service import SubmissionService, utcnow

logger = logging.getLogger(__name__)


class GradeService:
    @staticmethod
    async def grade_item(
        repo: GradingRepository, *, enrollment_id: int, item_id: int, points_earned: float,
    ) -> ItemGrade:
        """Records points for one (enrollment, item) pair and refreshes the final grade.

        Used for assignments, recorded quiz scores and manual credit on short
        answers alike. Out-of-range points are rejected, never clamped.
        """
        enrollment = await repo.get_enrollment(enrollment_id=enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        item = await repo.get_item(item_id=item_id)
        if item is None:
            raise NotFoundError("Course item not found")
        if not item.type.gradable:
            raise InvalidItemKindError("Documents cannot be graded")
        if item.course_id != enrollment.course_id:
            raise ForbiddenError("Enrollment not found for this course")
        if math.isnan(points_earned) or points_earned < 0 or points_earned > item.max_points:
            logger.warning("Rejected out-of-range grade",
                           extra={"enrollment_id": enrollment_id, "item_id": item_id,
                                  "points_earned": points_earned, "max_points": item.max_points})
            raise OutOfRangeError(f"Points earned must be between 0 and max points ({item.max_points})")

        grade = await repo.upsert_item_grade(
            enrollment_id=enrollment_id,
            item_id=item_id,
            points_earned=points_earned,
            graded_at=utcnow(),
        )
        logger.info("Item graded",
                    extra={"enrollment_id": enrollment_id, "item_id": item_id, "points_earned": points_earned})

        await SubmissionService.mark_graded(repo, enrollment_id=enrollment_id, item_id=item_id)

        # final_grade è una cache solo per iscrizioni attive
        if enrollment.status is EnrollmentStatus.ACTIVE:
            await compute_final_grade(repo, course_id=enrollment.course_id, student_id=enrollment.student_id)
        else:
            logger.info("Final grade not refreshed for inactive enrollment",
                        extra={"enrollment_id": enrollment_id, "status": enrollment.status.value})
        return grade

    @staticmethod
    async def list_by_enrollment(repo: GradingRepository, enrollment_id: int) -> list[ItemGrade]:
        return await repo.list_grades_by_enrollment(enrollment_id=enrollment_id)

    @staticmethod
    async def list_by_item(repo: GradingRepository, item_id: int) -> list[ItemGrade]:
        if await repo.get_item(item_id=item_id) is None:
            raise NotFoundError("Course item not found")
        return await repo.list_grades_by_item(item_id=item_id)

    @staticmethod
    async def student_grades(repo: GradingRepository, *, course_id: int, student_id: int) -> list[ItemGrade]:
        enrollment = await repo.get_active_enrollment(course_id=course_id, student_id=student_id)
        if enrollment is None:
            raise NotFoundError("Student not enrolled in this course")
        return await GradeService.list_by_enrollment(repo, enrollment.id)

    @staticmethod
    async def my_grades(repo: GradingRepository, *, course_id: int, student_id: int) -> MyGrades:
        """Grades view for a student: recorded grades, what is still ungraded, cached final grade."""
        enrollment = await repo.get_active_enrollment(course_id=course_id, student_id=student_id)
        if enrollment is None:
            raise NotFoundError("You are not enrolled in this course")

        grades = await GradeService.list_by_enrollment(repo, enrollment.id)
        graded = {g.item_id for g in grades}
        ungraded = [
            item for item in await repo.list_items(course_id=course_id)
            if item.type.gradable and item.id not in graded
        ]
        return MyGrades(grades=grades, ungraded_items=ungraded, final_grade=enrollment.final_grade)
