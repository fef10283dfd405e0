# grading/services/finalizer_service.py
from __future__ import annotations
import logging

from grading.core.errors import GradingError, NotFoundError
from grading.database.grading_repository import GradingRepository
from grading.schemas.data import FinalizeResult
from grading.services.aggregator import compute_final_grade

logger = logging.getLogger(__name__)


async def finalize_course(repo: GradingRepository, course_id: int) -> list[FinalizeResult]:
    """Recomputes the final grade of every active enrollment in the course.

    Students are processed one at a time and independently: a failure is
    recorded on that student's result and the loop moves on. Grades already
    written for other students stay written.
    """
    if await repo.get_course(course_id=course_id) is None:
        raise NotFoundError("Course not found")

    enrollments = await repo.list_active_enrollments(course_id=course_id)
    logger.info("Finalizing course", extra={"course_id": course_id, "enrollments": len(enrollments)})

    results: list[FinalizeResult] = []
    for enrollment in enrollments:
        student_id = enrollment.student_id
        try:
            final_grade = await compute_final_grade(repo, course_id=course_id, student_id=student_id)
        except GradingError as ge:
            logger.warning("Final grade failed",
                           extra={"course_id": course_id, "student_id": student_id, "error": ge.kind})
            results.append(FinalizeResult(student_id=student_id, error=ge.kind, detail=ge.message))
        except Exception:
            logger.exception("Unexpected error finalizing student %s in course %s", student_id, course_id)
            results.append(FinalizeResult(student_id=student_id, error="server_error"))
        else:
            results.append(FinalizeResult(student_id=student_id, final_grade=final_grade))

    failed = sum(1 for r in results if not r.ok)
    logger.info("Course finalized",
                extra={"course_id": course_id, "succeeded": len(results) - failed, "failed": failed})
    return results
