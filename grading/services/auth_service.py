# grading/services/auth_service.py
from __future__ import annotations
import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from grading.core.config import settings
from grading.core.errors import ForbiddenError, NotFoundError
from grading.database.grading_repository import GradingRepository
from grading.schemas.context import UserContext
from grading.schemas.data import Course, CourseItem, Enrollment, Submission

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


class AuthService:
    @staticmethod
    def get_current_user(
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    ) -> UserContext:
        """Token issuing lives in the auth service; here we only verify and read claims."""
        if credentials is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized")
        try:
            claims = jwt.decode(
                credentials.credentials,
                settings.jwt_public_key,
                algorithms=[settings.jwt_algorithm],
            )
            return UserContext(user_id=int(claims["sub"]), role=claims["role"])
        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.warning("Rejected bearer token: %s", e)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized")


class AccessService:
    """Ownership checks shared by the routers."""

    @staticmethod
    async def course_professor(user: UserContext, repo: GradingRepository, course_id: int) -> Course:
        if not user.is_professor:
            raise ForbiddenError("Only professors can perform this action")
        course = await repo.get_course(course_id=course_id)
        if course is None:
            raise NotFoundError("Course not found")
        if course.professor_id != user.user_id:
            raise ForbiddenError("You don't have permission to act on this course")
        return course

    @staticmethod
    async def item_professor(user: UserContext, repo: GradingRepository, item_id: int) -> Course:
        item = await repo.get_item(item_id=item_id)
        if item is None:
            raise NotFoundError("Course item not found")
        return await AccessService.course_professor(user, repo, item.course_id)

    @staticmethod
    async def enrollment_owner(user: UserContext, repo: GradingRepository, enrollment_id: int) -> Enrollment:
        enrollment = await repo.get_enrollment(enrollment_id=enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        if not user.is_student or enrollment.student_id != user.user_id:
            raise ForbiddenError("This enrollment does not belong to you")
        return enrollment

    @staticmethod
    async def submission_reader(user: UserContext, repo: GradingRepository, submission: Submission) -> None:
        """Owner or the professor of the submission's course."""
        if user.is_professor:
            await AccessService.item_professor(user, repo, submission.item_id)
            return
        await AccessService.enrollment_owner(user, repo, submission.enrollment_id)

    @staticmethod
    async def item_member(user: UserContext, repo: GradingRepository, item_id: int) -> CourseItem:
        """The course professor, or a student actively enrolled in the item's course."""
        item = await repo.get_item(item_id=item_id)
        if item is None:
            raise NotFoundError("Course item not found")
        if user.is_professor:
            await AccessService.course_professor(user, repo, item.course_id)
        elif await repo.get_active_enrollment(course_id=item.course_id, student_id=user.user_id) is None:
            raise ForbiddenError("You're not enrolled in this course")
        return item
