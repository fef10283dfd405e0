# grading/services/submission_service.py
from __future__ import annotations
from datetime import datetime, timezone
import logging
from typing import Optional

from grading.core.errors import (
    AlreadyExistsError, ForbiddenError, InvalidItemKindError, InvalidTransitionError, NotFoundError,
)
from grading.database.grading_repository import GradingRepository
from grading.schemas.data import Submission, SubmissionStatus

logger = logging.getLogger(__name__)

DRAFT = SubmissionStatus.DRAFT
SUBMITTED = SubmissionStatus.SUBMITTED
GRADED = SubmissionStatus.GRADED

# None = submission non ancora creata
LEGAL_TRANSITIONS: dict[Optional[SubmissionStatus], frozenset[SubmissionStatus]] = {
    None: frozenset({DRAFT, SUBMITTED}),
    DRAFT: frozenset({DRAFT, SUBMITTED, GRADED}),
    SUBMITTED: frozenset({SUBMITTED, GRADED}),
    GRADED: frozenset({GRADED}),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def transition(current: Optional[SubmissionStatus], target: SubmissionStatus) -> SubmissionStatus:
    """Validates a status change; every status write goes through here."""
    if target not in LEGAL_TRANSITIONS[current]:
        source = current.value if current else "new"
        raise InvalidTransitionError(f"Cannot move a submission from {source} to {target.value}")
    return target


def stamp_submitted_at(
    current: Optional[SubmissionStatus],
    target: SubmissionStatus,
    submitted_at: Optional[datetime],
    now: datetime,
) -> Optional[datetime]:
    """submitted_at is stamped once, when the submission first leaves draft."""
    leaving_draft = current in (None, DRAFT) and target is not DRAFT
    if leaving_draft and submitted_at is None:
        return now
    return submitted_at


class SubmissionService:
    @staticmethod
    async def create(
        repo: GradingRepository,
        *,
        enrollment_id: int,
        item_id: int,
        content: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Submission:
        enrollment = await repo.get_enrollment(enrollment_id=enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        item = await repo.get_item(item_id=item_id)
        if item is None:
            raise NotFoundError("Course item not found")
        if not item.type.gradable:
            raise InvalidItemKindError("Submissions are only allowed for assignments and quizzes")
        if item.course_id != enrollment.course_id:
            raise ForbiddenError("Course item does not belong to the enrollment's course")

        if await repo.get_submission_for(enrollment_id=enrollment_id, item_id=item_id) is not None:
            raise AlreadyExistsError("Submission already exists for this item")

        target = transition(None, status or DRAFT)
        submission = await repo.insert_submission(
            enrollment_id=enrollment_id,
            item_id=item_id,
            content=content,
            status=target,
            submitted_at=stamp_submitted_at(None, target, None, utcnow()),
        )
        logger.info("Submission created",
                    extra={"submission_id": submission.id, "enrollment_id": enrollment_id,
                           "item_id": item_id, "status": target.value})
        return submission

    @staticmethod
    async def update(
        repo: GradingRepository,
        submission_id: int,
        *,
        content: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Submission:
        submission = await repo.get_submission(submission_id=submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")

        if content is None and status is None:
            return submission

        if content is not None and submission.status is GRADED:
            raise InvalidTransitionError("A graded submission can no longer be edited")

        target = transition(submission.status, status or submission.status)
        updated = await repo.update_submission(
            submission_id=submission_id,
            content=content if content is not None else submission.content,
            status=target,
            submitted_at=stamp_submitted_at(submission.status, target, submission.submitted_at, utcnow()),
        )
        if target is not submission.status:
            logger.info("Submission status changed",
                        extra={"submission_id": submission_id,
                               "from": submission.status.value, "to": target.value})
        return updated

    @staticmethod
    async def mark_graded(repo: GradingRepository, *, enrollment_id: int, item_id: int) -> Optional[Submission]:
        """Moves the pair's submission, if any, to graded."""
        submission = await repo.get_submission_for(enrollment_id=enrollment_id, item_id=item_id)
        if submission is None or submission.status is GRADED:
            return submission
        return await SubmissionService.update(repo, submission.id, status=GRADED)

    @staticmethod
    async def get(repo: GradingRepository, submission_id: int) -> Submission:
        submission = await repo.get_submission(submission_id=submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    @staticmethod
    async def list_by_item(repo: GradingRepository, item_id: int) -> list[Submission]:
        if await repo.get_item(item_id=item_id) is None:
            raise NotFoundError("Course item not found")
        return await repo.list_submissions_by_item(item_id=item_id)

    @staticmethod
    async def list_mine(
        repo: GradingRepository, *, student_id: int, course_id: Optional[int] = None,
    ) -> list[Submission]:
        return await repo.list_submissions_by_student(student_id=student_id, course_id=course_id)
