# grading/routers/v1/submissions.py
from typing import Optional
from fastapi import APIRouter, status
from grading.core.deps import GradingRepoDep, UserDep
from grading.core.errors import ForbiddenError
from grading.schemas.data import Submission, SubmissionStatus
from grading.schemas.payloads import SubmissionCreatePayload, SubmissionUpdatePayload
from grading.services.auth_service import AccessService
from grading.services.submission_service import SubmissionService

router = APIRouter()

@router.post("/submissions", status_code=status.HTTP_201_CREATED)
async def create_submission(payload: SubmissionCreatePayload, user: UserDep, repo: GradingRepoDep) -> Submission:
    await AccessService.enrollment_owner(user, repo, payload.enrollment_id)
    return await SubmissionService.create(
        repo,
        enrollment_id=payload.enrollment_id,
        item_id=payload.item_id,
        content=payload.content,
        status=payload.status,
    )

@router.get("/submissions")
async def my_submissions(
    user: UserDep, repo: GradingRepoDep, course_id: Optional[int] = None
) -> list[Submission]:
    return await SubmissionService.list_mine(repo, student_id=user.user_id, course_id=course_id)

@router.put("/submissions/{submission_id}")
async def update_submission(
    submission_id: int, payload: SubmissionUpdatePayload, user: UserDep, repo: GradingRepoDep
) -> Submission:
    submission = await SubmissionService.get(repo, submission_id)
    await AccessService.enrollment_owner(user, repo, submission.enrollment_id)
    if payload.status is SubmissionStatus.GRADED:
        raise ForbiddenError("Only grading can mark a submission as graded")
    return await SubmissionService.update(
        repo, submission_id, content=payload.content, status=payload.status
    )

@router.get("/submissions/{submission_id}")
async def get_submission(submission_id: int, user: UserDep, repo: GradingRepoDep) -> Submission:
    submission = await SubmissionService.get(repo, submission_id)
    await AccessService.submission_reader(user, repo, submission)
    return submission

@router.get("/submissions/item/{item_id}")
async def submissions_by_item(item_id: int, user: UserDep, repo: GradingRepoDep) -> list[Submission]:
    await AccessService.item_professor(user, repo, item_id)
    return await SubmissionService.list_by_item(repo, item_id)
