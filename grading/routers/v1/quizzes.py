# grading/routers/v1/quizzes.py
from fastapi import APIRouter, status
from grading.core.deps import GradingRepoDep, UserDep
from grading.schemas.data import QuizQuestion, QuizResponse
from grading.schemas.payloads import QuizQuestionPayload, QuizResponsePayload, QuizScore
from grading.services.auth_service import AccessService
from grading.services.grade_service import GradeService
from grading.services.quiz_service import QuizService, strip_answers
from grading.services.submission_service import SubmissionService

router = APIRouter()

@router.post("/quizzes/questions", status_code=status.HTTP_201_CREATED)
async def create_question(payload: QuizQuestionPayload, user: UserDep, repo: GradingRepoDep) -> QuizQuestion:
    await AccessService.item_professor(user, repo, payload.item_id)
    return await QuizService.create_question(repo, payload)

@router.get("/quizzes/{item_id}/questions")
async def quiz_questions(item_id: int, user: UserDep, repo: GradingRepoDep):
    await AccessService.item_member(user, repo, item_id)
    questions = await QuizService.questions(repo, item_id)
    if user.is_professor:
        return questions
    return strip_answers(questions)

@router.post("/quizzes/responses", status_code=status.HTTP_201_CREATED)
async def submit_response(payload: QuizResponsePayload, user: UserDep, repo: GradingRepoDep) -> QuizResponse:
    submission = await SubmissionService.get(repo, payload.submission_id)
    await AccessService.enrollment_owner(user, repo, submission.enrollment_id)
    return await QuizService.submit_response(
        repo,
        submission_id=payload.submission_id,
        question_id=payload.question_id,
        raw_answer=payload.raw_answer,
    )

@router.get("/quizzes/submissions/{submission_id}/responses")
async def quiz_responses(submission_id: int, user: UserDep, repo: GradingRepoDep):
    submission = await SubmissionService.get(repo, submission_id)
    await AccessService.submission_reader(user, repo, submission)
    responses, questions = await QuizService.responses(repo, submission_id)
    return {
        "responses": responses,
        "questions": questions if user.is_professor else strip_answers(questions),
    }

@router.post("/quizzes/submissions/{submission_id}/score")
async def score_quiz(submission_id: int, user: UserDep, repo: GradingRepoDep, record: bool = False) -> QuizScore:
    submission = await SubmissionService.get(repo, submission_id)
    await AccessService.item_professor(user, repo, submission.item_id)
    points = await QuizService.score(repo, submission_id)
    if record:
        await GradeService.grade_item(
            repo,
            enrollment_id=submission.enrollment_id,
            item_id=submission.item_id,
            points_earned=points,
        )
    return QuizScore(submission_id=submission_id, points=points, recorded=record)
