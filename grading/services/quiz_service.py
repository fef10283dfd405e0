# grading/services/quiz_service.py
from __future__ import annotations
import logging

from grading.core.errors import (
    ForbiddenError, InvalidItemKindError, InvalidQuestionError, InvalidTransitionError, NotFoundError,
)
from grading.database.grading_repository import GradingRepository
from grading.schemas.data import (
    Correctness, ItemType, QuestionType, QuizQuestion, QuizResponse, SubmissionStatus,
)
from grading.schemas.payloads import QuizQuestionPayload

logger = logging.getLogger(__name__)


def evaluate(question: QuizQuestion, raw_answer: str) -> Correctness:
    """Decides correctness of one answer at the moment it is written.

    Short answers are never judged automatically. A multiple-choice question
    without exactly one correct option evaluates to INCORRECT instead of raising.
    """
    if question.type is QuestionType.SHORT_ANSWER:
        return Correctness.PENDING_REVIEW

    correct = [o for o in question.options if o.is_correct]
    if len(correct) != 1:
        logger.warning("Question %s has %d correct options", question.id, len(correct))
        return Correctness.INCORRECT
    if raw_answer == str(correct[0].id):
        return Correctness.CORRECT
    return Correctness.INCORRECT


def score_responses(responses: list[QuizResponse], questions: list[QuizQuestion]) -> int:
    points = {q.id: q.points for q in questions}
    return sum(
        points.get(r.question_id, 0)
        for r in responses
        if r.correctness is Correctness.CORRECT
    )


def strip_answers(questions: list[QuizQuestion]) -> list[dict]:
    """Question payloads for students: options without is_correct."""
    return [
        q.model_dump(mode="json", exclude={"options": {"__all__": {"is_correct"}}})
        for q in questions
    ]


class QuizService:
    @staticmethod
    async def _quiz_item(repo: GradingRepository, item_id: int):
        item = await repo.get_item(item_id=item_id)
        if item is None:
            raise NotFoundError("Course item not found")
        if item.type is not ItemType.QUIZ:
            raise InvalidItemKindError("This item is not a quiz")
        return item

    @staticmethod
    async def create_question(repo: GradingRepository, payload: QuizQuestionPayload) -> QuizQuestion:
        await QuizService._quiz_item(repo, payload.item_id)

        options: list[tuple[str, bool]] = []
        if payload.type is QuestionType.MULTIPLE_CHOICE:
            if len(payload.options) < 2:
                raise InvalidQuestionError("Multiple choice questions require at least 2 options")
            correct = sum(1 for o in payload.options if o.is_correct)
            if correct != 1:
                raise InvalidQuestionError("Multiple choice questions require exactly one correct option")
            options = [(o.text, o.is_correct) for o in payload.options]

        question = await repo.insert_question(
            item_id=payload.item_id,
            text=payload.text,
            question_type=payload.type,
            points=payload.points,
            options=options,
        )
        logger.info("Quiz question created",
                    extra={"question_id": question.id, "item_id": payload.item_id, "type": payload.type.value})
        return question

    @staticmethod
    async def questions(repo: GradingRepository, item_id: int) -> list[QuizQuestion]:
        await QuizService._quiz_item(repo, item_id)
        return await repo.list_questions(item_id=item_id)

    @staticmethod
    async def submit_response(
        repo: GradingRepository, *, submission_id: int, question_id: int, raw_answer: str,
    ) -> QuizResponse:
        submission = await repo.get_submission(submission_id=submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        question = await repo.get_question(question_id=question_id)
        if question is None:
            raise NotFoundError("Question not found")
        if question.item_id != submission.item_id:
            raise ForbiddenError("Question does not belong to this submission's quiz")
        if submission.status is SubmissionStatus.GRADED:
            raise InvalidTransitionError("Responses cannot change after the quiz has been graded")

        correctness = evaluate(question, raw_answer)
        response = await repo.upsert_quiz_response(
            submission_id=submission_id,
            question_id=question_id,
            raw_answer=raw_answer,
            correctness=correctness,
        )
        logger.info("Quiz response stored",
                    extra={"submission_id": submission_id, "question_id": question_id,
                           "correctness": correctness.value})
        return response

    @staticmethod
    async def responses(repo: GradingRepository, submission_id: int) -> tuple[list[QuizResponse], list[QuizQuestion]]:
        submission = await repo.get_submission(submission_id=submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        await QuizService._quiz_item(repo, submission.item_id)
        responses = await repo.list_quiz_responses(submission_id=submission_id)
        questions = await repo.list_questions(item_id=submission.item_id)
        return responses, questions

    @staticmethod
    async def score(repo: GradingRepository, submission_id: int) -> int:
        """Points earned on a quiz submission; reads only, safe to repeat."""
        submission = await repo.get_submission(submission_id=submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        await QuizService._quiz_item(repo, submission.item_id)
        responses = await repo.list_quiz_responses(submission_id=submission_id)
        questions = await repo.list_questions(item_id=submission.item_id)
        points = score_responses(responses, questions)
        logger.info("Quiz scored", extra={"submission_id": submission_id, "points": points})
        return points
