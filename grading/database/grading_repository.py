from __future__ import annotations
from datetime import datetime
from abc import ABC, abstractmethod
from typing import Optional

from grading.schemas.data import (
    Course, CourseItem, Correctness, Enrollment, ItemGrade, QuestionType,
    QuizQuestion, QuizResponse, Submission, SubmissionStatus,
)

class GradingRepository(ABC):
    """Record store consumed by the grading engine.

    Lookups return None when the row is absent; the services decide which
    absence is an error.
    """

    # Entità di riferimento
    @abstractmethod
    async def get_course(self, *, course_id: int) -> Optional[Course]:
        raise NotImplementedError

    @abstractmethod
    async def get_enrollment(self, *, enrollment_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    @abstractmethod
    async def get_active_enrollment(self, *, course_id: int, student_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    @abstractmethod
    async def list_active_enrollments(self, *, course_id: int) -> list[Enrollment]:
        raise NotImplementedError

    @abstractmethod
    async def set_final_grade(self, *, enrollment_id: int, final_grade: Optional[str]) -> None:
        """Only the grade aggregator calls this."""
        raise NotImplementedError

    @abstractmethod
    async def get_item(self, *, item_id: int) -> Optional[CourseItem]:
        raise NotImplementedError

    @abstractmethod
    async def list_items(self, *, course_id: int) -> list[CourseItem]:
        raise NotImplementedError

    # Submissions
    @abstractmethod
    async def get_submission(self, *, submission_id: int) -> Optional[Submission]:
        raise NotImplementedError

    @abstractmethod
    async def get_submission_for(self, *, enrollment_id: int, item_id: int) -> Optional[Submission]:
        raise NotImplementedError

    @abstractmethod
    async def list_submissions_by_item(self, *, item_id: int) -> list[Submission]:
        raise NotImplementedError

    @abstractmethod
    async def list_submissions_by_student(
        self, *, student_id: int, course_id: Optional[int] = None,
    ) -> list[Submission]:
        raise NotImplementedError

    @abstractmethod
    async def insert_submission(
        self, *, enrollment_id: int, item_id: int, content: Optional[str],
        status: SubmissionStatus, submitted_at: Optional[datetime],
    ) -> Submission:
        """Raises AlreadyExistsError if the (enrollment, item) pair is taken."""
        raise NotImplementedError

    @abstractmethod
    async def update_submission(
        self, *, submission_id: int, content: Optional[str],
        status: SubmissionStatus, submitted_at: Optional[datetime],
    ) -> Submission:
        raise NotImplementedError

    # Quiz
    @abstractmethod
    async def insert_question(
        self, *, item_id: int, text: str, question_type: QuestionType, points: int,
        options: list[tuple[str, bool]],
    ) -> QuizQuestion:
        raise NotImplementedError

    @abstractmethod
    async def get_question(self, *, question_id: int) -> Optional[QuizQuestion]:
        """Returns the question with its options, ordered by id."""
        raise NotImplementedError

    @abstractmethod
    async def list_questions(self, *, item_id: int) -> list[QuizQuestion]:
        raise NotImplementedError

    @abstractmethod
    async def upsert_quiz_response(
        self, *, submission_id: int, question_id: int, raw_answer: str, correctness: Correctness,
    ) -> QuizResponse:
        raise NotImplementedError

    @abstractmethod
    async def list_quiz_responses(self, *, submission_id: int) -> list[QuizResponse]:
        raise NotImplementedError

    # Voti
    @abstractmethod
    async def upsert_item_grade(
        self, *, enrollment_id: int, item_id: int, points_earned: float, graded_at: datetime,
    ) -> ItemGrade:
        """Checks 0 <= points_earned <= max_points and writes in one transaction.

        Raises NotFoundError for a missing item and OutOfRangeError when the
        points fall outside the item's range; nothing is written in either case.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_item_grade(self, *, enrollment_id: int, item_id: int) -> Optional[ItemGrade]:
        raise NotImplementedError

    @abstractmethod
    async def list_grades_by_enrollment(self, *, enrollment_id: int) -> list[ItemGrade]:
        raise NotImplementedError

    @abstractmethod
    async def list_grades_by_item(self, *, item_id: int) -> list[ItemGrade]:
        raise NotImplementedError
