from __future__ import annotations
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, computed_field


class ItemType(str, Enum):
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    DOCUMENT = "document"

    @property
    def gradable(self) -> bool:
        return self is not ItemType.DOCUMENT


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    DROPPED = "dropped"
    COMPLETED = "completed"
    PENDING = "pending"


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    GRADED = "graded"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"


class Correctness(str, Enum):
    """Outcome of evaluating one quiz response.

    PENDING_REVIEW means nobody has judged the answer yet (short answers), which
    is not the same thing as INCORRECT.
    """
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PENDING_REVIEW = "pending_review"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "Correctness":
        if flag is None:
            return cls.PENDING_REVIEW
        return cls.CORRECT if flag else cls.INCORRECT

    def as_flag(self) -> Optional[bool]:
        if self is Correctness.PENDING_REVIEW:
            return None
        return self is Correctness.CORRECT


# ---- Entità esterne (lette, mai scritte salvo final_grade) ----
class Course(BaseModel):
    id: int
    professor_id: int
    name: str


class Enrollment(BaseModel):
    id: int
    student_id: int
    course_id: int
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    final_grade: Optional[str] = None


class CourseItem(BaseModel):
    id: int
    course_id: int
    name: str
    type: ItemType
    max_points: float = Field(..., ge=0)
    due_date: Optional[datetime] = None


# ---- Entità del motore di valutazione ----
class Submission(BaseModel):
    id: int
    enrollment_id: int
    item_id: int
    content: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.DRAFT
    submitted_at: Optional[datetime] = None


class QuizOption(BaseModel):
    id: int
    question_id: int
    text: str
    is_correct: bool = False


class QuizQuestion(BaseModel):
    id: int
    item_id: int
    text: str
    type: QuestionType
    points: int = Field(1, ge=1)
    options: list[QuizOption] = Field(default_factory=list)


class QuizResponse(BaseModel):
    id: int
    submission_id: int
    question_id: int
    raw_answer: str
    correctness: Correctness

    @computed_field
    @property
    def is_correct(self) -> Optional[bool]:
        return self.correctness.as_flag()


class ItemGrade(BaseModel):
    id: int
    enrollment_id: int
    item_id: int
    points_earned: float = Field(..., ge=0)
    graded_at: datetime


class FinalizeResult(BaseModel):
    student_id: int
    final_grade: Optional[str] = None
    error: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
