from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field

from grading.schemas.data import (
    ItemGrade, CourseItem, QuestionType, SubmissionStatus,
)

# ---- Richieste ----
class SubmissionCreatePayload(BaseModel):
    enrollment_id: int
    item_id: int
    content: Optional[str] = None
    status: Optional[SubmissionStatus] = None

class SubmissionUpdatePayload(BaseModel):
    content: Optional[str] = None
    status: Optional[SubmissionStatus] = None

class QuizOptionPayload(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool = False

class QuizQuestionPayload(BaseModel):
    item_id: int
    text: str = Field(..., min_length=1)
    type: QuestionType
    points: int = Field(1, ge=1)
    options: list[QuizOptionPayload] = Field(default_factory=list)

class QuizResponsePayload(BaseModel):
    submission_id: int
    question_id: int
    raw_answer: str

class GradeItemPayload(BaseModel):
    enrollment_id: int
    item_id: int
    points_earned: float

# ---- Risposte ----
class QuizScore(BaseModel):
    submission_id: int
    points: float
    recorded: bool = False

class MyGrades(BaseModel):
    grades: list[ItemGrade]
    ungraded_items: list[CourseItem]
    final_grade: Optional[str] = None
