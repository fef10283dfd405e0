import itertools
from collections import defaultdict
from datetime import datetime
from typing import Optional

import pytest

from grading.core.errors import AlreadyExistsError, NotFoundError, OutOfRangeError
from grading.database.grading_repository import GradingRepository
from grading.schemas.data import (
    Course, CourseItem, Enrollment, EnrollmentStatus, ItemGrade, ItemType,
    QuestionType, QuizOption, QuizQuestion, QuizResponse, Submission,
)

PROFESSOR_ID = 100


# Fake repository in memoria, stesse regole di unicità delle tabelle Postgres
class FakeGradingRepository(GradingRepository):
    def __init__(self):
        self.courses: dict[int, Course] = {}
        self.enrollments: dict[int, Enrollment] = {}
        self.items: dict[int, CourseItem] = {}
        self.submissions: dict[int, Submission] = {}
        self.questions: dict[int, QuizQuestion] = {}
        self.responses: dict[int, QuizResponse] = {}
        self.grades: dict[int, ItemGrade] = {}
        self._seq = defaultdict(lambda: itertools.count(1))

    def _next(self, table: str) -> int:
        return next(self._seq[table])

    # ---- seed ----
    def add_course(self, *, professor_id: int = PROFESSOR_ID, name: str = "Algorithms") -> Course:
        course = Course(id=self._next("courses"), professor_id=professor_id, name=name)
        self.courses[course.id] = course
        return course

    def add_enrollment(
        self, *, student_id: int, course_id: int, status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
    ) -> Enrollment:
        enrollment = Enrollment(
            id=self._next("enrollments"), student_id=student_id, course_id=course_id, status=status,
        )
        self.enrollments[enrollment.id] = enrollment
        return enrollment

    def add_item(
        self, *, course_id: int, type: ItemType = ItemType.ASSIGNMENT, max_points: float = 100,
        name: str = "Homework",
    ) -> CourseItem:
        item = CourseItem(
            id=self._next("items"), course_id=course_id, name=name, type=type, max_points=max_points,
        )
        self.items[item.id] = item
        return item

    def add_question(
        self, *, item_id: int, type: QuestionType = QuestionType.MULTIPLE_CHOICE, points: int = 1,
        options: Optional[list[tuple[str, bool]]] = None, text: str = "Question?",
    ) -> QuizQuestion:
        question_id = self._next("questions")
        stored = [
            QuizOption(id=self._next("options"), question_id=question_id, text=t, is_correct=c)
            for t, c in (options or [])
        ]
        question = QuizQuestion(id=question_id, item_id=item_id, text=text, type=type,
                                points=points, options=stored)
        self.questions[question.id] = question
        return question

    # ---- entità di riferimento ----
    async def get_course(self, *, course_id):
        return self.courses.get(course_id)

    async def get_enrollment(self, *, enrollment_id):
        return self.enrollments.get(enrollment_id)

    async def get_active_enrollment(self, *, course_id, student_id):
        for e in self.enrollments.values():
            if e.course_id == course_id and e.student_id == student_id and e.status is EnrollmentStatus.ACTIVE:
                return e
        return None

    async def list_active_enrollments(self, *, course_id):
        found = [e for e in self.enrollments.values()
                 if e.course_id == course_id and e.status is EnrollmentStatus.ACTIVE]
        return sorted(found, key=lambda e: e.student_id)

    async def set_final_grade(self, *, enrollment_id, final_grade):
        enrollment = self.enrollments[enrollment_id]
        self.enrollments[enrollment_id] = enrollment.model_copy(update={"final_grade": final_grade})

    async def get_item(self, *, item_id):
        return self.items.get(item_id)

    async def list_items(self, *, course_id):
        return [i for i in self.items.values() if i.course_id == course_id]

    # ---- submissions ----
    async def get_submission(self, *, submission_id):
        return self.submissions.get(submission_id)

    async def get_submission_for(self, *, enrollment_id, item_id):
        for s in self.submissions.values():
            if s.enrollment_id == enrollment_id and s.item_id == item_id:
                return s
        return None

    async def list_submissions_by_item(self, *, item_id):
        return [s for s in self.submissions.values() if s.item_id == item_id]

    async def list_submissions_by_student(self, *, student_id, course_id=None):
        return [
            s for s in self.submissions.values()
            if self.enrollments[s.enrollment_id].student_id == student_id
            and (course_id is None or self.enrollments[s.enrollment_id].course_id == course_id)
        ]

    async def insert_submission(self, *, enrollment_id, item_id, content, status, submitted_at):
        if await self.get_submission_for(enrollment_id=enrollment_id, item_id=item_id):
            raise AlreadyExistsError("Submission already exists for this item")
        submission = Submission(
            id=self._next("submissions"), enrollment_id=enrollment_id, item_id=item_id,
            content=content, status=status, submitted_at=submitted_at,
        )
        self.submissions[submission.id] = submission
        return submission

    async def update_submission(self, *, submission_id, content, status, submitted_at):
        if submission_id not in self.submissions:
            raise NotFoundError("Submission not found")
        updated = self.submissions[submission_id].model_copy(
            update={"content": content, "status": status, "submitted_at": submitted_at}
        )
        self.submissions[submission_id] = updated
        return updated

    # ---- quiz ----
    async def insert_question(self, *, item_id, text, question_type, points, options):
        return self.add_question(item_id=item_id, type=question_type, points=points,
                                 options=options, text=text)

    async def get_question(self, *, question_id):
        return self.questions.get(question_id)

    async def list_questions(self, *, item_id):
        return [q for q in self.questions.values() if q.item_id == item_id]

    async def upsert_quiz_response(self, *, submission_id, question_id, raw_answer, correctness):
        existing = next(
            (r for r in self.responses.values()
             if r.submission_id == submission_id and r.question_id == question_id),
            None,
        )
        response_id = existing.id if existing else self._next("responses")
        response = QuizResponse(id=response_id, submission_id=submission_id, question_id=question_id,
                                raw_answer=raw_answer, correctness=correctness)
        self.responses[response_id] = response
        return response

    async def list_quiz_responses(self, *, submission_id):
        return sorted((r for r in self.responses.values() if r.submission_id == submission_id),
                      key=lambda r: r.question_id)

    # ---- voti ----
    async def upsert_item_grade(self, *, enrollment_id, item_id, points_earned, graded_at):
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError("Course item not found")
        if points_earned < 0 or points_earned > item.max_points:
            raise OutOfRangeError("Points earned out of range")
        existing = await self.get_item_grade(enrollment_id=enrollment_id, item_id=item_id)
        grade = ItemGrade(
            id=existing.id if existing else self._next("grades"),
            enrollment_id=enrollment_id, item_id=item_id,
            points_earned=points_earned, graded_at=graded_at,
        )
        self.grades[grade.id] = grade
        return grade

    async def get_item_grade(self, *, enrollment_id, item_id):
        for g in self.grades.values():
            if g.enrollment_id == enrollment_id and g.item_id == item_id:
                return g
        return None

    async def list_grades_by_enrollment(self, *, enrollment_id):
        return sorted((g for g in self.grades.values() if g.enrollment_id == enrollment_id),
                      key=lambda g: g.item_id)

    async def list_grades_by_item(self, *, item_id):
        return sorted((g for g in self.grades.values() if g.item_id == item_id),
                      key=lambda g: g.enrollment_id)


@pytest.fixture
def repo():
    return FakeGradingRepository()


@pytest.fixture
def course(repo):
    return repo.add_course()


@pytest.fixture
def assignment(repo, course):
    return repo.add_item(course_id=course.id, type=ItemType.ASSIGNMENT, max_points=100)


@pytest.fixture
def quiz(repo, course):
    return repo.add_item(course_id=course.id, type=ItemType.QUIZ, max_points=10, name="Quiz 1")


@pytest.fixture
def enrollment(repo, course):
    return repo.add_enrollment(student_id=1, course_id=course.id)


@pytest.fixture
def fixed_now(monkeypatch):
    now = datetime(2024, 3, 1, 12, 0, 0)
    monkeypatch.setattr("grading.services.submission_service.utcnow", lambda: now)
    return now

