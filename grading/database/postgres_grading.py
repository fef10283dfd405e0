from __future__ import annotations
from datetime import datetime
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy import select, update, insert

from grading.core.errors import AlreadyExistsError, NotFoundError, OutOfRangeError
from grading.database.grading_repository import GradingRepository
from grading.database.tables import (
    metadata, courses, enrollments, course_items, submissions,
    quiz_questions, quiz_options, quiz_responses, item_grades,
)
from grading.schemas.data import (
    Course, CourseItem, Correctness, Enrollment, EnrollmentStatus, ItemGrade,
    QuestionType, QuizOption, QuizQuestion, QuizResponse, Submission, SubmissionStatus,
)

logger = logging.getLogger("grading.repository")

def _response(row) -> QuizResponse:
    return QuizResponse(
        id=row["id"],
        submission_id=row["submission_id"],
        question_id=row["question_id"],
        raw_answer=row["raw_answer"],
        correctness=Correctness.from_flag(row["is_correct"]),
    )

class PostgresGradingRepository(GradingRepository):
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    async def ensure_schema(self) -> None:
        logger.info("Ensuring schema for grading tables")
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Schema ready")

    async def _one(self, stmt) -> Optional[dict]:
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        return dict(row) if row is not None else None

    async def _all(self, stmt) -> list[dict]:
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [dict(r) for r in rows]

    # -----------------------------
    # Entità di riferimento
    # -----------------------------
    async def get_course(self, *, course_id: int) -> Optional[Course]:
        row = await self._one(select(courses).where(courses.c.id == course_id))
        return Course.model_validate(row) if row else None

    async def get_enrollment(self, *, enrollment_id: int) -> Optional[Enrollment]:
        row = await self._one(select(enrollments).where(enrollments.c.id == enrollment_id))
        return Enrollment.model_validate(row) if row else None

    async def get_active_enrollment(self, *, course_id: int, student_id: int) -> Optional[Enrollment]:
        row = await self._one(
            select(enrollments).where(
                enrollments.c.course_id == course_id,
                enrollments.c.student_id == student_id,
                enrollments.c.status == EnrollmentStatus.ACTIVE.value,
            )
        )
        return Enrollment.model_validate(row) if row else None

    async def list_active_enrollments(self, *, course_id: int) -> list[Enrollment]:
        rows = await self._all(
            select(enrollments)
            .where(
                enrollments.c.course_id == course_id,
                enrollments.c.status == EnrollmentStatus.ACTIVE.value,
            )
            .order_by(enrollments.c.student_id)
        )
        return [Enrollment.model_validate(r) for r in rows]

    async def set_final_grade(self, *, enrollment_id: int, final_grade: Optional[str]) -> None:
        stmt = (
            update(enrollments)
            .where(enrollments.c.id == enrollment_id)
            .values(final_grade=final_grade)
        )
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()
        logger.debug("Final grade cached", extra={"enrollment_id": enrollment_id, "final_grade": final_grade})

    async def get_item(self, *, item_id: int) -> Optional[CourseItem]:
        row = await self._one(select(course_items).where(course_items.c.id == item_id))
        return CourseItem.model_validate(row) if row else None

    async def list_items(self, *, course_id: int) -> list[CourseItem]:
        rows = await self._all(
            select(course_items)
            .where(course_items.c.course_id == course_id)
            .order_by(course_items.c.due_date, course_items.c.id)
        )
        return [CourseItem.model_validate(r) for r in rows]

    # -----------------------------
    # Submissions
    # -----------------------------
    async def get_submission(self, *, submission_id: int) -> Optional[Submission]:
        row = await self._one(select(submissions).where(submissions.c.id == submission_id))
        return Submission.model_validate(row) if row else None

    async def get_submission_for(self, *, enrollment_id: int, item_id: int) -> Optional[Submission]:
        row = await self._one(
            select(submissions).where(
                submissions.c.enrollment_id == enrollment_id,
                submissions.c.item_id == item_id,
            )
        )
        return Submission.model_validate(row) if row else None

    async def list_submissions_by_item(self, *, item_id: int) -> list[Submission]:
        rows = await self._all(
            select(submissions)
            .where(submissions.c.item_id == item_id)
            .order_by(submissions.c.submitted_at.desc().nulls_last(), submissions.c.id)
        )
        return [Submission.model_validate(r) for r in rows]

    async def list_submissions_by_student(
        self, *, student_id: int, course_id: Optional[int] = None,
    ) -> list[Submission]:
        stmt = (
            select(submissions)
            .join(enrollments, submissions.c.enrollment_id == enrollments.c.id)
            .where(enrollments.c.student_id == student_id)
        )
        if course_id is not None:
            stmt = stmt.where(enrollments.c.course_id == course_id)
        rows = await self._all(
            stmt.order_by(submissions.c.submitted_at.desc().nulls_last(), submissions.c.id)
        )
        return [Submission.model_validate(r) for r in rows]

    async def insert_submission(
        self, *, enrollment_id: int, item_id: int, content: Optional[str],
        status: SubmissionStatus, submitted_at: Optional[datetime],
    ) -> Submission:
        stmt = (
            pg_insert(submissions)
            .values(
                enrollment_id=enrollment_id,
                item_id=item_id,
                content=content,
                status=status.value,
                submitted_at=submitted_at,
            )
            .on_conflict_do_nothing(
                index_elements=[submissions.c.enrollment_id, submissions.c.item_id]
            )
            .returning(*submissions.c)
        )
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
            await session.commit()
        if row is None:
            raise AlreadyExistsError("Submission already exists for this item")
        logger.debug("Submission inserted",
                     extra={"submission_id": row["id"], "enrollment_id": enrollment_id, "item_id": item_id})
        return Submission.model_validate(dict(row))

    async def update_submission(
        self, *, submission_id: int, content: Optional[str],
        status: SubmissionStatus, submitted_at: Optional[datetime],
    ) -> Submission:
        stmt = (
            update(submissions)
            .where(submissions.c.id == submission_id)
            .values(content=content, status=status.value, submitted_at=submitted_at)
            .returning(*submissions.c)
        )
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
            await session.commit()
        if row is None:
            raise NotFoundError("Submission not found")
        logger.debug("Submission updated", extra={"submission_id": submission_id, "status": status.value})
        return Submission.model_validate(dict(row))

    # -----------------------------
    # Quiz
    # -----------------------------
    async def insert_question(
        self, *, item_id: int, text: str, question_type: QuestionType, points: int,
        options: list[tuple[str, bool]],
    ) -> QuizQuestion:
        async with self.session_factory() as session:
            async with session.begin():
                question = (await session.execute(
                    insert(quiz_questions)
                    .values(item_id=item_id, text=text, type=question_type.value, points=points)
                    .returning(*quiz_questions.c)
                )).mappings().one()
                stored = []
                for option_text, is_correct in options:
                    option = (await session.execute(
                        insert(quiz_options)
                        .values(question_id=question["id"], text=option_text, is_correct=is_correct)
                        .returning(*quiz_options.c)
                    )).mappings().one()
                    stored.append(QuizOption.model_validate(dict(option)))
        logger.debug("Question inserted",
                     extra={"question_id": question["id"], "item_id": item_id, "options": len(stored)})
        return QuizQuestion(**dict(question), options=stored)

    async def _with_options(self, rows: list[dict]) -> list[QuizQuestion]:
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        option_rows = await self._all(
            select(quiz_options)
            .where(quiz_options.c.question_id.in_(ids))
            .order_by(quiz_options.c.id)
        )
        by_question: dict[int, list[QuizOption]] = {i: [] for i in ids}
        for o in option_rows:
            by_question[o["question_id"]].append(QuizOption.model_validate(o))
        return [QuizQuestion(**r, options=by_question[r["id"]]) for r in rows]

    async def get_question(self, *, question_id: int) -> Optional[QuizQuestion]:
        row = await self._one(select(quiz_questions).where(quiz_questions.c.id == question_id))
        if row is None:
            return None
        return (await self._with_options([row]))[0]

    async def list_questions(self, *, item_id: int) -> list[QuizQuestion]:
        rows = await self._all(
            select(quiz_questions)
            .where(quiz_questions.c.item_id == item_id)
            .order_by(quiz_questions.c.id)
        )
        return await self._with_options(rows)

    async def upsert_quiz_response(
        self, *, submission_id: int, question_id: int, raw_answer: str, correctness: Correctness,
    ) -> QuizResponse:
        is_correct = correctness.as_flag()
        stmt = (
            pg_insert(quiz_responses)
            .values(
                submission_id=submission_id,
                question_id=question_id,
                raw_answer=raw_answer,
                is_correct=is_correct,
            )
            .on_conflict_do_update(
                index_elements=[quiz_responses.c.submission_id, quiz_responses.c.question_id],
                set_={"raw_answer": raw_answer, "is_correct": is_correct},
            )
            .returning(*quiz_responses.c)
        )
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).mappings().one()
            await session.commit()
        logger.debug("Quiz response upserted",
                     extra={"submission_id": submission_id, "question_id": question_id,
                            "correctness": correctness.value})
        return _response(row)

    async def list_quiz_responses(self, *, submission_id: int) -> list[QuizResponse]:
        rows = await self._all(
            select(quiz_responses)
            .where(quiz_responses.c.submission_id == submission_id)
            .order_by(quiz_responses.c.question_id)
        )
        return [_response(r) for r in rows]

    # -----------------------------
    # Voti
    # -----------------------------
    async def upsert_item_grade(
        self, *, enrollment_id: int, item_id: int, points_earned: float, graded_at: datetime,
    ) -> ItemGrade:
        async with self.session_factory() as session:
            async with session.begin():
                # lock sulla riga dell'item: max_points non può cambiare tra controllo e scrittura
                max_points = (await session.execute(
                    select(course_items.c.max_points)
                    .where(course_items.c.id == item_id)
                    .with_for_update()
                )).scalar_one_or_none()
                if max_points is None:
                    raise NotFoundError("Course item not found")
                if points_earned < 0 or points_earned > max_points:
                    raise OutOfRangeError(
                        f"Points earned must be between 0 and max points ({max_points})"
                    )
                stmt = (
                    pg_insert(item_grades)
                    .values(
                        enrollment_id=enrollment_id,
                        item_id=item_id,
                        points_earned=points_earned,
                        graded_at=graded_at,
                    )
                    .on_conflict_do_update(
                        index_elements=[item_grades.c.enrollment_id, item_grades.c.item_id],
                        set_={"points_earned": points_earned, "graded_at": graded_at},
                    )
                    .returning(*item_grades.c)
                )
                row = (await session.execute(stmt)).mappings().one()
        logger.debug("Item grade upserted",
                     extra={"enrollment_id": enrollment_id, "item_id": item_id, "points_earned": points_earned})
        return ItemGrade.model_validate(dict(row))

    async def get_item_grade(self, *, enrollment_id: int, item_id: int) -> Optional[ItemGrade]:
        row = await self._one(
            select(item_grades).where(
                item_grades.c.enrollment_id == enrollment_id,
                item_grades.c.item_id == item_id,
            )
        )
        return ItemGrade.model_validate(row) if row else None

    async def list_grades_by_enrollment(self, *, enrollment_id: int) -> list[ItemGrade]:
        rows = await self._all(
            select(item_grades)
            .join(course_items, item_grades.c.item_id == course_items.c.id)
            .where(item_grades.c.enrollment_id == enrollment_id)
            .order_by(course_items.c.due_date, item_grades.c.item_id)
        )
        return [ItemGrade.model_validate(r) for r in rows]

    async def list_grades_by_item(self, *, item_id: int) -> list[ItemGrade]:
        rows = await self._all(
            select(item_grades)
            .where(item_grades.c.item_id == item_id)
            .order_by(item_grades.c.enrollment_id)
        )
        return [ItemGrade.model_validate(r) for r in rows]
