from sqlalchemy import (
    MetaData, Table, Column, String, Integer, Float, Boolean, Text,
    UniqueConstraint, CheckConstraint, func, DateTime, ForeignKey
)

metadata = MetaData()

# ---- Tabelle di riferimento (gestite dal servizio corsi) ----
courses = Table(
    "courses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("professor_id", Integer, nullable=False, index=True),
    Column("name", String(200), nullable=False),
)

enrollments = Table(
    "enrollments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, nullable=False, index=True),
    Column(
        "course_id",
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("status", String(16), nullable=False, server_default="active"),
    Column("final_grade", String(2), nullable=True),
    UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    CheckConstraint(
        "status IN ('active', 'dropped', 'completed', 'pending')",
        name="ck_enrollment_status",
    ),
)

course_items = Table(
    "course_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_id",
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(200), nullable=False),
    Column("type", String(16), nullable=False),
    Column("max_points", Float, nullable=False),
    Column("due_date", DateTime(timezone=True), nullable=True),
    CheckConstraint("type IN ('assignment', 'quiz', 'document')", name="ck_item_type"),
    CheckConstraint("max_points >= 0", name="ck_item_max_points"),
)

# ---- Tabelle del motore di valutazione ----
submissions = Table(
    "submissions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "enrollment_id",
        Integer,
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "item_id",
        Integer,
        ForeignKey("course_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("content", Text, nullable=True),
    Column("status", String(16), nullable=False, server_default="draft"),
    Column("submitted_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("enrollment_id", "item_id", name="uq_submission_enrollment_item"),
    CheckConstraint("status IN ('draft', 'submitted', 'graded')", name="ck_submission_status"),
)

quiz_questions = Table(
    "quiz_questions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "item_id",
        Integer,
        ForeignKey("course_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("text", Text, nullable=False),
    Column("type", String(32), nullable=False),
    Column("points", Integer, nullable=False, server_default="1"),
    CheckConstraint("type IN ('multiple_choice', 'short_answer')", name="ck_question_type"),
    CheckConstraint("points >= 1", name="ck_question_points"),
)

quiz_options = Table(
    "quiz_options",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "question_id",
        Integer,
        ForeignKey("quiz_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("text", Text, nullable=False),
    Column("is_correct", Boolean, nullable=False, server_default="false"),
)

quiz_responses = Table(
    "quiz_responses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "submission_id",
        Integer,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "question_id",
        Integer,
        ForeignKey("quiz_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("raw_answer", Text, nullable=False),
    # NULL = in attesa di revisione manuale
    Column("is_correct", Boolean, nullable=True),
    UniqueConstraint("submission_id", "question_id", name="uq_response_submission_question"),
)

item_grades = Table(
    "item_grades",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "enrollment_id",
        Integer,
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "item_id",
        Integer,
        ForeignKey("course_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("points_earned", Float, nullable=False),
    Column("graded_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("enrollment_id", "item_id", name="uq_grade_enrollment_item"),
    CheckConstraint("points_earned >= 0", name="ck_grade_points_non_negative"),
)
