import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient
from fastapi import HTTPException

from grading.main import create_app
from grading.schemas.context import UserContext, PROFESSOR, STUDENT
from grading.schemas.data import ItemType, SubmissionStatus
from grading.services.auth_service import AuthService

API = "/api/v1"


@pytest.fixture
def app(repo):
    return create_app(repository=repo)


@pytest.fixture
def login(app):
    def _login(user_id, role):
        app.dependency_overrides[AuthService.get_current_user] = lambda: UserContext(user_id=user_id, role=role)
        return TestClient(app)
    return _login


def test_health(app):
    response = TestClient(app).get(f"{API}/grading/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_token_is_unauthorized(app):
    response = TestClient(app).get(f"{API}/grades/me/course/1")
    assert response.status_code == 401


def test_student_submission_flow(repo, login, enrollment, assignment):
    client = login(enrollment.student_id, STUDENT)

    created = client.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": assignment.id})
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "draft"
    assert body["submitted_at"] is None

    submitted = client.put(f"{API}/submissions/{body['id']}", json={"content": "essay", "status": "submitted"})
    assert submitted.status_code == 200
    assert submitted.json()["submitted_at"] is not None

    duplicate = client.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": assignment.id})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "already_exists"


def test_student_cannot_self_grade(repo, login, enrollment, assignment):
    client = login(enrollment.student_id, STUDENT)
    created = client.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": assignment.id})

    response = client.put(f"{API}/submissions/{created.json()['id']}", json={"status": "graded"})

    assert response.status_code == 403
    assert repo.submissions[created.json()["id"]].status is SubmissionStatus.DRAFT


def test_student_cannot_use_someone_elses_enrollment(login, enrollment, assignment):
    client = login(enrollment.student_id + 1, STUDENT)

    response = client.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": assignment.id})

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


def test_professor_grades_and_student_sees_final_grade(repo, login, course, enrollment, assignment):
    professor = login(course.professor_id, PROFESSOR)
    graded = professor.post(
        f"{API}/grades",
        json={"enrollment_id": enrollment.id, "item_id": assignment.id, "points_earned": 90},
    )
    assert graded.status_code == 200
    assert graded.json()["points_earned"] == 90

    student = login(enrollment.student_id, STUDENT)
    mine = student.get(f"{API}/grades/me/course/{course.id}").json()
    assert mine["final_grade"] == "A-"
    assert [g["item_id"] for g in mine["grades"]] == [assignment.id]


def test_out_of_range_grade_maps_to_4xx(repo, login, course, enrollment, assignment):
    professor = login(course.professor_id, PROFESSOR)

    response = professor.post(
        f"{API}/grades",
        json={"enrollment_id": enrollment.id, "item_id": assignment.id, "points_earned": 101},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "out_of_range"
    assert repo.grades == {}


def test_other_professor_is_forbidden(login, course, enrollment, assignment):
    intruder = login(course.professor_id + 1, PROFESSOR)

    response = intruder.post(
        f"{API}/grades",
        json={"enrollment_id": enrollment.id, "item_id": assignment.id, "points_earned": 10},
    )

    assert response.status_code == 403


def test_quiz_flow_with_recorded_score(repo, login, course, enrollment, quiz):
    professor = login(course.professor_id, PROFESSOR)
    question = professor.post(f"{API}/quizzes/questions", json={
        "item_id": quiz.id, "text": "Capital of Italy?", "type": "multiple_choice", "points": 5,
        "options": [{"text": "Paris"}, {"text": "Rome", "is_correct": True}],
    })
    assert question.status_code == 201
    correct_option = next(o for o in question.json()["options"] if o["is_correct"])

    student = login(enrollment.student_id, STUDENT)
    listed = student.get(f"{API}/quizzes/{quiz.id}/questions").json()
    assert all("is_correct" not in o for o in listed[0]["options"])

    submission = student.post(f"{API}/submissions", json={
        "enrollment_id": enrollment.id, "item_id": quiz.id, "status": "submitted",
    }).json()
    answer = student.post(f"{API}/quizzes/responses", json={
        "submission_id": submission["id"], "question_id": question.json()["id"],
        "raw_answer": str(correct_option["id"]),
    })
    assert answer.status_code == 201
    assert answer.json()["is_correct"] is True

    professor = login(course.professor_id, PROFESSOR)
    scored = professor.post(f"{API}/quizzes/submissions/{submission['id']}/score?record=true")
    assert scored.json() == {"submission_id": submission["id"], "points": 5, "recorded": True}
    assert repo.submissions[submission["id"]].status is SubmissionStatus.GRADED
    assert repo.enrollments[enrollment.id].final_grade == "F"


def test_finalize_route(login, course, enrollment, assignment):
    professor = login(course.professor_id, PROFESSOR)
    professor.post(f"{API}/grades", json={"enrollment_id": enrollment.id, "item_id": assignment.id,
                                           "points_earned": 84})

    response = professor.post(f"{API}/grades/finalize/course/{course.id}")

    assert response.status_code == 200
    assert response.json() == [
        {"student_id": enrollment.student_id, "final_grade": "B", "error": None, "detail": None},
    ]


def test_document_submission_rejected(repo, login, course, enrollment):
    document = repo.add_item(course_id=course.id, type=ItemType.DOCUMENT, max_points=0)
    client = login(enrollment.student_id, STUDENT)

    response = client.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": document.id})

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_item_kind"


def test_bearer_token_is_decoded(monkeypatch):
    secret = "a-test-secret-that-is-long-enough-for-hs256"
    monkeypatch.setattr("grading.services.auth_service.settings.jwt_algorithm", "HS256")
    monkeypatch.setattr("grading.services.auth_service.settings.jwt_public_key", secret)
    token = jwt.encode({"sub": "12", "role": "professor"}, secret, algorithm="HS256")

    user = AuthService.get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))

    assert user == UserContext(user_id=12, role=PROFESSOR)


def test_bad_bearer_token(monkeypatch):
    monkeypatch.setattr("grading.services.auth_service.settings.jwt_algorithm", "HS256")
    monkeypatch.setattr("grading.services.auth_service.settings.jwt_public_key", "x" * 40)

    with pytest.raises(HTTPException) as exc:
        AuthService.get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials="not-a-jwt"))
    assert exc.value.status_code == 401


def test_scoring_an_assignment_keeps_its_grade(repo, login, course, enrollment, assignment):
    student = login(enrollment.student_id, STUDENT)
    submission = student.post(f"{API}/submissions", json={
        "enrollment_id": enrollment.id, "item_id": assignment.id, "status": "submitted",
    }).json()
    professor = login(course.professor_id, PROFESSOR)
    professor.post(f"{API}/grades", json={"enrollment_id": enrollment.id, "item_id": assignment.id,
                                           "points_earned": 95})

    response = professor.post(f"{API}/quizzes/submissions/{submission['id']}/score?record=true")

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_item_kind"
    grade = next(g for g in repo.grades.values() if g.item_id == assignment.id)
    assert grade.points_earned == 95
    assert repo.enrollments[enrollment.id].final_grade == "A"


def test_my_submissions_route(login, course, enrollment, assignment, quiz):
    student = login(enrollment.student_id, STUDENT)
    first = student.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": assignment.id})
    second = student.post(f"{API}/submissions", json={"enrollment_id": enrollment.id, "item_id": quiz.id})

    mine = student.get(f"{API}/submissions", params={"course_id": course.id})
    assert mine.status_code == 200
    assert {s["id"] for s in mine.json()} == {first.json()["id"], second.json()["id"]}

    assert student.get(f"{API}/submissions", params={"course_id": course.id + 1}).json() == []
    assert login(enrollment.student_id + 1, STUDENT).get(f"{API}/submissions").json() == []
