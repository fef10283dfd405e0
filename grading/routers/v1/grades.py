# grading/routers/v1/grades.py
from fastapi import APIRouter
from grading.core.deps import GradingRepoDep, UserDep
from grading.schemas.data import FinalizeResult, ItemGrade
from grading.schemas.payloads import GradeItemPayload, MyGrades
from grading.services.auth_service import AccessService
from grading.services.finalizer_service import finalize_course
from grading.services.grade_service import GradeService

router = APIRouter()

@router.post("/grades")
async def grade_item(payload: GradeItemPayload, user: UserDep, repo: GradingRepoDep) -> ItemGrade:
    await AccessService.item_professor(user, repo, payload.item_id)
    return await GradeService.grade_item(
        repo,
        enrollment_id=payload.enrollment_id,
        item_id=payload.item_id,
        points_earned=payload.points_earned,
    )

@router.get("/grades/me/course/{course_id}")
async def my_grades(course_id: int, user: UserDep, repo: GradingRepoDep) -> MyGrades:
    return await GradeService.my_grades(repo, course_id=course_id, student_id=user.user_id)

@router.get("/grades/course/{course_id}/student/{student_id}")
async def student_grades(course_id: int, student_id: int, user: UserDep, repo: GradingRepoDep) -> list[ItemGrade]:
    await AccessService.course_professor(user, repo, course_id)
    return await GradeService.student_grades(repo, course_id=course_id, student_id=student_id)

@router.get("/grades/item/{item_id}")
async def grades_by_item(item_id: int, user: UserDep, repo: GradingRepoDep) -> list[ItemGrade]:
    await AccessService.item_professor(user, repo, item_id)
    return await GradeService.list_by_item(repo, item_id)

@router.post("/grades/finalize/course/{course_id}")
async def finalize(course_id: int, user: UserDep, repo: GradingRepoDep) -> list[FinalizeResult]:
    await AccessService.course_professor(user, repo, course_id)
    return await finalize_course(repo, course_id)
