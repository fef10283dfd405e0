from fastapi import APIRouter

router = APIRouter()

@router.get("/grading/health")
async def health_check():
    return {"status": "ok"}
