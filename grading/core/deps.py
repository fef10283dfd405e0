# grading/core/deps.py
from typing import Annotated
from fastapi import Depends, Request
from grading.database.grading_repository import GradingRepository
from grading.schemas.context import UserContext
from grading.services.auth_service import AuthService

def get_repository(request: Request) -> GradingRepository:
    repo = getattr(request.app.state, "grading_repo", None)
    if repo is None:
        raise RuntimeError("Grading repository non inizializzato")
    return repo

GradingRepoDep = Annotated[GradingRepository, Depends(get_repository)]
UserDep = Annotated[UserContext, Depends(AuthService.get_current_user)]
