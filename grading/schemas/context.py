from pydantic import BaseModel

STUDENT = "user"
PROFESSOR = "professor"
ADMIN = "admin"

class UserContext(BaseModel):
    user_id: int
    role: str

    @property
    def is_professor(self) -> bool:
        return self.role == PROFESSOR

    @property
    def is_student(self) -> bool:
        return self.role == STUDENT
