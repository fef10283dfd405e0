from __future__ import annotations


class GradingError(Exception):
    """Base class for every failure the grading engine reports to its callers."""

    kind = "grading_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GradingError):
    kind = "not_found"
    status_code = 404


class AlreadyExistsError(GradingError):
    kind = "already_exists"
    status_code = 409


class InvalidItemKindError(GradingError):
    kind = "invalid_item_kind"
    status_code = 422


class OutOfRangeError(GradingError):
    kind = "out_of_range"
    status_code = 422


class InvalidTransitionError(GradingError):
    kind = "invalid_transition"
    status_code = 409


class ForbiddenError(GradingError):
    kind = "forbidden"
    status_code = 403


class InvalidQuestionError(GradingError):
    kind = "invalid_question"
    status_code = 422
