from fastapi import status


class PracticeError(Exception):
    """Base for errors raised by the service layer and rendered as {"detail": ...}."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(PracticeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class NotFound(PracticeError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Forbidden(PracticeError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class ValidationFailure(PracticeError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Malformed input"
