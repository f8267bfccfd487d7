from typing import Any


class CustomBaseError(Exception):
    """
    Base class for all custom exceptions - controls logging behavior in @Logger.io

    Keyword context (e.g. `available`, `requested`) is kept on the instance and rendered next to
    `detail` in the response body.
    """

    def __init__(self, message: str, status_code: int, **context: Any) -> None:
        self.message = message
        self.status_code = status_code
        self.context = context
        super().__init__(message)

    def to_content(self) -> dict[str, Any]:
        return {'detail': self.message, **self.context}

    def headers(self) -> dict[str, str]:
        return {}


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400, **context: Any) -> None:
        super().__init__(message, status_code, **context)


class ForbiddenError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 403)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, 409, **context)


class AuthenticationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 401)


class TooManyRequestsError(CustomBaseError):
    def __init__(self, message: str, *, retry_after_seconds: int) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message, 429, retry_after_seconds=retry_after_seconds)

    def headers(self) -> dict[str, str]:
        return {'Retry-After': str(self.retry_after_seconds)}
