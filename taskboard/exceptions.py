from fastapi import HTTPException, status


class ApiError(HTTPException):
    """Error rendered as the `{message, data}` envelope."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, data=None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.data = {} if data is None else data


class ValidationError(ApiError):
    """Missing or malformed input."""


class ConflictError(ApiError):
    """A unique field already belongs to another record."""


class UnknownReferenceError(ApiError):
    """The request points at a record that does not exist."""


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class StoreError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, exc: Exception):
        super().__init__(
            "Server Error",
            data={"name": type(exc).__name__, "message": str(exc)},
        )
        self.original = exc
