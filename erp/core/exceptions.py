from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Missing table or missing row by id."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ValidationError(ServiceError):
    """Missing required fields, unknown fields or invalid enum values."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(ServiceError):
    """A precondition does not hold: duplicate key, room unavailable, dependants exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class BusyError(ServiceError):
    """An entity lock could not be acquired before the timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_423_LOCKED)


def missing_fields(data: dict, required) -> list:
    """Required field names whose value is absent or an empty string."""
    return [f for f in required if data.get(f) is None or data.get(f) == ""]


def require_fields(data: dict, required) -> None:
    missing = missing_fields(data, required)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
