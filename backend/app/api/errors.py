from fastapi import HTTPException, status
from app.core.errors import (
    ConfigurationError,
    EditDeskError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


def to_http_exception(error: EditDeskError) -> HTTPException:
    """Map a domain error onto the status code the UI reports it with"""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ConfigurationError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(error), "reason": error.reason}
        )
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
