from fastapi import HTTPException

from app.services.exceptions import (
    ConflictError,
    NotFoundError,
    ServiceError,
    StoreUnavailable,
    ValidationError,
)


def status_for_service_error(err: ServiceError) -> int:
    if isinstance(err, NotFoundError):
        return 404
    if isinstance(err, ConflictError):
        return 409
    if isinstance(err, ValidationError):
        return 422
    if isinstance(err, StoreUnavailable):
        # covers MatchQueryFailed, EnrichmentFailed and RequestSendFailed
        return 503
    return 500


def http_error_from_service(err: ServiceError) -> HTTPException:
    return HTTPException(
        status_code=status_for_service_error(err),
        detail={"code": err.code, "message": err.message},
    )
