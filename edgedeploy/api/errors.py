"""
Mapping of edgedeploy exceptions to HTTP errors.
"""
from fastapi import HTTPException

from ..core.exceptions import (
    ConflictError,
    ControlPlaneError,
    CyclicDependencyError,
    EdgeDeployError,
    NotFoundError,
)


def to_http_exception(error: EdgeDeployError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ControlPlaneError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, CyclicDependencyError):
        return HTTPException(status_code=400, detail={'message': str(error), 'cycle': error.cycle})
    return HTTPException(status_code=400, detail=str(error))
