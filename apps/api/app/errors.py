from fastapi import HTTPException

from eventrec_core.errors import DomainError, ServiceUnavailable


def to_http(err: DomainError) -> HTTPException:
    headers = None
    if isinstance(err, ServiceUnavailable):
        headers = {"Retry-After": str(err.retry_after_s)}
    return HTTPException(status_code=err.status, detail=str(err), headers=headers)
