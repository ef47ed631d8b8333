"""
Lifecycle error taxonomy.

Each class carries the ErrorCode it is reported under in failed results
and the HTTP status the API layer answers with.
"""

from typing import Dict, Optional, Type

from fastapi import status

from clinic_archive.models import ErrorCode


class LifecycleError(Exception):
    code: ErrorCode
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code.value)
        self.message = message or self.code.value


class InvalidArgumentError(LifecycleError):
    code = ErrorCode.INVALID_ARGUMENT
    http_status = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(LifecycleError):
    code = ErrorCode.PERMISSION_DENIED
    http_status = status.HTTP_403_FORBIDDEN


class NotFoundError(LifecycleError):
    code = ErrorCode.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND


class InvalidStateError(LifecycleError):
    code = ErrorCode.INVALID_STATE
    http_status = status.HTTP_409_CONFLICT


class RemoteRejectedError(LifecycleError):
    code = ErrorCode.REMOTE_REJECTED
    # the 422 constant was renamed across starlette releases
    http_status = 422


class TransportError(LifecycleError):
    code = ErrorCode.TRANSPORT_ERROR
    http_status = status.HTTP_502_BAD_GATEWAY


_ERRORS_BY_CODE: Dict[ErrorCode, Type[LifecycleError]] = {
    cls.code: cls
    for cls in (
        InvalidArgumentError,
        PermissionDeniedError,
        NotFoundError,
        InvalidStateError,
        RemoteRejectedError,
        TransportError,
    )
}


def error_for_code(code: ErrorCode, message: Optional[str] = None) -> LifecycleError:
    """Build the exception instance matching a result's error code"""
    return _ERRORS_BY_CODE[ErrorCode(code)](message)
