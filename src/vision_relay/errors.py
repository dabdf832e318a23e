"""Error code registry and helpers for consistent API responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR = "Internal Server Error"


@dataclass(frozen=True)
class ErrorCodeSpec:
    code: str
    message: str
    http_status: int


class ErrorRegistry:
    def __init__(self) -> None:
        self._codes: Dict[str, ErrorCodeSpec] = {}

    def register(self, spec: ErrorCodeSpec) -> None:
        if spec.code in self._codes:
            raise ValueError(f"Error code {spec.code} already registered")
        self._codes[spec.code] = spec

    def get(self, code: str) -> ErrorCodeSpec:
        if code not in self._codes:
            raise KeyError(f"Unknown error code: {code}")
        return self._codes[code]

    def __contains__(self, code: object) -> bool:
        return code in self._codes

    def to_dict(self) -> Dict[str, ErrorCodeSpec]:
        return dict(self._codes)


ERRORS = ErrorRegistry()

UPLOAD_ERROR_CODES = (
    "LIMIT_FILE_SIZE",
    "LIMIT_UNEXPECTED_FILE",
    "UNSUPPORTED_FILE_TYPE",
)


def register_default_errors() -> None:
    ERRORS.register(
        ErrorCodeSpec(
            code="IncorrectRequestParameters",
            message="Bad Request. Incorrect request parameter/headers sent.",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="InvalidInput",
            message="File upload and URL both are not allowed together!",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    for code in UPLOAD_ERROR_CODES:
        ERRORS.register(
            ErrorCodeSpec(
                code=code,
                message="Incorrect request params/headers",
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        )
    ERRORS.register(
        ErrorCodeSpec(
            code="APIissue",
            message=INTERNAL_SERVER_ERROR,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    )


register_default_errors()


class RelayError(Exception):
    """Base error carrying a registered code and the envelope it renders to."""

    def __init__(self, code: str, detail: Optional[str] = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(detail or code)

    @property
    def http_status(self) -> int:
        if self.code in ERRORS:
            return ERRORS.get(self.code).http_status
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    @property
    def message(self) -> str:
        if self.code in ERRORS:
            return ERRORS.get(self.code).message
        return INTERNAL_SERVER_ERROR

    def to_envelope(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message}


class InvalidInputError(RelayError):
    """Both or neither image source supplied."""


class UploadRejectedError(RelayError):
    """Uploaded file failed extension, size or field checks."""


class ConfigurationMissingError(RelayError):
    """Downstream endpoint or subscription key is not configured."""

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__("APIissue", detail)


class DownstreamFailureError(RelayError):
    """The vision API could not be reached or answered with an error.

    ``code`` holds the transport error code; the message is always the
    generic one so downstream diagnostics never reach the caller.
    """

    def __init__(self, code: str, detail: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(code, detail)
        self.status_code = status_code

    @property
    def http_status(self) -> int:
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    @property
    def message(self) -> str:
        return INTERNAL_SERVER_ERROR


_ERROR_CLASSES = {
    "IncorrectRequestParameters": InvalidInputError,
    "InvalidInput": InvalidInputError,
    "APIissue": ConfigurationMissingError,
    **{code: UploadRejectedError for code in UPLOAD_ERROR_CODES},
}


def raise_error(code: str, *, detail: Optional[str] = None) -> None:
    ERRORS.get(code)
    error_cls = _ERROR_CLASSES.get(code, RelayError)
    if error_cls is ConfigurationMissingError:
        raise ConfigurationMissingError(detail)
    raise error_cls(code, detail)


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    logger.info("Request %s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.detail)
    return JSONResponse(status_code=exc.http_status, content=exc.to_envelope())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request %s %s failed validation: %s", request.method, request.url.path, exc.errors())
    spec = ERRORS.get("IncorrectRequestParameters")
    return JSONResponse(
        status_code=spec.http_status,
        content={"success": False, "code": spec.code, "message": spec.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
