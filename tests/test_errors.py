"""Unit tests for the centralized error helpers."""

from __future__ import annotations

import pytest
from fastapi import status

from vision_relay.errors import (
    ConfigurationMissingError,
    DownstreamFailureError,
    ErrorCodeSpec,
    ErrorRegistry,
    InvalidInputError,
    UploadRejectedError,
    raise_error,
)


def test_raise_error_builds_envelope_for_registered_code():
    with pytest.raises(InvalidInputError) as exc:
        raise_error("IncorrectRequestParameters", detail="no url and no file")

    assert exc.value.http_status == status.HTTP_400_BAD_REQUEST
    assert exc.value.detail == "no url and no file"
    assert exc.value.to_envelope() == {
        "success": False,
        "code": "IncorrectRequestParameters",
        "message": "Bad Request. Incorrect request parameter/headers sent.",
    }


def test_raise_error_picks_error_class():
    with pytest.raises(UploadRejectedError):
        raise_error("LIMIT_FILE_SIZE")
    with pytest.raises(ConfigurationMissingError) as exc:
        raise_error("APIissue", detail="no key")
    assert exc.value.http_status == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert exc.value.message == "Internal Server Error"


def test_raise_error_unknown_code():
    with pytest.raises(KeyError):
        raise_error("ERR_NOT_REGISTERED")


def test_downstream_failure_hides_detail():
    error = DownstreamFailureError("ERR_BAD_REQUEST", detail="InvalidImageUrl: image too small", status_code=400)

    assert error.http_status == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert error.to_envelope() == {"success": False, "code": "ERR_BAD_REQUEST", "message": "Internal Server Error"}


def test_error_registry_rejects_duplicate_code():
    registry = ErrorRegistry()
    spec = ErrorCodeSpec(code="ERR_DUPLICATED", message="duplicate", http_status=status.HTTP_400_BAD_REQUEST)

    registry.register(spec)
    with pytest.raises(ValueError):
        registry.register(spec)
    assert "ERR_DUPLICATED" in registry
    assert registry.to_dict() == {"ERR_DUPLICATED": spec}
