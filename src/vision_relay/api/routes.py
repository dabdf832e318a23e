"""API route definitions for the vision relay."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Type

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from ..config import Settings, settings_dependency
from ..errors import INTERNAL_SERVER_ERROR, UploadRejectedError, raise_error
from ..relay import VisionRelay, relay_dependency
from ..schemas import (
    AnalysisResult,
    CategoriesEnvelope,
    DescriptionsEnvelope,
    DetailsCategory,
    ErrorEnvelope,
    Operation,
    TagLanguage,
    TagsEnvelope,
)
from .uploads import read_image_input

logger = logging.getLogger(__name__)
router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorEnvelope, "description": "Input validation failed"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorEnvelope, "description": "Internal server error"},
}

_IMAGE_BODY = {
    "requestBody": {
        "content": {
            "application/json": {
                "schema": {"type": "object", "properties": {"url": {"type": "string"}}},
            },
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "file": {"type": "string", "format": "binary"},
                        "image": {"type": "string", "format": "binary"},
                    },
                },
            },
        }
    }
}


def parse_modifier(value: Optional[str], choices: Type[Enum], param: str) -> Optional[str]:
    """Validate an optional query modifier. An empty value counts as absent."""

    if not value:
        return None
    try:
        return choices(value).value
    except ValueError:
        raise_error("IncorrectRequestParameters", detail=f"unsupported {param} {value!r}")


def render_result(result: AnalysisResult, settings: Settings) -> Response:
    if not result.success and result.code == "InvalidInput" and settings.legacy_plain_text_conflict:
        return PlainTextResponse(result.message or "", status_code=result.status_code)
    return JSONResponse(status_code=result.status_code, content=result.to_body())


async def _relay_request(
    request: Request,
    operation: Operation,
    modifier: Optional[str],
    relay: VisionRelay,
    settings: Settings,
) -> Response:
    try:
        image_input = await read_image_input(request, operation.upload_field, settings.uploads)
    except UploadRejectedError:
        raise
    except Exception:
        logger.exception("Failed to read %s request body", operation.value)
        result = AnalysisResult.failure(operation, "APIissue", INTERNAL_SERVER_ERROR, 500)
        return render_result(result, settings)

    result = await run_in_threadpool(relay.accept, image_input.url, image_input.upload, operation, modifier)
    return render_result(result, settings)


@router.post(
    "/analyzeImage",
    tags=["Analyze Image"],
    summary="Categorize an image given by URL or upload",
    responses={status.HTTP_200_OK: {"model": CategoriesEnvelope}, **_ERROR_RESPONSES},
    openapi_extra=_IMAGE_BODY,
)
async def analyze_image(
    request: Request,
    details: Optional[str] = Query(
        None,
        description="Detail category to analyze the image with",
        json_schema_extra={"enum": [item.value for item in DetailsCategory]},
    ),
    relay: VisionRelay = Depends(relay_dependency),
    settings: Settings = Depends(settings_dependency),
) -> Response:
    modifier = parse_modifier(details, DetailsCategory, "details")
    return await _relay_request(request, Operation.analyze, modifier, relay, settings)


@router.post(
    "/describeImage",
    tags=["Describe Image"],
    summary="Describe an image given by URL or upload",
    responses={status.HTTP_200_OK: {"model": DescriptionsEnvelope}, **_ERROR_RESPONSES},
    openapi_extra=_IMAGE_BODY,
)
async def describe_image(
    request: Request,
    relay: VisionRelay = Depends(relay_dependency),
    settings: Settings = Depends(settings_dependency),
) -> Response:
    return await _relay_request(request, Operation.describe, None, relay, settings)


@router.post(
    "/tagImage",
    tags=["Tag Image"],
    summary="Tag an image given by URL or upload, in the requested language",
    responses={status.HTTP_200_OK: {"model": TagsEnvelope}, **_ERROR_RESPONSES},
    openapi_extra=_IMAGE_BODY,
)
async def tag_image(
    request: Request,
    language: Optional[str] = Query(
        None,
        description="Language the tags are returned in",
        json_schema_extra={"enum": [item.value for item in TagLanguage]},
    ),
    relay: VisionRelay = Depends(relay_dependency),
    settings: Settings = Depends(settings_dependency),
) -> Response:
    modifier = parse_modifier(language, TagLanguage, "language")
    return await _relay_request(request, Operation.tag, modifier, relay, settings)
