"""Inbound body parsing: pull the ``url`` field and screen a single uploaded image."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from fastapi import Request
from starlette.datastructures import UploadFile

from ..config import UploadSettings
from ..errors import raise_error
from ..monitoring import record_upload_rejected
from ..schemas import UploadedImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageInput:
    url: Any
    upload: Optional[UploadedImage]


def _reject(code: str, detail: str) -> None:
    record_upload_rejected(code)
    raise_error(code, detail=detail)


async def screen_upload(file: UploadFile, field_name: str, limits: UploadSettings) -> UploadedImage:
    filename = file.filename or ""
    ext = Path(filename).suffix
    if ext not in limits.allowed_extensions:
        _reject(
            "UNSUPPORTED_FILE_TYPE",
            f"{filename!r}: only {', '.join(limits.allowed_extensions)} files are accepted",
        )

    content = await file.read()
    if len(content) > limits.max_size_bytes:
        _reject(
            "LIMIT_FILE_SIZE",
            f"{filename!r} is {len(content)} bytes, limit is {limits.max_size_bytes}",
        )

    return UploadedImage(
        field_name=field_name,
        filename=filename,
        content=content,
        content_type=file.content_type,
    )


async def _read_multipart(request: Request, field_name: str, limits: UploadSettings) -> ImageInput:
    form = await request.form()
    url: Any = None
    files: list[tuple[str, UploadFile]] = []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files.append((key, value))
        elif key == "url" and url is None:
            url = value

    for key, _ in files:
        if key != field_name:
            _reject("LIMIT_UNEXPECTED_FILE", f"unexpected file field {key!r}, expected {field_name!r}")
    if len(files) > 1:
        _reject("LIMIT_UNEXPECTED_FILE", f"only one {field_name!r} file may be uploaded, got {len(files)}")

    upload = await screen_upload(files[0][1], field_name, limits) if files else None
    return ImageInput(url=url, upload=upload)


async def read_image_input(request: Request, field_name: str, limits: UploadSettings) -> ImageInput:
    """Read the request body according to its content type.

    Raises ``UploadRejectedError`` for a file that fails screening and
    ``ValueError`` for a JSON body that cannot be parsed.
    """

    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if media_type == "multipart/form-data":
        return await _read_multipart(request, field_name, limits)

    if media_type == "application/x-www-form-urlencoded":
        form = await request.form()
        return ImageInput(url=form.get("url"), upload=None)

    if media_type == "application/json" or media_type.endswith("+json"):
        raw = await request.body()
        if not raw.strip():
            return ImageInput(url=None, upload=None)
        data = json.loads(raw)
        url = data.get("url") if isinstance(data, dict) else None
        return ImageInput(url=url, upload=None)

    logger.debug("Ignoring body with content type %r", media_type)
    return ImageInput(url=None, upload=None)
