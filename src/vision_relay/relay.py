"""Request normalizer and relay to the downstream vision API."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional
from urllib.parse import urlencode

import structlog
from requests import Response, Session
from requests.exceptions import (
    ConnectionError as RequestsConnectionError,
    HTTPError,
    InvalidSchema,
    InvalidURL,
    MissingSchema,
    RequestException,
    Timeout,
)

from .config import DownstreamConfig, Settings, get_settings
from .errors import (
    INTERNAL_SERVER_ERROR,
    ConfigurationMissingError,
    DownstreamFailureError,
    InvalidInputError,
    RelayError,
    raise_error,
)
from .monitoring import record_relay_outcome
from .schemas import AnalysisRequest, AnalysisResult, ImageSource, Operation, UploadedImage
from .storage import ImageStorage, build_storage

logger = structlog.get_logger(__name__)


def transport_error_code(exc: RequestException) -> str:
    """Map a ``requests`` failure onto a stable transport error code."""

    if isinstance(exc, HTTPError):
        response = exc.response
        status_code = response.status_code if response is not None else None
        if status_code is not None and 400 <= status_code < 500:
            return "ERR_BAD_REQUEST"
        return "ERR_BAD_RESPONSE"
    if isinstance(exc, Timeout):
        return "ECONNABORTED"
    if isinstance(exc, RequestsConnectionError):
        return "ERR_NETWORK"
    if isinstance(exc, (InvalidURL, MissingSchema, InvalidSchema)):
        return "ERR_INVALID_URL"
    return "ERR_REQUEST"


def _coerce_url(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)) and not value:
        return None
    if isinstance(value, bool):
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    raise TypeError(f"url must be a string, got {type(value).__name__}")


class VisionRelay:
    """Turns one inbound request into at most one call to the vision API."""

    def __init__(self, config: DownstreamConfig, storage: ImageStorage, session: Session | None = None) -> None:
        self._config = config
        self._storage = storage
        self._session = session or Session()

    @property
    def config(self) -> DownstreamConfig:
        return self._config

    def resolve_source(self, url: Any, upload: UploadedImage | None) -> ImageSource:
        url = _coerce_url(url)
        has_url = url is not None and url != ""
        has_file = upload is not None

        if has_url and has_file:
            raise_error("InvalidInput")
        if has_url:
            return ImageSource(kind="url", value=url)
        if has_file:
            stored = self._storage.store(upload)
            return ImageSource(kind="file", value=stored.url)
        raise_error("IncorrectRequestParameters")

    def build_target(self, operation: Operation, modifier: Optional[str] = None) -> str:
        target = self._config.build_url(operation.path_segment)
        param = operation.modifier_param
        if param and modifier:
            target = f"{target}?{urlencode({param: modifier})}"
        return target

    def _post(self, target: str, image_url: str) -> Any:
        headers = {
            "Content-Type": "application/json",
            self._config.subscription_header: self._config.subscription_key,
        }
        try:
            response: Response = self._session.post(
                target,
                json={"url": image_url},
                headers=headers,
                timeout=self._config.timeout,
                verify=self._config.verify,
            )
            response.raise_for_status()
        except RequestException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise DownstreamFailureError(transport_error_code(exc), detail=str(exc), status_code=status_code) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise DownstreamFailureError("ERR_BAD_RESPONSE", detail="response body is not JSON") from exc

    def accept(
        self,
        url: Any,
        upload: UploadedImage | None,
        operation: Operation,
        modifier: Optional[str] = None,
    ) -> AnalysisResult:
        log = logger.bind(operation=operation.value)

        try:
            source = self.resolve_source(url, upload)
            request = AnalysisRequest(source=source, operation=operation, modifier=modifier)
            log = log.bind(source=source.kind)
            if not self._config.is_configured:
                raise ConfigurationMissingError("Make sure you have set endpoint and key properly")
            target = self.build_target(request.operation, request.modifier)
        except InvalidInputError as exc:
            log.info("request rejected", code=exc.code)
            record_relay_outcome(operation.value, "rejected")
            return AnalysisResult.failure(operation, exc.code, exc.message, exc.http_status)
        except ConfigurationMissingError as exc:
            log.error("downstream not configured", detail=exc.detail)
            record_relay_outcome(operation.value, "config_error")
            return AnalysisResult.failure(operation, exc.code, exc.message, exc.http_status)
        except Exception:
            log.exception("request normalization failed")
            record_relay_outcome(operation.value, "error")
            return AnalysisResult.failure(operation, "APIissue", INTERNAL_SERVER_ERROR, 500)

        log.info("calling vision api", target=target)
        try:
            data = self._post(target, request.source.value)
            try:
                payload = request.operation.extract(data)
            except (KeyError, IndexError, TypeError) as exc:
                raise DownstreamFailureError("ERR_BAD_RESPONSE", detail=f"unexpected response shape: {exc}") from exc
        except RelayError as exc:
            log.warning("vision api call failed", code=exc.code, detail=exc.detail)
            record_relay_outcome(operation.value, "downstream_error")
            return AnalysisResult.failure(operation, exc.code, exc.message, exc.http_status)

        record_relay_outcome(operation.value, "success")
        return AnalysisResult.ok(operation, payload)


def build_relay(settings: Settings, session: Session | None = None) -> VisionRelay:
    return VisionRelay(DownstreamConfig.from_settings(settings), build_storage(settings), session=session)


@lru_cache
def get_relay() -> VisionRelay:
    return build_relay(get_settings())


def relay_dependency() -> VisionRelay:
    return get_relay()
