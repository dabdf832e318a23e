"""Domain types and response models for the vision relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional

from fastapi import status
from pydantic import BaseModel, Field


class Operation(str, Enum):
    analyze = "analyze"
    describe = "describe"
    tag = "tag"

    @property
    def path_segment(self) -> str:
        return self.value

    @property
    def modifier_param(self) -> Optional[str]:
        return _MODIFIER_PARAMS.get(self)

    @property
    def result_key(self) -> str:
        return _RESULT_KEYS[self]

    @property
    def upload_field(self) -> str:
        return "file" if self is Operation.analyze else "image"

    def extract(self, data: Any) -> Any:
        """Pull the operation's subtree out of a downstream response body.

        Raises ``KeyError`` or ``TypeError`` when an analyze body has no
        ``categories``. Describe and tag answer ``None`` for a missing key.
        """

        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        if self is Operation.analyze:
            categories = data["categories"]
            return categories[0] if categories else None
        return data.get("description" if self is Operation.describe else "tags")


_MODIFIER_PARAMS = {Operation.analyze: "details", Operation.tag: "language"}
_RESULT_KEYS = {
    Operation.analyze: "categories",
    Operation.describe: "descriptions",
    Operation.tag: "tags",
}


class DetailsCategory(str, Enum):
    celebrities = "celebrities"
    landmarks = "landmarks"


class TagLanguage(str, Enum):
    en = "en"
    es = "es"
    hi = "hi"
    it = "it"
    fr = "fr"


@dataclass(frozen=True)
class ImageSource:
    kind: Literal["url", "file"]
    value: str


@dataclass(frozen=True)
class UploadedImage:
    field_name: str
    filename: str
    content: bytes = field(repr=False)
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class AnalysisRequest:
    source: ImageSource
    operation: Operation
    modifier: Optional[str] = None


@dataclass(frozen=True)
class AnalysisResult:
    success: bool
    operation: Operation
    payload: Any = None
    code: Optional[str] = None
    message: Optional[str] = None
    status_code: int = status.HTTP_200_OK

    @classmethod
    def ok(cls, operation: Operation, payload: Any) -> "AnalysisResult":
        return cls(success=True, operation=operation, payload=payload)

    @classmethod
    def failure(cls, operation: Operation, code: str, message: str, status_code: int) -> "AnalysisResult":
        return cls(success=False, operation=operation, code=code, message=message, status_code=status_code)

    def to_body(self) -> Dict[str, Any]:
        if self.success:
            if self.payload is None and self.operation is not Operation.analyze:
                return {"success": True}
            return {"success": True, self.operation.result_key: self.payload}
        return {"success": False, "code": self.code, "message": self.message}


class ErrorEnvelope(BaseModel):
    success: Literal[False] = False
    code: Optional[str] = None
    message: str


class CategoriesEnvelope(BaseModel):
    success: Literal[True] = True
    categories: Optional[Dict[str, Any]] = None


class DescriptionsEnvelope(BaseModel):
    success: Literal[True] = True
    descriptions: Dict[str, Any] = Field(default_factory=dict)


class TagsEnvelope(BaseModel):
    success: Literal[True] = True
    tags: list[Any] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"] = "ok"
    downstream_configured: bool
