import json
from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_serializer

from src.core.exception import ValidationFailedError


class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )

    @field_serializer("*", mode="wrap", when_used="unless-none")
    def serialize_datetime(self, value, handler, info):
        """Custom serializer for datetime objects and enums"""
        result = handler(value)
        if isinstance(result, datetime):
            return result.timestamp()
        elif isinstance(result, Enum):
            return result.value
        return result


INVALID_BODY_DETAIL = "Invalid request body"

# Location prefixes FastAPI adds in front of the field name
_REQUEST_PARTS = {"body", "query", "path", "header", "cookie"}


def validation_details(errors: Iterable[dict[str, Any]]) -> list[str]:
    """Collapse pydantic errors into unique ``Invalid <field>`` messages."""
    details: list[str] = []
    for error in errors:
        loc = [part for part in error.get("loc") or () if part not in _REQUEST_PARTS]
        message = f"Invalid {loc[0]}" if loc else INVALID_BODY_DETAIL
        if message not in details:
            details.append(message)
    return details


class RequestSchema(BaseSchema):
    """Request body validated explicitly so failures can be audited before any side effect."""

    @classmethod
    def from_payload(cls, payload: Any):
        if not isinstance(payload, dict):
            raise ValidationFailedError([INVALID_BODY_DETAIL])
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ValidationFailedError(validation_details(e.errors())) from e

    @classmethod
    def from_body(cls, body: bytes):
        """Decode a raw JSON body and validate it. Undecodable bodies fail like any other field."""
        try:
            payload = json.loads(body) if body else None
        except ValueError as e:
            raise ValidationFailedError([INVALID_BODY_DETAIL]) from e
        return cls.from_payload(payload)

    @classmethod
    def openapi_request_body(cls) -> dict[str, Any]:
        return {
            "requestBody": {
                "required": True,
                "content": {"application/json": {"schema": cls.model_json_schema()}},
            }
        }


class ErrorResponse(BaseModel):
    error: str


class ValidationErrorResponse(ErrorResponse):
    details: list[str]


class RateLimitedResponse(ErrorResponse):
    message: str
    retry_after: int
