"""
Shared schema building blocks.

Wire format:
------------
JSON keys are camelCase (``statusCode``, ``viewCount``, ``avatarUrl``) while
Python attributes stay snake_case. ``CamelModel`` does the mapping and also
accepts snake_case keys on input, so both of these bodies are valid:

    {"fullName": "Alice"}
    {"full_name": "Alice"}

Every endpoint answers with the success envelope:

    {"statusCode": 200, "data": {...}, "message": "...", "success": true}

References:
-----------
- Pydantic aliases: https://docs.pydantic.dev/latest/concepts/alias/
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model: camelCase aliases, snake_case attributes, ORM-friendly."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """
    Success envelope.

    ``status_code`` usually mirrors the HTTP status, but not always: an empty
    watch history is sent as HTTP 200 with ``statusCode`` 204 so clients can
    tell "nothing yet" apart from "found".
    """

    status_code: int = Field(200, description="Application status code")
    data: Optional[T] = Field(None, description="Payload")
    message: str = Field("Success", description="Human readable summary")
    success: bool = Field(True, description="Always true for this envelope")

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "Success", status_code: int = 200) -> "ApiResponse[T]":
        return cls(status_code=status_code, data=data, message=message, success=status_code < 400)


class ErrorResponse(CamelModel):
    """Failure envelope (documented for OpenAPI; built by the exception handlers)."""

    status_code: int
    success: bool = False
    message: str
    errors: list = Field(default_factory=list)


class Page(CamelModel, Generic[T]):
    """One page of an offset-paginated listing."""

    items: list[T]
    page: int
    limit: int
    total: Optional[int] = Field(None, description="Total matching rows, when counted")


class ToggleResult(CamelModel):
    """Outcome of a like / subscription flip."""

    status: str = Field(..., description="'added' or 'removed'")
    active: bool = Field(..., description="Whether the like / subscription now exists")
