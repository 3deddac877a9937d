"""Pydantic models for FIM REST gateway responses.

Design Principles:
- Graceful degradation: extra="allow" for unknown fields
- Optional validation: the client validates critical paths and falls back to
  the raw payload with a warning when a model does not match

Usage:
    page = PaginatedResponse.model_validate(response.json())
    for item in page.results:
        ...
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class HALLinks(BaseModel):
    """HAL-style _links structure used for pagination."""

    self_link: dict[str, str] | str | None = Field(None, alias="self")
    next: dict[str, str] | str | None = Field(None, description="Link to next page")

    model_config = {"extra": "allow", "populate_by_name": True}

    def get_next_href(self) -> str | None:
        """Extract next page URL from link structure."""
        if self.next is None:
            return None
        if isinstance(self.next, dict):
            return self.next.get("href")
        return self.next


class ResourceResponse(BaseModel):
    """
    A single FIM resource as returned by the query endpoint.

    Attributes:
        ObjectID: Resource identifier (urn:uuid GUID or bare GUID)
        ObjectType: Resource type name
    """

    ObjectID: str = Field(..., min_length=1, description="Resource identifier")
    ObjectType: str | None = Field(None, description="Resource type")

    model_config = {"extra": "allow"}

    @field_validator("ObjectID", mode="before")
    @classmethod
    def unwrap_reference(cls, v: Any) -> Any:
        """Some gateways return references as {"Value": "..."} objects."""
        if isinstance(v, dict):
            return v.get("Value") or v.get("value")
        return v


class AttributeTypeDescriptionResponse(BaseModel):
    """An AttributeTypeDescription resource (one schema attribute)."""

    Name: str = Field(..., min_length=1)
    DataType: str = Field(..., min_length=1)
    Multivalued: bool = False

    model_config = {"extra": "allow"}

    @field_validator("Multivalued", mode="before")
    @classmethod
    def parse_bool(cls, v: Any) -> Any:
        """FIM serializes booleans as the strings 'True'/'False'."""
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return v


class PaginatedResponse(BaseModel):
    """
    A page of query results.

    Attributes:
        results: Resources on this page
        totalCount: Total matches reported by the service, if any
        _links: Pagination links
    """

    results: list[dict[str, Any]] = Field(default_factory=list)
    totalCount: int | None = None
    links: HALLinks | None = Field(None, alias="_links")

    model_config = {"extra": "allow", "populate_by_name": True}


class ImportResultResponse(BaseModel):
    """Response of the importobjects endpoint."""

    objectIds: list[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class ErrorResponse(BaseModel):
    """Structured error body returned by the gateway."""

    message: str | None = None
    error: str | None = None
    detail: str | None = None
    code: str | int | None = None

    model_config = {"extra": "allow"}

    def get_full_message(self) -> str:
        """
        Combine message, code and detail into one string.

        Returns:
            Human-readable error message
        """
        message = self.message or self.error or self.detail or "Unknown error"
        if self.code is not None:
            message += f" (Code: {self.code})"
        if self.detail and self.detail != message and self.detail not in message:
            detail = self.detail if len(self.detail) <= 200 else self.detail[:197] + "..."
            message += f" - {detail}"
        return message
