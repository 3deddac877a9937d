"""Utility functions and exceptions."""

from .exceptions import (
    AmbiguousReferenceError,
    CSVValidationError,
    DuplicateAttributeError,
    FIMAPIError,
    FIMAuthenticationError,
    FIMRateLimitError,
    ImporterError,
    MissingMatchAttributeError,
    ReferenceNotFoundError,
    ReferenceSyntaxError,
    ResolutionError,
    ResourceNotFoundError,
    SchemaError,
    UnknownAttributeError,
    UnknownHeaderAttributeError,
    UnknownObjectTypeError,
    UnknownOperationError,
    UnknownStateError,
    ValidationError,
)

__all__ = [
    "ImporterError",
    "ValidationError",
    "CSVValidationError",
    "UnknownHeaderAttributeError",
    "MissingMatchAttributeError",
    "UnknownStateError",
    "UnknownOperationError",
    "ReferenceSyntaxError",
    "SchemaError",
    "UnknownObjectTypeError",
    "DuplicateAttributeError",
    "UnknownAttributeError",
    "ResolutionError",
    "ReferenceNotFoundError",
    "AmbiguousReferenceError",
    "FIMAPIError",
    "FIMAuthenticationError",
    "FIMRateLimitError",
    "ResourceNotFoundError",
]
