"""Custom exceptions for the FIM CSV Sync tool.

Exception Hierarchy:
-------------------
ImporterError (base)
├── ValidationError
│   ├── CSVValidationError            # Malformed CSV, missing header, duplicate columns
│   ├── UnknownHeaderAttributeError   # Header column not bound to the object type
│   ├── MissingMatchAttributeError    # Match attribute column absent from header
│   ├── UnknownStateError             # !State value not Create/Put/Delete
│   ├── UnknownOperationError         # !Operation value not Add/Replace/Delete
│   └── ReferenceSyntaxError          # Value not shaped like (Type|Attr|Value)
├── SchemaError
│   ├── UnknownObjectTypeError        # No attributes bound to the object type
│   ├── DuplicateAttributeError       # Same attribute bound twice
│   └── UnknownAttributeError         # Attribute lookup failed during translation
├── ResolutionError (base for reference lookups)
│   ├── ReferenceNotFoundError        # Zero objects matched
│   └── AmbiguousReferenceError       # More than one object matched
└── FIMAPIError (base for API errors)
    ├── FIMAuthenticationError        # HTTP 401 Unauthorized
    ├── FIMRateLimitError             # HTTP 429 Too Many Requests
    └── ResourceNotFoundError         # HTTP 404 Not Found

Usage Guidelines:
----------------
1. Setup and translation errors (ValidationError, SchemaError) are fatal: they
   propagate out of the pipeline and abort the run with a non-zero exit code.

2. ResolutionError raised while translating a reference attribute is fatal by
   default. PolicyConfig.reference_failure=skip downgrades it to a skipped row.

3. FIMAPIError raised by a submission is recorded as a failed row; the run
   continues with the next row.

4. Zero or multiple matches when locating the target of a Put/Delete row are
   NOT exceptions. ChangeBuilder returns a skip result instead.
"""


class ImporterError(Exception):
    """Base exception for all importer errors."""

    pass


class ValidationError(ImporterError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize ValidationError.

        Args:
            message: Error message.
            line_number: Optional line number where error occurred.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.line_number = line_number
        self.original_error = original_error

    def __str__(self) -> str:
        """
        Return string representation with line number if available.

        Returns:
            str: Error message prefixed with line number if set.
        """
        message = str(self.args[0]) if self.args else "Validation error"
        if self.line_number:
            return f"Line {self.line_number}: {message}"
        return message


class CSVValidationError(ValidationError):
    """Raised when the CSV file itself is malformed."""

    pass


class UnknownHeaderAttributeError(ValidationError):
    """Raised when a header column is not an attribute of the object type."""

    def __init__(self, attributes: list[str], object_type: str) -> None:
        """
        Initialize UnknownHeaderAttributeError.

        Args:
            attributes: Header columns missing from the schema.
            object_type: Object type whose schema was checked.
        """
        super().__init__(
            f"Header attribute(s) not bound to {object_type}: {', '.join(attributes)}"
        )
        self.attributes = attributes
        self.object_type = object_type


class MissingMatchAttributeError(ValidationError):
    """Raised when the match attribute is not a column in the file header."""

    def __init__(self, match_attribute: str) -> None:
        super().__init__(
            f"Match attribute '{match_attribute}' is not a column in the file header"
        )
        self.match_attribute = match_attribute


class UnknownStateError(ValidationError):
    """Raised when a row state is not Create, Put or Delete."""

    def __init__(self, value: str, line_number: int | None = None) -> None:
        super().__init__(
            f"Unknown state '{value}' (expected Create, Put or Delete)", line_number=line_number
        )
        self.value = value


class UnknownOperationError(ValidationError):
    """Raised when a row operation is not Add, Replace or Delete."""

    def __init__(self, value: str, line_number: int | None = None) -> None:
        super().__init__(
            f"Unknown operation '{value}' (expected Add, Replace or Delete)",
            line_number=line_number,
        )
        self.value = value


class ReferenceSyntaxError(ValidationError):
    """Raised when a reference value is not shaped like (ObjectType|Attribute|Value)."""

    def __init__(
        self, value: str, attribute: str | None = None, line_number: int | None = None
    ) -> None:
        """
        Initialize ReferenceSyntaxError.

        Args:
            value: Raw field value that failed to parse.
            attribute: Attribute (column) the value belongs to, if known.
            line_number: Optional CSV line number.
        """
        location = f" in attribute '{attribute}'" if attribute else ""
        super().__init__(
            f"Malformed reference '{value}'{location}; expected (ObjectType|Attribute|Value)",
            line_number=line_number,
        )
        self.value = value
        self.attribute = attribute


class SchemaError(ImporterError):
    """Base exception for schema lookups."""

    pass


class UnknownObjectTypeError(SchemaError):
    """Raised when the directory reports no bound attributes for an object type."""

    def __init__(self, object_type: str) -> None:
        super().__init__(f"Unknown object type '{object_type}': no bound attributes found")
        self.object_type = object_type


class DuplicateAttributeError(SchemaError):
    """Raised when the same attribute name is bound twice to one object type."""

    def __init__(self, object_type: str, attribute: str) -> None:
        super().__init__(f"Attribute '{attribute}' is bound more than once to {object_type}")
        self.object_type = object_type
        self.attribute = attribute


class UnknownAttributeError(SchemaError):
    """Raised when a row field names an attribute the object type does not have."""

    def __init__(self, attribute: str, object_type: str, line_number: int | None = None) -> None:
        prefix = f"Line {line_number}: " if line_number else ""
        super().__init__(f"{prefix}Attribute '{attribute}' is not bound to {object_type}")
        self.attribute = attribute
        self.object_type = object_type
        self.line_number = line_number


class ResolutionError(ImporterError):
    """Base exception for resolving a reference to exactly one directory object."""

    def __init__(self, message: str, object_type: str, attribute: str, value: str) -> None:
        super().__init__(message)
        self.object_type = object_type
        self.attribute = attribute
        self.value = value


class ReferenceNotFoundError(ResolutionError):
    """Raised when no directory object matches a reference."""

    def __init__(self, object_type: str, attribute: str, value: str) -> None:
        super().__init__(
            f"No {object_type} found with {attribute}='{value}'", object_type, attribute, value
        )


class AmbiguousReferenceError(ResolutionError):
    """Raised when more than one directory object matches a reference."""

    def __init__(self, object_type: str, attribute: str, value: str, matches: int) -> None:
        super().__init__(
            f"{matches} {object_type} objects found with {attribute}='{value}', expected one",
            object_type,
            attribute,
            value,
        )
        self.matches = matches


class FIMAPIError(ImporterError):
    """Base exception for FIM Service API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """
        Initialize FIMAPIError.

        Args:
            message: Error message.
            status_code: Optional HTTP status code.
        """
        super().__init__(message)
        self.status_code = status_code


class FIMAuthenticationError(FIMAPIError):
    """Raised when the FIM Service rejects the credentials."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, status_code=401)


class FIMRateLimitError(FIMAPIError):
    """Raised when the FIM Service rate limit is hit."""

    def __init__(self, retry_after: int) -> None:
        """
        Initialize FIMRateLimitError.

        Args:
            retry_after: Seconds to wait before retrying.
        """
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s", status_code=429)
        self.retry_after = retry_after


class ResourceNotFoundError(FIMAPIError):
    """Raised when an API endpoint or resource returns 404."""

    def __init__(self, resource: str, detail: str = "") -> None:
        message = f"{resource} not found"
        if detail:
            message += f": {detail}"
        super().__init__(message, status_code=404)
        self.resource = resource
