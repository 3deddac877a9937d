"""Reference expression parsing and resolution.

Reference attributes hold the ObjectID of another directory object. In the
input file they are written as a lookup expression instead of a raw GUID:

    (Person|EmployeeID|757011)

which reads "the Person whose EmployeeID is 757011". The resolver turns such
an expression into exactly one ObjectID by querying the directory with
/Person[EmployeeID='757011'].
"""

from dataclasses import dataclass

import structlog

from ..constants import DEFAULT_REFERENCE_DELIMITER
from ..fim.client import FIMClient
from ..fim.endpoints import build_filter
from ..utils.exceptions import (
    AmbiguousReferenceError,
    ReferenceNotFoundError,
    ReferenceSyntaxError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReferenceExpression:
    """A parsed (ObjectType|AttributeName|AttributeValue) expression."""

    object_type: str
    attribute: str
    value: str

    def __str__(self) -> str:
        return f"({self.object_type}|{self.attribute}|{self.value})"


def looks_like_reference(raw: str | None) -> bool:
    """Whether a raw value is parenthesised like a reference expression."""
    if not raw:
        return False
    raw = raw.strip()
    return raw.startswith("(") and raw.endswith(")")


def parse_reference(
    raw: str,
    delimiter: str = DEFAULT_REFERENCE_DELIMITER,
    attribute: str | None = None,
    line_number: int | None = None,
) -> ReferenceExpression:
    """
    Parse a reference expression.

    Args:
        raw: Raw field value, e.g. "(Person|EmployeeID|757011)"
        delimiter: Separator between the three parts
        attribute: Column the value came from (for error messages)
        line_number: CSV line the value came from (for error messages)

    Returns:
        Parsed expression

    Raises:
        ReferenceSyntaxError: Unless the value is exactly three non-empty
            parts enclosed in parentheses
    """
    text = raw.strip() if raw else ""
    if not looks_like_reference(text):
        raise ReferenceSyntaxError(raw, attribute, line_number)

    parts = [part.strip() for part in text[1:-1].split(delimiter)]
    if len(parts) != 3 or not all(parts):
        raise ReferenceSyntaxError(raw, attribute, line_number)

    return ReferenceExpression(*parts)


class ReferenceResolver:
    """
    Resolve lookups to directory ObjectIDs.

    There is no retry and no caching: every call is one directory query.
    """

    def __init__(self, client: FIMClient) -> None:
        """
        Initialize the resolver.

        Args:
            client: FIM client used for queries
        """
        self.client = client

    async def lookup(self, object_type: str, attribute: str, value: str) -> list[str]:
        """
        Return the ObjectIDs of every object whose attribute equals value.

        Args:
            object_type: Object type to search
            attribute: Attribute to compare
            value: Value to match

        Returns:
            Matching ObjectIDs, possibly empty
        """
        matches = await self.client.find_object_ids(object_type, attribute, value)
        logger.debug(
            "Lookup complete",
            filter=build_filter(object_type, attribute, value),
            matches=len(matches),
        )
        return matches

    async def resolve(self, object_type: str, attribute: str, value: str) -> str:
        """
        Resolve a lookup to exactly one ObjectID.

        Args:
            object_type: Object type to search
            attribute: Attribute to compare
            value: Value to match

        Returns:
            The ObjectID of the single matching object

        Raises:
            ReferenceNotFoundError: If nothing matches
            AmbiguousReferenceError: If more than one object matches
        """
        matches = await self.lookup(object_type, attribute, value)
        if not matches:
            raise ReferenceNotFoundError(object_type, attribute, value)
        if len(matches) > 1:
            raise AmbiguousReferenceError(object_type, attribute, value, len(matches))
        return matches[0]

    async def resolve_expression(self, expression: ReferenceExpression) -> str:
        """Resolve a parsed reference expression. See resolve()."""
        return await self.resolve(expression.object_type, expression.attribute, expression.value)
