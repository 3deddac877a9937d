"""Centralized endpoint and filter configuration for the FIM Service REST gateway.

Usage:
    from fimsync.fim.endpoints import FIMEndpoints, FIMFilters, build_filter

    xpath = FIMFilters.BOUND_ATTRIBUTES.format(object_type="Person")
    lookup = build_filter("Person", "EmployeeID", "100123")
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FIMEndpoints:
    """
    FIM REST gateway endpoint constants.

    All endpoints are relative to the base API URL (e.g., /api/v2/).
    """

    # Query resources with an XPath filter
    RESOURCES: str = "resources"

    # Submit one or more ImportObjects in a single request
    IMPORT_OBJECTS: str = "importobjects"


@dataclass(frozen=True)
class FIMFilters:
    """XPath filter templates understood by the FIM Service."""

    # AttributeTypeDescriptions bound to an object type
    BOUND_ATTRIBUTES: str = (
        "/AttributeTypeDescription[ObjectID=/BindingDescription"
        "[BoundObjectType=/ObjectTypeDescription[Name='{object_type}']]/BoundAttributeType]"
    )

    # Objects of a type with one attribute equal to a value
    ATTRIBUTE_EQUALS: str = "/{object_type}[{attribute}='{value}']"

    # Cheap query used to check connectivity
    PING: str = "/ObjectTypeDescription[Name='Person']"


# Attributes projected when reading the schema
SCHEMA_ATTRIBUTES: list[str] = ["Name", "DataType", "Multivalued"]

# Attributes projected when looking up identifiers
IDENTITY_ATTRIBUTES: list[str] = ["ObjectID"]


def escape_filter_value(value: str) -> str:
    """
    Escape a value for use inside a single-quoted XPath literal.

    Single quotes are doubled, which is how XPath 2.0 embeds them.
    """
    if not isinstance(value, str):
        return str(value)
    return value.replace("'", "''")


def build_filter(object_type: str, attribute: str, value: str) -> str:
    """
    Build the equality filter /{Type}[{Attr}='{Value}'].

    Args:
        object_type: Object type to select
        attribute: Attribute to compare
        value: Value the attribute must equal

    Returns:
        XPath filter string, e.g. /Person[EmployeeID='100123']
    """
    return FIMFilters.ATTRIBUTE_EQUALS.format(
        object_type=object_type,
        attribute=attribute,
        value=escape_filter_value(value),
    )
