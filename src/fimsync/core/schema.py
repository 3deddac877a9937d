"""Object type schema registry.

The directory decides at runtime which attributes an object type has, what
data type each holds and whether it is multi-valued. SchemaRegistry fetches
that once per object type and hands out immutable Schema objects the
translator dispatches on.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

import structlog
from pydantic import ValidationError

from ..constants import OBJECT_TYPE_COLUMN, OPERATION_COLUMN, RESERVED_COLUMNS, STATE_COLUMN
from ..fim.client import FIMClient
from ..fim.response_models import AttributeTypeDescriptionResponse
from ..observability.metrics import get_global_collector
from ..utils.exceptions import (
    DuplicateAttributeError,
    SchemaError,
    UnknownAttributeError,
    UnknownObjectTypeError,
)

logger = structlog.get_logger(__name__)


class DataType(str, Enum):
    """FIM attribute data types."""

    STRING = "String"
    TEXT = "Text"
    INTEGER = "Integer"
    BOOLEAN = "Boolean"
    DATETIME = "DateTime"
    BINARY = "Binary"
    REFERENCE = "Reference"
    # Reserved pseudo-attributes
    RESERVED = "Reserved"


class AttributeKind(str, Enum):
    """Translation variant of an attribute, derived from data type and cardinality."""

    SCALAR = "scalar"
    REFERENCE = "reference"
    MULTI_SCALAR = "multi_scalar"
    MULTI_REFERENCE = "multi_reference"
    RESERVED = "reserved"


@dataclass(frozen=True)
class AttributeDescriptor:
    """
    One attribute of an object type.

    Attributes:
        name: Attribute system name (e.g. "EmployeeID")
        data_type: FIM data type
        multivalued: Whether the attribute holds a set of values
    """

    name: str
    data_type: DataType
    multivalued: bool = False

    @property
    def is_reference(self) -> bool:
        return self.data_type == DataType.REFERENCE

    @property
    def is_reserved(self) -> bool:
        return self.data_type == DataType.RESERVED

    @property
    def kind(self) -> AttributeKind:
        """The closed variant the translator matches on."""
        if self.is_reserved:
            return AttributeKind.RESERVED
        if self.multivalued:
            return AttributeKind.MULTI_REFERENCE if self.is_reference else AttributeKind.MULTI_SCALAR
        return AttributeKind.REFERENCE if self.is_reference else AttributeKind.SCALAR


RESERVED_DESCRIPTORS: tuple[AttributeDescriptor, ...] = tuple(
    AttributeDescriptor(name, DataType.RESERVED)
    for name in (OBJECT_TYPE_COLUMN, STATE_COLUMN, OPERATION_COLUMN)
)


class Schema(Mapping[str, AttributeDescriptor]):
    """
    Immutable attribute name -> descriptor mapping for one object type.

    Always includes the reserved pseudo-attributes (!ObjectType, !State,
    !Operation) in addition to the attributes bound in the directory.
    """

    def __init__(self, object_type: str, descriptors: list[AttributeDescriptor]) -> None:
        """
        Build a schema.

        Args:
            object_type: Object type the descriptors belong to
            descriptors: Bound attribute descriptors

        Raises:
            DuplicateAttributeError: If an attribute name appears twice
            SchemaError: If a descriptor uses a reserved name
        """
        attributes: dict[str, AttributeDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in RESERVED_COLUMNS:
                raise SchemaError(
                    f"Attribute name '{descriptor.name}' on {object_type} is reserved"
                )
            if descriptor.name in attributes:
                raise DuplicateAttributeError(object_type, descriptor.name)
            attributes[descriptor.name] = descriptor

        for reserved in RESERVED_DESCRIPTORS:
            attributes[reserved.name] = reserved

        self.object_type = object_type
        self._attributes = MappingProxyType(attributes)

    def __getitem__(self, name: str) -> AttributeDescriptor:
        return self._attributes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __repr__(self) -> str:
        return f"Schema({self.object_type!r}, {len(self.bound_attributes())} attributes)"

    def lookup(self, name: str, line_number: int | None = None) -> AttributeDescriptor:
        """
        Return the descriptor for an attribute.

        Raises:
            UnknownAttributeError: If the attribute is not bound to the object type
        """
        try:
            return self._attributes[name]
        except KeyError:
            raise UnknownAttributeError(name, self.object_type, line_number) from None

    def bound_attributes(self) -> list[AttributeDescriptor]:
        """Descriptors that come from the directory (reserved ones excluded)."""
        return [d for d in self._attributes.values() if not d.is_reserved]

    def missing(self, headers: list[str]) -> list[str]:
        """Header names (reserved ones excluded) that are not in this schema."""
        return [h for h in headers if h not in RESERVED_COLUMNS and h not in self._attributes]


def parse_descriptor(raw: dict) -> AttributeDescriptor:
    """
    Convert a raw AttributeTypeDescription into a descriptor.

    Unknown data types are treated as String so they are passed through as text.
    """
    validated = AttributeTypeDescriptionResponse.model_validate(raw)
    try:
        data_type = DataType(validated.DataType)
    except ValueError:
        logger.warning(
            "Unknown attribute data type, treating as String",
            attribute=validated.Name,
            data_type=validated.DataType,
        )
        data_type = DataType.STRING
    return AttributeDescriptor(validated.Name, data_type, validated.Multivalued)


@dataclass
class CacheStats:
    """Statistics for schema cache performance."""

    cache_hits: int = 0
    cache_misses: int = 0

    def cache_hit(self) -> None:
        self.cache_hits += 1

    def cache_miss(self) -> None:
        self.cache_misses += 1

    @property
    def total_queries(self) -> int:
        return self.cache_hits + self.cache_misses

    def hit_rate(self) -> float:
        """
        Calculate cache hit rate.

        Returns:
            float: Hit rate as a decimal (0.0 to 1.0).
        """
        if self.total_queries == 0:
            return 0.0
        return self.cache_hits / self.total_queries


class SchemaRegistry:
    """
    Fetch and cache object type schemas for the lifetime of one run.

    A second get_schema() call for the same object type is served from memory
    without a remote round-trip. There is no invalidation.
    """

    def __init__(self, client: FIMClient) -> None:
        """
        Initialize the registry.

        Args:
            client: FIM client used to fetch attribute bindings
        """
        self.client = client
        self._schemas: dict[str, Schema] = {}
        self.stats = CacheStats()
        self.collector = get_global_collector()

    async def get_schema(self, object_type: str) -> Schema:
        """
        Return the schema of an object type.

        Args:
            object_type: Object type name, e.g. "Person"

        Returns:
            Schema for the object type

        Raises:
            UnknownObjectTypeError: If no attributes are bound to the type
            DuplicateAttributeError: If the directory reports an attribute twice
        """
        cached = self._schemas.get(object_type)
        if cached is not None:
            logger.debug("Schema cache hit", object_type=object_type)
            self.stats.cache_hit()
            self.collector.backend.increment("schema_cache_hit_total")
            return cached

        logger.debug("Schema cache miss", object_type=object_type)
        self.stats.cache_miss()
        self.collector.backend.increment("schema_cache_miss_total")

        raw_attributes = await self.client.get_bound_attributes(object_type)
        if not raw_attributes:
            raise UnknownObjectTypeError(object_type)

        descriptors = []
        for raw in raw_attributes:
            try:
                descriptors.append(parse_descriptor(raw))
            except ValidationError as e:
                raise SchemaError(
                    f"Malformed attribute description for {object_type}: {e.errors()[0]['msg']}"
                ) from e

        schema = Schema(object_type, descriptors)
        self._schemas[object_type] = schema

        logger.info(
            "Schema loaded",
            object_type=object_type,
            attributes=len(descriptors),
            references=sum(1 for d in descriptors if d.is_reference),
            multivalued=sum(1 for d in descriptors if d.multivalued),
        )
        return schema
