"""Change request types and models."""

from dataclasses import dataclass, field
from enum import Enum


class State(str, Enum):
    """Row state: what should happen to the directory object."""

    CREATE = "Create"
    PUT = "Put"
    DELETE = "Delete"


class ChangeOperation(str, Enum):
    """Row operation: how multi-valued attributes are changed."""

    ADD = "Add"
    REPLACE = "Replace"
    DELETE = "Delete"


class RequestKind(str, Enum):
    """Kind of change request submitted to the directory."""

    CREATE = "Create"
    MODIFY = "Modify"
    DELETE = "Delete"
    RESOLVE = "Resolve"


class ValueOperation(str, Enum):
    """Operation applied to one attribute value."""

    SET = "Set"
    ADD = "Add"
    REMOVE = "Remove"


@dataclass(frozen=True)
class Classification:
    """
    Effective per-row settings after applying override columns.

    Attributes:
        object_type: Directory object type the row targets
        state: Create, Put or Delete
        operation: Add, Replace or Delete (multi-valued attributes)
    """

    object_type: str
    state: State
    operation: ChangeOperation


@dataclass(frozen=True)
class AttributeChange:
    """
    A change to a single attribute value.

    Attributes:
        attribute_name: Schema attribute being changed
        value: New value, resolved identifier or placeholder (None clears)
        operation: Set for scalars, Add/Remove for multi-valued attributes
        resolved: False when value is a placeholder the service resolves
            at submission time
    """

    attribute_name: str
    value: str | None
    operation: ValueOperation
    resolved: bool = True

    def __str__(self) -> str:
        marker = "" if self.resolved else " (unresolved)"
        return f"{self.operation.value} {self.attribute_name}={self.value}{marker}"


@dataclass
class ChangeRequest:
    """
    A complete directory change request built from one row.

    Attributes:
        kind: Create, Modify, Delete or Resolve
        object_type: Target object type
        target_identifier: ObjectID of the target (Modify/Delete only)
        source_identifier: Placeholder identifier (Create and Resolve requests)
        changes: Ordered attribute changes
        anchor: (attribute, value) a Resolve request looks the object up by
        dependencies: Resolve requests that must be submitted together with
            this request
    """

    kind: RequestKind
    object_type: str
    target_identifier: str | None = None
    source_identifier: str | None = None
    changes: list[AttributeChange] = field(default_factory=list)
    anchor: tuple[str, str] | None = None
    dependencies: list["ChangeRequest"] = field(default_factory=list)

    def describe(self) -> str:
        """
        Get a one-line human-readable description.

        Returns:
            str: e.g. "Modify Person urn:uuid:... (2 changes)"
        """
        target = f" {self.target_identifier}" if self.target_identifier else ""
        return f"{self.kind.value} {self.object_type}{target} ({len(self.changes)} changes)"
