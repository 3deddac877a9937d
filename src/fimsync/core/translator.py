"""Schema-driven attribute translation.

Turns the raw string fields of one row into typed AttributeChanges. The
schema decides, per column, which of four variants applies:

    SCALAR           Set <raw>
    REFERENCE        Set <ObjectID resolved from (Type|Attr|Value)>
    MULTI_SCALAR     one Add/Remove per delimiter-split piece
    MULTI_REFERENCE  one Add/Remove per piece, each piece resolved

Reference values are resolved in one of two modes:

    query     The translator queries the directory and emits the ObjectID.
    deferred  The translator emits a urn:uuid placeholder (resolved=False) and
              a Resolve request that travels with the row's request; the
              service swaps in the real ObjectID at submission time.
"""

from dataclasses import dataclass, field

import structlog

from ..config import CSVFormatConfig, EmptyValuePolicy, PolicyConfig, ReferenceMode
from ..constants import OBJECT_ID_ATTRIBUTE, RESERVED_COLUMNS
from ..fim.requests import resolve_by_attribute
from ..models.changes import (
    AttributeChange,
    ChangeOperation,
    ChangeRequest,
    Classification,
    State,
    ValueOperation,
)
from ..models.row import Row
from .references import ReferenceExpression, ReferenceResolver, parse_reference
from .schema import AttributeDescriptor, AttributeKind, Schema

logger = structlog.get_logger(__name__)

# Row operation -> value operation for multi-valued attributes
_MULTI_VALUE_OPERATIONS: dict[ChangeOperation, ValueOperation] = {
    ChangeOperation.ADD: ValueOperation.ADD,
    ChangeOperation.DELETE: ValueOperation.REMOVE,
    # No replace-the-whole-set path; Replace adds
    ChangeOperation.REPLACE: ValueOperation.ADD,
}


@dataclass
class TranslationResult:
    """
    Output of translating one row.

    Attributes:
        changes: Attribute changes in row field order
        dependencies: Resolve requests the changes refer to (deferred mode only)
    """

    changes: list[AttributeChange] = field(default_factory=list)
    dependencies: list[ChangeRequest] = field(default_factory=list)


class AttributeTranslator:
    """
    Translate row fields into attribute changes.

    Resolution errors (ReferenceNotFoundError, AmbiguousReferenceError)
    propagate to the caller, which applies the reference failure policy.
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        csv_format: CSVFormatConfig | None = None,
        policy: PolicyConfig | None = None,
    ) -> None:
        """
        Initialize the translator.

        Args:
            resolver: Resolver used in query mode
            csv_format: Multi-value and reference delimiters
            policy: Empty value and reference mode policies
        """
        self.resolver = resolver
        self.csv_format = csv_format or CSVFormatConfig()
        self.policy = policy or PolicyConfig()

    async def translate(
        self, row: Row, schema: Schema, classification: Classification
    ) -> TranslationResult:
        """
        Translate one row.

        Args:
            row: Row to translate
            schema: Schema of the row's effective object type
            classification: Effective state and operation of the row

        Returns:
            Changes (one per non-empty scalar field, one per non-empty piece of
            a multi-valued field) plus any deferred Resolve requests

        Raises:
            UnknownAttributeError: If a column is not bound to the object type
            ReferenceSyntaxError: If a reference value is malformed
            ReferenceNotFoundError: If a reference matches nothing (query mode)
            AmbiguousReferenceError: If a reference matches several objects
        """
        result = TranslationResult()
        # Placeholders by expression so a row resolves each lookup once
        placeholders: dict[ReferenceExpression, str] = {}

        for header, raw in row.items():
            if header in RESERVED_COLUMNS:
                continue
            if header == OBJECT_ID_ATTRIBUTE:
                # Assigned by the service; only ever used to locate the target
                continue

            if raw is None:
                self._translate_empty(header, row, schema, classification, result)
                continue

            descriptor = schema.lookup(header, row.line_number)

            match descriptor.kind:
                case AttributeKind.SCALAR:
                    result.changes.append(AttributeChange(header, raw, ValueOperation.SET))

                case AttributeKind.REFERENCE:
                    value, resolved = await self._reference_value(
                        raw, descriptor, row, result, placeholders
                    )
                    result.changes.append(
                        AttributeChange(header, value, ValueOperation.SET, resolved)
                    )

                case AttributeKind.MULTI_SCALAR | AttributeKind.MULTI_REFERENCE:
                    operation = self._multi_value_operation(classification, header)
                    for piece in self.split_multi_value(raw):
                        if descriptor.kind == AttributeKind.MULTI_REFERENCE:
                            value, resolved = await self._reference_value(
                                piece, descriptor, row, result, placeholders
                            )
                        else:
                            value, resolved = piece, True
                        result.changes.append(AttributeChange(header, value, operation, resolved))

                case AttributeKind.RESERVED:
                    continue

        logger.debug(
            "Row translated",
            changes=len(result.changes),
            dependencies=len(result.dependencies),
        )
        return result

    def split_multi_value(self, raw: str) -> list[str]:
        """Split a multi-valued field, dropping empty pieces."""
        pieces = (piece.strip() for piece in raw.split(self.csv_format.multi_value_delimiter))
        return [piece for piece in pieces if piece]

    def _translate_empty(
        self,
        header: str,
        row: Row,
        schema: Schema,
        classification: Classification,
        result: TranslationResult,
    ) -> None:
        if self.policy.empty_values != EmptyValuePolicy.CLEAR or classification.state != State.PUT:
            return

        descriptor = schema.lookup(header, row.line_number)
        if descriptor.multivalued:
            logger.debug("Empty multi-valued field left unchanged", attribute=header)
            return
        result.changes.append(AttributeChange(header, None, ValueOperation.SET))

    def _multi_value_operation(self, classification: Classification, attribute: str) -> ValueOperation:
        # A new object has no values to remove
        if classification.state == State.CREATE:
            if classification.operation != ChangeOperation.ADD:
                logger.debug(
                    "Multi-valued attribute on a created object treated as Add",
                    attribute=attribute,
                    operation=classification.operation.value,
                )
            return ValueOperation.ADD
        if classification.operation == ChangeOperation.REPLACE:
            logger.debug("Replace on multi-valued attribute treated as Add", attribute=attribute)
        return _MULTI_VALUE_OPERATIONS[classification.operation]

    async def _reference_value(
        self,
        raw: str,
        descriptor: AttributeDescriptor,
        row: Row,
        result: TranslationResult,
        placeholders: dict[ReferenceExpression, str],
    ) -> tuple[str, bool]:
        """
        Turn one reference expression into (value, resolved).

        Returns:
            The ObjectID and True in query mode, or a placeholder and False in
            deferred mode
        """
        expression = parse_reference(
            raw, self.csv_format.reference_delimiter, descriptor.name, row.line_number
        )

        if self.policy.reference_mode == ReferenceMode.DEFERRED:
            placeholder = placeholders.get(expression)
            if placeholder is None:
                dependency = resolve_by_attribute(
                    expression.object_type, expression.attribute, expression.value
                )
                result.dependencies.append(dependency)
                placeholder = dependency.source_identifier
                placeholders[expression] = placeholder
            logger.debug("Reference deferred", reference=str(expression), placeholder=placeholder)
            return placeholder, False

        object_id = await self.resolver.resolve_expression(expression)
        logger.debug("Reference resolved", reference=str(expression), object_id=object_id)
        return object_id, True
