"""Per-row classification.

Decides, for every row, which object type it targets, whether it creates,
modifies or deletes, and how multi-valued attributes are changed. Reserved
header columns override the run defaults row by row, which is what lets one
file mix creates, updates and deletes across several object types.
"""

from ..config import DefaultsConfig
from ..constants import OBJECT_TYPE_COLUMN, OPERATION_COLUMN, STATE_COLUMN
from ..models.changes import ChangeOperation, Classification, State
from ..models.row import Row
from ..utils.exceptions import UnknownOperationError, UnknownStateError

_STATES: dict[str, State] = {state.value.lower(): state for state in State}
_OPERATIONS: dict[str, ChangeOperation] = {op.value.lower(): op for op in ChangeOperation}


def parse_state(value: str, line_number: int | None = None) -> State:
    """
    Match a state case-insensitively against Create, Put and Delete.

    Raises:
        UnknownStateError: For any other value
    """
    try:
        return _STATES[value.strip().lower()]
    except KeyError:
        raise UnknownStateError(value, line_number) from None


def parse_operation(value: str, line_number: int | None = None) -> ChangeOperation:
    """
    Match an operation case-insensitively against Add, Replace and Delete.

    Raises:
        UnknownOperationError: For any other value
    """
    try:
        return _OPERATIONS[value.strip().lower()]
    except KeyError:
        raise UnknownOperationError(value, line_number) from None


class RowClassifier:
    """Resolve the effective object type, state and operation of a row."""

    def classify(self, row: Row, header: list[str], defaults: DefaultsConfig) -> Classification:
        """
        Classify a row.

        A reserved column present in the header wins over the run default,
        but only when the row's value for it is non-empty.

        Args:
            row: Row to classify
            header: File header
            defaults: Run-level defaults

        Returns:
            Effective classification

        Raises:
            UnknownStateError: If the effective state is not Create, Put or Delete
            UnknownOperationError: If the effective operation is not Add,
                Replace or Delete
        """
        object_type = self._effective(row, header, OBJECT_TYPE_COLUMN, defaults.object_type)
        state = parse_state(
            self._effective(row, header, STATE_COLUMN, defaults.state), row.line_number
        )
        operation = parse_operation(
            self._effective(row, header, OPERATION_COLUMN, defaults.operation), row.line_number
        )
        return Classification(object_type, state, operation)

    @staticmethod
    def _effective(row: Row, header: list[str], column: str, default: str) -> str:
        if column in header:
            value = row.get(column)
            if value:
                return value
        return default
