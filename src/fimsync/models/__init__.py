"""Data models for the FIM CSV Sync tool."""

from .changes import (
    AttributeChange,
    ChangeOperation,
    ChangeRequest,
    Classification,
    RequestKind,
    State,
    ValueOperation,
)
from .results import ImportResult, RowOutcome, RowStatus
from .row import Row

__all__ = [
    # Input
    "Row",
    # Changes
    "State",
    "ChangeOperation",
    "RequestKind",
    "ValueOperation",
    "Classification",
    "AttributeChange",
    "ChangeRequest",
    # Results
    "RowStatus",
    "RowOutcome",
    "ImportResult",
]
