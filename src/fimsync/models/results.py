"""Result types for sync runs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .changes import RequestKind, State


class RowStatus(str, Enum):
    """Outcome of processing one row."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RowOutcome:
    """
    Result of processing a single row.

    Attributes:
        line_number: CSV line the row came from
        object_type: Effective object type
        state: Effective row state
        status: Succeeded, skipped or failed
        request_kind: Kind of request built (None when skipped before building)
        target_identifier: ObjectID the request targeted, if any
        created_identifiers: ObjectIDs the service reported for the submission
        message: Skip reason or error details
        dry_run: True when the request was built but not submitted
        duration_ms: Time spent on the row in milliseconds
    """

    line_number: int
    object_type: str
    state: State
    status: RowStatus
    request_kind: RequestKind | None = None
    target_identifier: str | None = None
    created_identifiers: list[str] = field(default_factory=list)
    message: str | None = None
    dry_run: bool = False
    duration_ms: float | None = None

    @property
    def success(self) -> bool:
        return self.status == RowStatus.SUCCEEDED


@dataclass
class ImportResult:
    """
    Overall result of a sync run.

    Attributes:
        session_id: Unique run identifier
        outcomes: Per-row outcomes in file order
        started_at: Start timestamp
        completed_at: Completion timestamp
    """

    session_id: str
    outcomes: list[RowOutcome] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def total_rows(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.status == RowStatus.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == RowStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == RowStatus.FAILED)

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def get_summary(self) -> str:
        """
        Get a human-readable summary.

        Returns:
            str: Summary string with session ID and counts.
        """
        return (
            f"Session {self.session_id}: "
            f"{self.succeeded}/{self.total_rows} rows succeeded, "
            f"{self.skipped} skipped, {self.failed} failed"
        )
