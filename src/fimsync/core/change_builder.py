"""Assemble directory change requests.

Create rows become Create requests directly. Put and Delete rows first locate
their target through the match attribute; when that does not lead to exactly
one object the row is skipped with a warning rather than failing the run, so
an ambiguous match can never modify or delete the wrong object.
"""

from dataclasses import dataclass

import structlog

from ..constants import OBJECT_ID_ATTRIBUTE
from ..fim.requests import (
    add_multi_value,
    create_object,
    delete_object,
    modify_object,
    remove_multi_value,
    set_single_value,
)
from ..models.changes import AttributeChange, ChangeRequest, Classification, State, ValueOperation
from ..models.row import Row
from ..utils.exceptions import MissingMatchAttributeError
from .references import ReferenceResolver

logger = structlog.get_logger(__name__)

_SETTERS = {
    ValueOperation.SET: set_single_value,
    ValueOperation.ADD: add_multi_value,
    ValueOperation.REMOVE: remove_multi_value,
}


@dataclass
class BuildResult:
    """Either a built request or the reason the row was skipped."""

    request: ChangeRequest | None = None
    skip_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.request is None


def ensure_match_attribute(header: list[str], match_attribute: str) -> None:
    """
    Check that the match attribute is a column of the file.

    Raises:
        MissingMatchAttributeError: If it is not
    """
    if match_attribute not in header:
        raise MissingMatchAttributeError(match_attribute)


class ChangeBuilder:
    """Build one ChangeRequest per row."""

    def __init__(self, resolver: ReferenceResolver) -> None:
        """
        Initialize the builder.

        Args:
            resolver: Resolver used to locate Put/Delete targets
        """
        self.resolver = resolver

    async def build(
        self,
        classification: Classification,
        changes: list[AttributeChange],
        match_attribute: str,
        row: Row,
        dependencies: list[ChangeRequest] | None = None,
    ) -> BuildResult:
        """
        Build the request for one row.

        Args:
            classification: Effective object type and state
            changes: Translated attribute changes (ignored for Delete)
            match_attribute: Column used to locate Put/Delete targets
            row: The row being built
            dependencies: Resolve requests the changes refer to

        Returns:
            BuildResult with the request, or with a skip reason when the
            target could not be located
        """
        object_type = classification.object_type

        if classification.state == State.CREATE:
            request = create_object(object_type)
            self._attach(request, changes, dependencies)
            return BuildResult(request)

        target_id, reason = await self._resolve_target(object_type, match_attribute, row)
        if reason:
            logger.warning("Row skipped", line=row.line_number, reason=reason)
            return BuildResult(skip_reason=reason)

        if classification.state == State.DELETE:
            return BuildResult(delete_object(target_id, object_type))

        request = modify_object(target_id, object_type)
        self._attach(request, changes, dependencies)
        return BuildResult(request)

    async def _resolve_target(
        self, object_type: str, match_attribute: str, row: Row
    ) -> tuple[str | None, str | None]:
        """
        Locate the object a Put/Delete row targets.

        Returns:
            Tuple of (target ObjectID, None) or (None, skip reason)
        """
        value = row.get(match_attribute)
        if not value:
            return None, f"Match attribute '{match_attribute}' is empty"

        if match_attribute == OBJECT_ID_ATTRIBUTE:
            return value, None

        matches = await self.resolver.lookup(object_type, match_attribute, value)
        if not matches:
            return None, f"No {object_type} found with {match_attribute}='{value}'"
        if len(matches) > 1:
            return None, (
                f"{len(matches)} {object_type} objects found with "
                f"{match_attribute}='{value}', expected one"
            )
        return matches[0], None

    @staticmethod
    def _attach(
        request: ChangeRequest,
        changes: list[AttributeChange],
        dependencies: list[ChangeRequest] | None,
    ) -> None:
        for change in changes:
            _SETTERS[change.operation](request, change.attribute_name, change.value, change.resolved)
        request.dependencies.extend(dependencies or [])
