"""Low-level change request builders.

These primitives mirror the FIM ImportObject model: a request is opened with
one of the ``*_object`` constructors and values are attached with the setters.
``to_import_object`` produces the JSON body the importobjects endpoint accepts:

    {
        "ObjectType": "Person",
        "State": "Put",
        "TargetObjectIdentifier": "urn:uuid:...",
        "SourceObjectIdentifier": "urn:uuid:...",
        "Changes": [
            {"Operation": "Replace", "AttributeName": "FirstName",
             "AttributeValue": "Alice", "FullyResolved": true, "Locale": "Invariant"}
        ]
    }
"""

import uuid
from typing import Any

from ..constants import DEFAULT_LOCALE, URN_UUID_PREFIX
from ..models.changes import AttributeChange, ChangeRequest, RequestKind, ValueOperation

# ChangeRequest kind -> ImportObject State
_STATE_BY_KIND: dict[RequestKind, str] = {
    RequestKind.CREATE: "Create",
    RequestKind.MODIFY: "Put",
    RequestKind.DELETE: "Delete",
    RequestKind.RESOLVE: "Resolve",
}

# Value operation -> ImportChange Operation
_OPERATION_BY_VALUE_OP: dict[ValueOperation, str] = {
    ValueOperation.SET: "Replace",
    ValueOperation.ADD: "Add",
    ValueOperation.REMOVE: "Delete",
}


def new_placeholder() -> str:
    """Return a fresh urn:uuid identifier for a request that has no ObjectID yet."""
    return f"{URN_UUID_PREFIX}{uuid.uuid4()}"


def create_object(object_type: str) -> ChangeRequest:
    """Open a request creating a new object of ``object_type``."""
    return ChangeRequest(
        kind=RequestKind.CREATE,
        object_type=object_type,
        source_identifier=new_placeholder(),
    )


def modify_object(target_id: str, object_type: str) -> ChangeRequest:
    """Open a request modifying the existing object ``target_id``."""
    return ChangeRequest(
        kind=RequestKind.MODIFY, object_type=object_type, target_identifier=target_id
    )


def delete_object(target_id: str, object_type: str) -> ChangeRequest:
    """Open a request deleting the existing object ``target_id``."""
    return ChangeRequest(
        kind=RequestKind.DELETE, object_type=object_type, target_identifier=target_id
    )


def resolve_by_attribute(object_type: str, attribute: str, value: str) -> ChangeRequest:
    """
    Open a Resolve request.

    The service replaces the request's source identifier with the ObjectID of
    the single ``object_type`` whose ``attribute`` equals ``value``. Other
    requests in the same submission may use the source identifier as an
    unresolved attribute value.
    """
    return ChangeRequest(
        kind=RequestKind.RESOLVE,
        object_type=object_type,
        source_identifier=new_placeholder(),
        anchor=(attribute, value),
    )


def set_single_value(
    handle: ChangeRequest, attribute: str, value: str | None, resolved: bool = True
) -> AttributeChange:
    """Replace the value of a single-valued attribute (None clears it)."""
    change = AttributeChange(attribute, value, ValueOperation.SET, resolved)
    handle.changes.append(change)
    return change


def add_multi_value(
    handle: ChangeRequest, attribute: str, value: str, resolved: bool = True
) -> AttributeChange:
    """Add one value to a multi-valued attribute."""
    change = AttributeChange(attribute, value, ValueOperation.ADD, resolved)
    handle.changes.append(change)
    return change


def remove_multi_value(
    handle: ChangeRequest, attribute: str, value: str, resolved: bool = True
) -> AttributeChange:
    """Remove one value from a multi-valued attribute."""
    change = AttributeChange(attribute, value, ValueOperation.REMOVE, resolved)
    handle.changes.append(change)
    return change


def to_import_object(request: ChangeRequest) -> dict[str, Any]:
    """
    Serialize a request to the ImportObject wire shape.

    Args:
        request: Request to serialize

    Returns:
        JSON-ready dictionary
    """
    body: dict[str, Any] = {
        "ObjectType": request.object_type,
        "State": _STATE_BY_KIND[request.kind],
    }
    if request.target_identifier:
        body["TargetObjectIdentifier"] = request.target_identifier
    if request.source_identifier:
        body["SourceObjectIdentifier"] = request.source_identifier
    if request.anchor:
        attribute, value = request.anchor
        body["AnchorPairs"] = [{"AttributeName": attribute, "AttributeValue": value}]

    body["Changes"] = [
        {
            "Operation": _OPERATION_BY_VALUE_OP[change.operation],
            "AttributeName": change.attribute_name,
            "AttributeValue": change.value,
            "FullyResolved": change.resolved,
            "Locale": DEFAULT_LOCALE,
        }
        for change in request.changes
    ]
    return body


def submission_batch(request: ChangeRequest) -> list[ChangeRequest]:
    """Return the request preceded by the Resolve requests it depends on."""
    return [*request.dependencies, request]
