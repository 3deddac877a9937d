"""FIM Service binding: REST client and change request primitives."""

from .client import FIMClient
from .requests import (
    add_multi_value,
    create_object,
    delete_object,
    modify_object,
    remove_multi_value,
    resolve_by_attribute,
    set_single_value,
    to_import_object,
)

__all__ = [
    "FIMClient",
    "create_object",
    "modify_object",
    "delete_object",
    "resolve_by_attribute",
    "set_single_value",
    "add_multi_value",
    "remove_multi_value",
    "to_import_object",
]
