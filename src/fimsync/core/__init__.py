"""Core components of the FIM CSV Sync tool.

This package contains the CSV reader and the row translation engine: schema
lookup, reference resolution, row classification, attribute translation and
change request assembly.
"""

from .change_builder import BuildResult, ChangeBuilder, ensure_match_attribute
from .classifier import RowClassifier
from .parser import CSVParser
from .references import ReferenceExpression, ReferenceResolver, build_filter, parse_reference
from .schema import AttributeDescriptor, AttributeKind, DataType, Schema, SchemaRegistry
from .translator import AttributeTranslator, TranslationResult

__all__ = [
    "AttributeDescriptor",
    "AttributeKind",
    "AttributeTranslator",
    "BuildResult",
    "ChangeBuilder",
    "CSVParser",
    "DataType",
    "ReferenceExpression",
    "ReferenceResolver",
    "RowClassifier",
    "Schema",
    "SchemaRegistry",
    "TranslationResult",
    "build_filter",
    "ensure_match_attribute",
    "parse_reference",
]
