"""Constants for the FIM CSV Sync tool.

Reserved header tokens, the FIM attribute names the tool relies on, and the
default delimiters used when no configuration overrides them.
"""

# -----------------------------------------------------------------------------
# Reserved pseudo-attributes
# -----------------------------------------------------------------------------
# Header columns prefixed with "!" override run defaults per row. They are
# always part of a Schema and never forwarded to the directory.

OBJECT_TYPE_COLUMN: str = "!ObjectType"
STATE_COLUMN: str = "!State"
OPERATION_COLUMN: str = "!Operation"

RESERVED_COLUMNS: frozenset[str] = frozenset({OBJECT_TYPE_COLUMN, STATE_COLUMN, OPERATION_COLUMN})

# -----------------------------------------------------------------------------
# FIM attribute names
# -----------------------------------------------------------------------------

# Match attribute meaning "the row value already is the target ObjectID"
OBJECT_ID_ATTRIBUTE: str = "ObjectID"

# Locale sent with every ImportChange
DEFAULT_LOCALE: str = "Invariant"

# Prefix of identifiers generated for Resolve placeholders
URN_UUID_PREFIX: str = "urn:uuid:"

# -----------------------------------------------------------------------------
# CSV format defaults
# -----------------------------------------------------------------------------

DEFAULT_FIELD_DELIMITER: str = ","
DEFAULT_MULTI_VALUE_DELIMITER: str = ";"
DEFAULT_REFERENCE_DELIMITER: str = "|"

# -----------------------------------------------------------------------------
# Run defaults
# -----------------------------------------------------------------------------

DEFAULT_OBJECT_TYPE: str = "Person"
DEFAULT_STATE: str = "Create"
DEFAULT_OPERATION: str = "Add"
DEFAULT_MATCH_ATTRIBUTE: str = OBJECT_ID_ATTRIBUTE

# -----------------------------------------------------------------------------
# Pagination Limits
# -----------------------------------------------------------------------------

# Default number of items per page in query requests
DEFAULT_PAGE_SIZE: int = 100

# Maximum page size for query requests
MAX_PAGE_SIZE: int = 1000

# Safety cap on the number of pages followed for one query
MAX_QUERY_PAGES: int = 1000
