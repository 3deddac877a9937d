"""Input row model."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class Row:
    """
    One data line of the input file.

    Attributes:
        line_number: 1-based physical line number in the file
        values: Header name -> raw field value (None when the field is empty),
            in header order. Read-only.
    """

    line_number: int
    values: Mapping[str, str | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze a private copy so callers cannot mutate the row afterwards
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, header: str) -> str | None:
        """Return the raw value of a column, or None if absent or empty."""
        return self.values.get(header)

    def items(self) -> Iterator[tuple[str, str | None]]:
        """Iterate (header, value) pairs in header order."""
        return iter(self.values.items())

    def __contains__(self, header: object) -> bool:
        return header in self.values

    def __hash__(self) -> int:
        return hash((self.line_number, tuple(self.values.items())))
