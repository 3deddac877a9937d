"""CSV reader producing immutable Row records.

Overview:
--------
The CSVParser reads a delimited file and yields one Row per data line. The
first non-comment line is the header. Header tokens are either attribute
names bound in the directory schema or one of the reserved override columns
(!ObjectType, !State, !Operation).

CSV Format:
----------
```
!State,EmployeeID,FirstName,Manager
Create,100123,Alice,(Person|EmployeeID|757011)
Put,100124,Bob,
```

Key Features:
------------
1. Comment Support - Lines starting with '#' are ignored
2. Blank lines are skipped
3. Whitespace is stripped from all values; empty values become None
4. Short rows are padded, long rows are truncated with a warning
5. Rows are produced lazily so large files stream in constant memory

Error Handling:
--------------
- FileNotFoundError: CSV file doesn't exist
- CSVValidationError: No header line, or duplicate header names
"""

import csv
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TextIO

import structlog

from ..constants import DEFAULT_FIELD_DELIMITER
from ..models.row import Row
from ..utils.exceptions import CSVValidationError

logger = structlog.get_logger(__name__)


class CSVParser:
    """
    Parse a delimited file into Row records.

    The header is read on first access. Data rows are produced by iter_rows(),
    which re-opens the file, so a parser may be iterated more than once.
    """

    def __init__(self, csv_path: Path, delimiter: str = DEFAULT_FIELD_DELIMITER) -> None:
        """
        Initialize parser with CSV file path.

        Args:
            csv_path: Path to the input file
            delimiter: Field delimiter
        """
        self.csv_path = Path(csv_path)
        self.delimiter = delimiter
        self.rows_parsed = 0
        self._header: list[str] | None = None

    @property
    def header(self) -> list[str]:
        """
        Header names in file order.

        Raises:
            FileNotFoundError: If the file doesn't exist
            CSVValidationError: If there is no header or it repeats a name
        """
        if self._header is None:
            with self._open() as handle:
                self._header, _ = self._read_header(self._reader(handle))
        return list(self._header)

    def iter_rows(self) -> Iterator[Row]:
        """
        Yield data rows one at a time.

        Yields:
            Row records with 1-based physical line numbers

        Raises:
            FileNotFoundError: If the file doesn't exist
            CSVValidationError: If there is no header or it repeats a name
        """
        self.rows_parsed = 0
        logger.info("Starting CSV parse", csv_path=str(self.csv_path))

        with self._open() as handle:
            reader = self._reader(handle)
            header, _ = self._read_header(reader)
            self._header = header

            for line_number, fields in reader:
                # Skip completely empty rows
                if not fields or all(not cell.strip() for cell in fields):
                    continue

                if len(fields) != len(header):
                    logger.warning(
                        "Column count mismatch",
                        line=line_number,
                        expected=len(header),
                        actual=len(fields),
                        extra_columns=fields[len(header) :] if len(fields) > len(header) else None,
                    )

                # Pad if shorter than header, truncate if longer
                padded = fields[: len(header)]
                padded.extend([""] * (len(header) - len(padded)))

                self.rows_parsed += 1
                yield Row(line_number, self._clean(dict(zip(header, padded, strict=True))))

        logger.info("CSV parse complete", rows_parsed=self.rows_parsed, csv_path=str(self.csv_path))

    def _open(self) -> TextIO:
        if not self.csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {self.csv_path}")
        return open(self.csv_path, encoding="utf-8-sig", newline="")

    def _reader(self, handle: TextIO) -> Iterator[tuple[int, list[str]]]:
        """Yield (line_number, fields) for every non-comment record."""

        def without_comments(lines: Any) -> Iterator[str]:
            for line in lines:
                if line.strip().startswith("#"):
                    # Keep the line count right for reader.line_num
                    yield "\n"
                else:
                    yield line

        reader = csv.reader(without_comments(handle), delimiter=self.delimiter)
        for fields in reader:
            yield reader.line_num, fields

    def _read_header(
        self, records: Iterator[tuple[int, list[str]]]
    ) -> tuple[list[str], int]:
        """
        Consume records up to and including the header line.

        Returns:
            Tuple of (header names, header line number)
        """
        for line_number, fields in records:
            if not fields or all(not cell.strip() for cell in fields):
                continue

            header = [name.strip() for name in fields]
            if any(not name for name in header):
                raise CSVValidationError("Header contains an empty column name", line_number)

            seen: set[str] = set()
            duplicates: list[str] = []
            for name in header:
                if name in seen:
                    duplicates.append(name)
                seen.add(name)
            if duplicates:
                raise CSVValidationError(
                    f"Duplicate header names: {', '.join(sorted(set(duplicates)))}", line_number
                )

            logger.debug("Header read", headers=header, line=line_number)
            return header, line_number

        raise CSVValidationError(f"No header line found in {self.csv_path}")

    @staticmethod
    def _clean(row_dict: dict[str, str]) -> dict[str, str | None]:
        """
        Strip whitespace and convert empty strings to None.

        Args:
            row_dict: Raw row dictionary from the CSV reader

        Returns:
            Cleaned dictionary
        """
        cleaned: dict[str, str | None] = {}
        for key, value in row_dict.items():
            value = value.strip()
            cleaned[key] = value if value != "" else None
        return cleaned
