"""Library for formatting output."""

from typing import Generator, Any

import sys
from typing import TextIO
import json


PADDING = 4


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the rows aligned in columns as wide as their longest value."""
    data = [headers] + rows
    widths = [max(len(row[i]) for row in data) for i in range(len(headers))]
    for row in data:
        yield "".join(
            value.ljust(width + PADDING) for value, width in zip(row, widths)
        ).rstrip()


class PrintFormatter:
    """A formatter that prints human readable console output."""

    def __init__(self, keys: list[str]):
        """Initialize the PrintFormatter with the keys to print."""
        self._keys = keys

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the data objects."""
        if not data:
            return
        rows = [[str(row.get(key) or "") for key in self._keys] for row in data]
        yield from format_columns([key.upper() for key in self._keys], rows)

    def print(self, data: list[dict[str, Any]], file: TextIO | None = None) -> None:
        """Output the data objects, to stdout unless a file is given."""
        file = file or sys.stdout
        for result in self.format(data):
            print(result, file=file)


class JsonFormatter:
    """A formatter that prints json output."""

    def print(self, data: Any, file: TextIO | None = None) -> None:
        """Output the data objects, to stdout unless a file is given."""
        file = file or sys.stdout
        json.dump(data, sort_keys=False, indent=4, fp=file)
        print(file=file)
