"""Tests for the output formatters."""

import io
import json

import pytest

from storeforge.tool.format import JsonFormatter, PrintFormatter, format_columns


def test_format_columns() -> None:
    lines = list(format_columns(["NAME", "STATUS"], [["shop-1", "Ready"], ["a", "b"]]))
    assert lines == [
        "NAME      STATUS",
        "shop-1    Ready",
        "a         b",
    ]


def test_print_follows_replaced_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test output goes to the stdout in place when printing."""
    out = io.StringIO()
    monkeypatch.setattr("sys.stdout", out)
    PrintFormatter(["name", "error"]).print([{"name": "shop-1", "error": None}])
    JsonFormatter().print([{"name": "shop-1"}])
    lines = out.getvalue().splitlines()
    assert lines[0] == "NAME      ERROR"
    assert lines[1] == "shop-1"
    assert json.loads("\n".join(lines[2:])) == [{"name": "shop-1"}]


def test_print_to_file() -> None:
    out = io.StringIO()
    PrintFormatter(["name"]).print([], file=out)
    JsonFormatter().print({"name": "shop-1"}, file=out)
    assert json.loads(out.getvalue()) == {"name": "shop-1"}
