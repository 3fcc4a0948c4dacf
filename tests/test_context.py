"""Tests for stage tracing."""

import asyncio
import logging

import pytest

from storeforge.context import trace_context, trace_label


def test_nesting() -> None:
    assert trace_label() == ""
    with trace_context("shop-1"):
        with trace_context("bootstrap"):
            assert trace_label() == "shop-1 > bootstrap"
        assert trace_label() == "shop-1"
    assert trace_label() == ""


def test_exception(caplog: pytest.LogCaptureFixture) -> None:
    """Test a failing stage is logged and the stack is unwound."""
    caplog.set_level(logging.DEBUG, logger="storeforge.context")
    with pytest.raises(ValueError):
        with trace_context("shop-1"):
            raise ValueError("boom")
    assert trace_label() == ""
    assert "shop-1 aborted" in caplog.text


async def test_tasks_are_isolated() -> None:
    """Test concurrent workflows keep separate stacks."""
    labels: dict[str, str] = {}

    async def workflow(name: str) -> None:
        with trace_context(name):
            await asyncio.sleep(0.01)
            with trace_context("install"):
                await asyncio.sleep(0.01)
                labels[name] = trace_label()

    await asyncio.gather(workflow("shop-1"), workflow("shop-2"))
    assert labels == {"shop-1": "shop-1 > install", "shop-2": "shop-2 > install"}
