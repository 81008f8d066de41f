"""Tests for trace id binding."""

import asyncio

import pytest

from product_parser.utils.logger import LayerLogger, get_trace_id, set_trace_id


def test_set_trace_id_binds_value():
    assert set_trace_id("abc12345") == "abc12345"
    assert get_trace_id() == "abc12345"


def test_generated_trace_ids_are_short():
    trace_id = set_trace_id()
    assert len(trace_id) == 8
    assert get_trace_id() == trace_id


@pytest.mark.asyncio
async def test_trace_ids_isolated_per_task():
    async def handle(name):
        set_trace_id(name)
        await asyncio.sleep(0)
        return get_trace_id()

    assert await asyncio.gather(handle("first"), handle("second")) == ["first", "second"]


def test_layer_logger_accepts_extra_fields():
    logger = LayerLogger("test_layer")
    logger.log_extraction(
        method="enhanced",
        fields_present=("item_name",),
        fields_missing=("price",),
        confidence=0.4,
        url="https://example.com/",
    )
    logger.log_redirect_hop("https://bit.ly/x", 301, "redirect", hop=1)
