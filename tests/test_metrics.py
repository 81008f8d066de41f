"""Tests for the metrics recorder."""

import pytest

from product_parser.layers.metrics import MetricsRecorder


def test_empty_snapshot():
    snapshot = MetricsRecorder().snapshot()
    assert snapshot.total_parses == 0
    assert snapshot.cache_hit_rate == 0.0
    assert snapshot.avg_parse_time == 0.0
    assert snapshot.methods == []


def test_counts_and_averages():
    metrics = MetricsRecorder()
    metrics.record_request(0.2)
    metrics.record_request(0.4)
    metrics.record_request(0.0)
    metrics.record_cache_hit()
    metrics.record_method("enhanced", 0.2)
    metrics.record_method("enhanced", 0.4)
    metrics.record_fetch("page")
    metrics.record_fetch("page")
    metrics.record_fetch("redirect")

    snapshot = metrics.snapshot()
    assert snapshot.total_parses == 3
    assert snapshot.cache_hits == 1
    assert snapshot.cache_hit_rate == pytest.approx(1 / 3)
    assert snapshot.avg_parse_time == pytest.approx(0.2)
    assert snapshot.network_fetches == 3
    assert snapshot.fetches_by_kind == {"page": 2, "redirect": 1}
    assert len(snapshot.methods) == 1
    assert snapshot.methods[0].method == "enhanced"
    assert snapshot.methods[0].count == 2
    assert snapshot.methods[0].avg_time == pytest.approx(0.3)


def test_reset():
    metrics = MetricsRecorder()
    metrics.record_request(1.0)
    metrics.record_fetch("page")
    metrics.reset()

    assert metrics.network_fetches == 0
    assert metrics.snapshot().total_parses == 0


def test_recorders_do_not_share_collectors():
    first, second = MetricsRecorder(), MetricsRecorder()
    first.record_fetch("page")
    first.record_cache_hit()

    assert first.network_fetches == 1
    assert second.network_fetches == 0
    assert second.cache_hits == 0


def test_values_exposed_through_registry():
    metrics = MetricsRecorder()
    metrics.record_fetch("remote-render")
    metrics.record_method("simple", 0.5)

    registry = metrics.registry
    assert registry.get_sample_value(
        "product_parse_network_fetches_total", {"kind": "remote-render"}
    ) == 1.0
    assert registry.get_sample_value(
        "product_parse_method_duration_seconds_count", {"method": "simple"}
    ) == 1.0
    assert registry.get_sample_value(
        "product_parse_method_duration_seconds_sum", {"method": "simple"}
    ) == 0.5
