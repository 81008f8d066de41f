"""
Prometheus metrics for the Product URL Parser.
Tracks call counts, latency, cache hit rate and outbound fetches.
"""
from typing import Dict, Iterator, Tuple

from prometheus_client import CollectorRegistry, Counter, Histogram

from product_parser.models.product import MethodStats, MetricsSnapshot


LATENCY_BUCKETS = [0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0]


class MetricsRecorder:
    """
    Operational metrics on a private CollectorRegistry.

    Each recorder owns its registry so separate engines (and tests) never
    share counters. prometheus_client collectors are thread-safe, so a
    recorder can be shared between concurrent parse calls.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Start over with fresh collectors on a new registry."""
        registry = CollectorRegistry()

        self.request_duration = Histogram(
            "product_parse_request_duration_seconds",
            "Time spent in one parse call, cache hits included",
            buckets=LATENCY_BUCKETS,
            registry=registry,
        )
        self.cache_hits_total = Counter(
            "product_parse_cache_hits",
            "Parse calls answered from the result cache",
            registry=registry,
        )
        self.method_duration = Histogram(
            "product_parse_method_duration_seconds",
            "Time spent in completed, non-cached parses",
            ["method"],
            buckets=LATENCY_BUCKETS,
            registry=registry,
        )
        self.fetches_total = Counter(
            "product_parse_network_fetches",
            "Outbound network requests",
            ["kind"],
            registry=registry,
        )
        self.registry = registry

    def record_request(self, duration: float):
        """Record one parse call, cache hits included."""
        self.request_duration.observe(duration)

    def record_cache_hit(self):
        self.cache_hits_total.inc()

    def record_method(self, method: str, duration: float):
        """Record a completed, non-cached parse attributed to a strategy."""
        self.method_duration.labels(method=method).observe(duration)

    def record_fetch(self, kind: str):
        """Record one outbound network request (redirect, page, remote-render)."""
        self.fetches_total.labels(kind=kind).inc()

    def _value(self, sample_name: str) -> float:
        return self.registry.get_sample_value(sample_name) or 0.0

    def _samples(self, sample_name: str) -> Iterator[Tuple[Dict[str, str], float]]:
        for metric in self.registry.collect():
            for sample in metric.samples:
                if sample.name == sample_name:
                    yield sample.labels, sample.value

    def _by_label(self, sample_name: str, label: str) -> Dict[str, float]:
        return {labels[label]: value for labels, value in self._samples(sample_name)}

    @property
    def network_fetches(self) -> int:
        return int(sum(self._by_label("product_parse_network_fetches_total", "kind").values()))

    @property
    def cache_hits(self) -> int:
        return int(self._value("product_parse_cache_hits_total"))

    def snapshot(self) -> MetricsSnapshot:
        """Summarize the collectors into a MetricsSnapshot."""
        total = int(self._value("product_parse_request_duration_seconds_count"))
        total_time = self._value("product_parse_request_duration_seconds_sum")
        cache_hits = self.cache_hits
        fetches = {
            kind: int(count)
            for kind, count in self._by_label("product_parse_network_fetches_total", "kind").items()
        }

        counts = self._by_label("product_parse_method_duration_seconds_count", "method")
        times = self._by_label("product_parse_method_duration_seconds_sum", "method")

        return MetricsSnapshot(
            total_parses=total,
            cache_hits=cache_hits,
            cache_hit_rate=cache_hits / total if total else 0.0,
            avg_parse_time=total_time / total if total else 0.0,
            network_fetches=sum(fetches.values()),
            fetches_by_kind=fetches,
            methods=[
                MethodStats(
                    method=method,
                    count=int(count),
                    avg_time=times.get(method, 0.0) / count if count else 0.0,
                )
                for method, count in counts.items()
            ],
        )
