"""
Extraction Engine for the Product URL Parser.
Orchestrates canonicalization, caching, strategy selection, escalation
and post-processing for one product URL.
"""
import time
from typing import Dict, Optional

import httpx

from product_parser.adapters.base import ExtractionStrategy
from product_parser.adapters.enhanced_scraper import EnhancedScraper
from product_parser.adapters.remote_render import RemoteRenderClient
from product_parser.adapters.simple_scraper import SimpleScraper
from product_parser.config import config
from product_parser.layers.cache import ResultCache
from product_parser.layers.canonicalizer import UrlCanonicalizer, normalize_url
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.postprocess import backfill, derive_item_name, derive_store_name
from product_parser.layers.scoring import ConfidenceScorer, EscalationPolicy
from product_parser.layers.strategy_selection import StrategySelector
from product_parser.models.product import (
    MetricsSnapshot,
    ParseMethod,
    ParseResult,
    ProductInfo,
    SiteStrategy,
)
from product_parser.utils.logger import LayerLogger, set_trace_id


class ExtractionEngine:
    """
    Extraction Engine - the public entry point.

    The flow for one request:
    canonicalize -> cache check -> select strategy -> execute -> score
    -> [escalate once] -> backfill -> cache store -> metrics

    parse_product_url() never raises; parse() exposes the full envelope.
    Cache and metrics are injected so callers can share or isolate them.
    """

    def __init__(
        self,
        cache: Optional[ResultCache] = None,
        metrics: Optional[MetricsRecorder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        escalation: Optional[EscalationPolicy] = None,
        selector: Optional[StrategySelector] = None,
        strategies: Optional[Dict[ParseMethod, ExtractionStrategy]] = None,
        remote_render_url: Optional[str] = config.REMOTE_RENDER_URL,
    ):
        self.logger = LayerLogger("extraction_engine")
        self.cache = cache if cache is not None else ResultCache(
            ttl_seconds=config.CACHE_TTL_SECONDS,
            max_size=config.CACHE_MAX_SIZE,
        )
        self.metrics = metrics if metrics is not None else MetricsRecorder()
        self.scorer = ConfidenceScorer()
        self.escalation = escalation or EscalationPolicy()
        self.selector = selector or StrategySelector()
        self.canonicalizer = UrlCanonicalizer(transport=transport, metrics=self.metrics)

        if strategies is None:
            strategies = {
                ParseMethod.SIMPLE: SimpleScraper(
                    transport=transport, metrics=self.metrics, scorer=self.scorer
                ),
                ParseMethod.ENHANCED: EnhancedScraper(
                    transport=transport, metrics=self.metrics, scorer=self.scorer
                ),
                ParseMethod.REMOTE_RENDER: RemoteRenderClient(
                    transport=transport,
                    metrics=self.metrics,
                    scorer=self.scorer,
                    endpoint=remote_render_url,
                ),
            }
        self.strategies = strategies

    async def parse_product_url(self, url: str) -> ProductInfo:
        """
        Extract product metadata for url.

        Always returns a ProductInfo with item_name and store_name set;
        in the worst case both are guessed from the URL itself.
        """
        try:
            result = await self.parse(url)
            return result.data
        except Exception as e:
            self.logger.log_error(
                f"Parser failed, using URL fallback: {e}",
                error_type="unexpected",
                url=url,
            )
            canonical = normalize_url(url)
            return backfill(self._fallback_result(canonical, e), canonical).data

    async def parse(self, url: str) -> ParseResult:
        """Run the full pipeline and return the selected ParseResult."""
        set_trace_id()
        start = time.perf_counter()
        try:
            return await self._run_pipeline(url, start)
        finally:
            self.metrics.record_request(time.perf_counter() - start)

    async def _run_pipeline(self, url: str, start: float) -> ParseResult:
        self.logger.log_action("parse", "started", url=url)

        canonical = await self.canonicalizer.canonicalize(url)

        cached = self.cache.get(canonical)
        if cached is not None:
            self.metrics.record_cache_hit()
            self.logger.log_decision(
                decision="cache_hit",
                reason="fresh result cached for canonical URL",
                url=canonical,
                method=cached.method.value,
            )
            return cached

        site = self.selector.select(canonical)
        result = await self._execute(site.strategy, canonical, site)

        target = self.escalation.next_method(result)
        if target is not None:
            self.logger.log_fallback(
                from_source=result.method.value,
                to_source=target.value,
                reason=f"confidence {result.confidence} below threshold",
                url=canonical,
            )
            escalated = await self._execute(target, canonical, site)
            if escalated.confidence >= result.confidence:
                result = escalated

        result = backfill(result, canonical)
        result = result.model_copy(update={"parse_time": time.perf_counter() - start})

        self.metrics.record_method(result.method.value, result.parse_time)
        if result.success:
            self.cache.put(canonical, result)

        self.logger.log_extraction(
            method=result.method.value,
            fields_present=result.data.get_present_fields(),
            fields_missing=result.data.get_missing_fields(),
            confidence=result.confidence,
            url=canonical,
            success=result.success,
            error=result.error,
            parse_time=round(result.parse_time, 4),
        )
        return result

    async def _execute(self, method: ParseMethod, url: str, site: SiteStrategy) -> ParseResult:
        """Run one strategy; unexpected errors become a fallback result."""
        strategy = self.strategies[method]
        try:
            return await strategy.run(url, site)
        except Exception as e:
            self.logger.log_error(
                f"{method.value} strategy failed: {e}",
                error_type="unexpected",
                url=url,
            )
            return self._fallback_result(url, e)

    def _fallback_result(self, url: str, error: Exception) -> ParseResult:
        store_name = derive_store_name(url)
        return ParseResult(
            success=False,
            data=ProductInfo(
                store_name=store_name,
                item_name=derive_item_name(url) or store_name,
            ),
            method=ParseMethod.FALLBACK,
            confidence=0.1,
            error=str(error) or error.__class__.__name__,
            url=url,
        )

    def get_metrics(self) -> MetricsSnapshot:
        """Metrics snapshot including the current cache size."""
        snapshot = self.metrics.snapshot()
        return snapshot.model_copy(update={"cache_size": len(self.cache)})

    def clear_cache(self):
        self.cache.clear()
        self.logger.log_action("clear_cache", "completed")
