"""
Simple strategy: one fast GET and regex-only extraction.
Used for well-structured, high-traffic merchant sites.
"""
from typing import Optional

import httpx

from product_parser.adapters.base import ExtractionStrategy
from product_parser.adapters.structured_data import PageDocument, extract_heuristics
from product_parser.config import config
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.postprocess import derive_store_name, to_product_info
from product_parser.layers.scoring import ConfidenceScorer
from product_parser.models.product import ParseMethod, ProductInfo, SiteStrategy


class SimpleScraper(ExtractionStrategy):
    """Regex extraction over the raw HTML; no DOM is built."""

    method = ParseMethod.SIMPLE

    def __init__(
        self,
        timeout: float = config.SIMPLE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsRecorder] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ):
        super().__init__(timeout, transport=transport, metrics=metrics, scorer=scorer)

    async def extract(self, url: str, site: SiteStrategy) -> ProductInfo:
        html = await self.fetch_html(url)
        fields = extract_heuristics(PageDocument(url=url, html=html))
        fields["store_name"] = derive_store_name(url)
        return to_product_info(fields)
