"""
Enhanced strategy: GET, DOM parse and every structured-data extractor.
Used for moderately complex sites and unknown hosts.
"""
from typing import Optional

import httpx
from bs4 import BeautifulSoup, ParserRejectedMarkup

from product_parser.adapters.base import ExtractionStrategy
from product_parser.adapters.structured_data import PageDocument, extract_document
from product_parser.config import config
from product_parser.errors import DocumentParseError
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.postprocess import derive_store_name, to_product_info
from product_parser.layers.scoring import ConfidenceScorer
from product_parser.models.product import ParseMethod, ProductInfo, SiteStrategy


def parse_document(url: str, html: str) -> PageDocument:
    """Parse HTML into a PageDocument, raising DocumentParseError on failure."""
    if not html or not html.strip():
        raise DocumentParseError("Empty document")
    try:
        soup = BeautifulSoup(html, "lxml")
    except ParserRejectedMarkup as e:
        raise DocumentParseError(f"Unparsable HTML: {e}") from e
    return PageDocument(url=url, html=html, soup=soup)


class EnhancedScraper(ExtractionStrategy):
    """
    DOM-based extraction.

    JSON-LD, OpenGraph, microdata and regex heuristics run concurrently;
    custom then default selectors fill whatever is still missing.
    """

    method = ParseMethod.ENHANCED

    def __init__(
        self,
        timeout: float = config.ENHANCED_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsRecorder] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ):
        super().__init__(timeout, transport=transport, metrics=metrics, scorer=scorer)

    async def extract(self, url: str, site: SiteStrategy) -> ProductInfo:
        html = await self.fetch_html(url)
        page = parse_document(url, html)

        fields = await extract_document(page, site.custom_selectors)
        fields["store_name"] = derive_store_name(url)
        fields.setdefault("canonical_url", url)
        return to_product_info(fields)
