"""
Base class for extraction strategies.

A strategy's extract() raises ExtractionError subclasses; run() is the
boundary that turns both outcomes into a ParseResult.
"""
import time
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from product_parser.errors import ExtractionError, NetworkError
from product_parser.layers.canonicalizer import BROWSER_USER_AGENT
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.postprocess import derive_store_name
from product_parser.layers.scoring import ConfidenceScorer
from product_parser.models.product import ParseMethod, ParseResult, ProductInfo, SiteStrategy
from product_parser.utils.logger import LayerLogger


class ExtractionStrategy(ABC):
    """One extraction pipeline with its own timeout."""

    method: ParseMethod

    def __init__(
        self,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsRecorder] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ):
        self.timeout = timeout
        self.transport = transport
        self.metrics = metrics
        self.scorer = scorer or ConfidenceScorer()
        self.logger = LayerLogger(f"{self.method.value}_strategy")

    @abstractmethod
    async def extract(self, url: str, site: SiteStrategy) -> ProductInfo:
        """Extract product data or raise ExtractionError."""

    async def run(self, url: str, site: SiteStrategy) -> ParseResult:
        """Execute the strategy; failures become unsuccessful results."""
        self.logger.log_action("extract", "started", url=url, domain=site.domain)
        start = time.perf_counter()

        try:
            info = await self.extract(url, site)
        except ExtractionError as e:
            self.logger.log_error(
                str(e) or e.__class__.__name__,
                error_type=e.error_type,
                url=url,
            )
            return ParseResult(
                success=False,
                data=ProductInfo(store_name=derive_store_name(url)),
                method=self.method,
                confidence=0.0,
                error=str(e) or e.__class__.__name__,
                url=url,
                parse_time=time.perf_counter() - start,
            )

        confidence = self.scorer.score(info)
        self.logger.log_extraction(
            method=self.method.value,
            fields_present=info.get_present_fields(),
            fields_missing=info.get_missing_fields(),
            confidence=confidence,
            url=url,
        )
        return ParseResult(
            success=True,
            data=info,
            method=self.method,
            confidence=confidence,
            url=url,
            parse_time=time.perf_counter() - start,
        )

    def _get_headers(self) -> dict:
        """Get request headers mimicking a browser."""
        return {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    async def fetch_html(self, url: str) -> str:
        """GET url and return its body; any HTTP failure raises NetworkError."""
        if self.metrics:
            self.metrics.record_fetch("page")

        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._get_headers())
                response.raise_for_status()
                html = response.text
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(str(e) or e.__class__.__name__) from e

        self.logger.log_action(
            "fetch_html",
            "completed",
            url=url,
            status_code=response.status_code,
            content_length=len(html),
        )
        return html
