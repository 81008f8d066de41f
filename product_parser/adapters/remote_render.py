"""
Remote-render strategy: delegates JavaScript-dependent pages to an
external headless rendering / extraction proxy.

Request:  POST {url, mode: "extract", schema}
Response: {success, extracted: {itemName, price, imageUrl, brand}}
          or, when the proxy fell back to a plain scrape,
          {success, content|html, ogImage}
"""
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import httpx

from product_parser.adapters.base import ExtractionStrategy
from product_parser.adapters.enhanced_scraper import parse_document
from product_parser.adapters.structured_data import extract_document
from product_parser.config import config
from product_parser.errors import DocumentParseError, NetworkError, ProxyError
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.postprocess import clean_text, derive_store_name, to_product_info
from product_parser.layers.scoring import ConfidenceScorer
from product_parser.models.product import ParseMethod, ProductInfo, SiteStrategy


EXTRACTION_SCHEMA = {
    "type": "object",
    "properties": {
        "itemName": {"type": "string", "description": "Product name"},
        "price": {"type": "string", "description": "Price (numbers only)"},
        "imageUrl": {"type": "string", "description": "Main product image URL"},
        "brand": {"type": "string", "description": "Brand name"},
    },
    "required": ["itemName"],
}

# Proxy field name -> ProductInfo field name
EXTRACTED_FIELDS = {
    "itemName": "item_name",
    "price": "price",
    "priceCurrency": "price_currency",
    "imageUrl": "image_url",
    "brand": "brand",
    "availability": "availability",
}


class RemoteRenderClient(ExtractionStrategy):
    """
    Remote rendering proxy client.

    Fails fast with ProxyError when no endpoint is configured.
    """

    method = ParseMethod.REMOTE_RENDER

    def __init__(
        self,
        timeout: float = config.REMOTE_RENDER_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsRecorder] = None,
        scorer: Optional[ConfidenceScorer] = None,
        endpoint: Optional[str] = config.REMOTE_RENDER_URL,
        api_key: Optional[str] = config.REMOTE_RENDER_API_KEY,
    ):
        super().__init__(timeout, transport=transport, metrics=metrics, scorer=scorer)
        self.endpoint = endpoint
        self.api_key = api_key

    def is_configured(self) -> bool:
        return bool(self.endpoint)

    def _get_proxy_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def extract(self, url: str, site: SiteStrategy) -> ProductInfo:
        if not self.is_configured():
            raise ProxyError("Remote render endpoint not configured (set REMOTE_RENDER_URL)")

        payload = await self._request(url)

        if not payload.get("success"):
            raise ProxyError(str(payload.get("error") or "Remote render reported failure"))

        extracted = payload.get("extracted")
        if isinstance(extracted, list):
            extracted = extracted[0] if extracted else None

        if isinstance(extracted, dict):
            fields = self._map_extracted(extracted, url)
        elif payload.get("content") or payload.get("html"):
            fields = await self._extract_rendered_html(payload, url, site)
        else:
            raise ProxyError("No data extracted")

        if not clean_text(fields.get("item_name")):
            raise ProxyError("Missing required field: itemName")

        fields["store_name"] = derive_store_name(url)
        return to_product_info(fields)

    async def _request(self, url: str) -> Dict[str, Any]:
        if self.metrics:
            self.metrics.record_fetch("remote-render")

        body = {"url": url, "mode": "extract", "schema": EXTRACTION_SCHEMA}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint, json=body, headers=self._get_proxy_headers()
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NetworkError(f"Remote render timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ProxyError(f"Remote render returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(str(e) or e.__class__.__name__) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ProxyError("Malformed remote render response") from e
        if not isinstance(payload, dict):
            raise ProxyError("Malformed remote render response")
        return payload

    def _map_extracted(self, extracted: Dict[str, Any], url: str) -> Dict[str, Any]:
        fields = {
            target: extracted.get(source)
            for source, target in EXTRACTED_FIELDS.items()
            if extracted.get(source) not in (None, "")
        }
        if isinstance(fields.get("image_url"), str):
            fields["image_url"] = urljoin(url, fields["image_url"])
        return fields

    async def _extract_rendered_html(
        self,
        payload: Dict[str, Any],
        url: str,
        site: SiteStrategy,
    ) -> Dict[str, Any]:
        """Run the document extractors over HTML the proxy rendered for us."""
        self.logger.log_decision(
            decision="parse_rendered_html",
            reason="proxy returned rendered HTML instead of extracted fields",
            url=url,
        )
        try:
            page = parse_document(url, payload.get("content") or payload.get("html"))
        except DocumentParseError as e:
            raise ProxyError(f"Rendered HTML unusable: {e}") from e

        fields = await extract_document(page, site.custom_selectors)
        og_image = payload.get("ogImage")
        if og_image and not fields.get("image_url"):
            fields["image_url"] = urljoin(url, og_image)
        return fields
