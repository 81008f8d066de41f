"""Tests for the simple, enhanced and remote-render strategies."""

import json

import httpx
import pytest

from conftest import PROXY_URL, build_transport, json_body, page, raise_timeout
from product_parser.adapters.enhanced_scraper import EnhancedScraper, parse_document
from product_parser.adapters.remote_render import RemoteRenderClient
from product_parser.adapters.simple_scraper import SimpleScraper
from product_parser.errors import DocumentParseError
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.strategy_selection import StrategySelector
from product_parser.models.product import ParseMethod


AMAZON_URL = "https://www.amazon.com/Echo-Dot/dp/B09B8V1LZ3"
NIKE_URL = "https://www.nike.com/t/air-zoom-pegasus-40-road-running-shoes/DV3853-001"

AMAZON_HTML = """
<html><head>
<title>Amazon.com: Echo Dot (5th Gen) | Smart speaker</title>
<meta property="og:image" content="https://m.media-amazon.com/images/I/echo.jpg">
</head><body>
<h1 id="title"><span id="productTitle">  Echo Dot (5th Gen)  </span></h1>
<span class="a-price"><span class="a-offscreen">$49.99</span></span>
</body></html>
"""

SITE = StrategySelector()


class TestSimpleScraper:

    @pytest.mark.asyncio
    async def test_extracts_with_regex(self):
        metrics = MetricsRecorder()
        scraper = SimpleScraper(transport=build_transport({AMAZON_URL: page(AMAZON_HTML)}), metrics=metrics)

        result = await scraper.run(AMAZON_URL, SITE.select(AMAZON_URL))

        assert result.success
        assert result.method == ParseMethod.SIMPLE
        assert result.data.item_name == "Echo Dot (5th Gen)"
        assert result.data.price == "49.99"
        assert result.data.price_currency == "USD"
        assert result.data.image_url == "https://m.media-amazon.com/images/I/echo.jpg"
        assert result.data.store_name == "Amazon"
        assert result.confidence == 0.9
        assert metrics.snapshot().fetches_by_kind == {"page": 1}

    @pytest.mark.asyncio
    async def test_sends_browser_user_agent(self):
        transport = build_transport({AMAZON_URL: page(AMAZON_HTML)})
        await SimpleScraper(transport=transport).run(AMAZON_URL, SITE.select(AMAZON_URL))
        assert "Mozilla/5.0" in transport.requests[0].headers["User-Agent"]

    @pytest.mark.asyncio
    async def test_http_error_is_failed_result(self):
        scraper = SimpleScraper(transport=build_transport({AMAZON_URL: page("busy", status_code=503)}))

        result = await scraper.run(AMAZON_URL, SITE.select(AMAZON_URL))

        assert not result.success
        assert result.confidence == 0.0
        assert result.error == "HTTP 503"
        assert result.data.store_name == "Amazon"
        assert result.data.item_name is None

    @pytest.mark.asyncio
    async def test_timeout_is_failed_result(self):
        scraper = SimpleScraper(transport=build_transport({AMAZON_URL: raise_timeout}))

        result = await scraper.run(AMAZON_URL, SITE.select(AMAZON_URL))

        assert not result.success
        assert "Timed out" in result.error


class TestEnhancedScraper:

    @pytest.mark.asyncio
    async def test_custom_selectors_before_defaults(self):
        scraper = EnhancedScraper(transport=build_transport({AMAZON_URL: page(AMAZON_HTML)}))

        result = await scraper.run(AMAZON_URL, SITE.select(AMAZON_URL))

        assert result.method == ParseMethod.ENHANCED
        assert result.data.item_name == "Echo Dot (5th Gen)"
        assert result.data.price == "49.99"
        assert result.data.canonical_url == AMAZON_URL

    @pytest.mark.asyncio
    async def test_structured_data_and_canonical_link(self):
        url = "https://shop.example.com/products/desk?color=oak"
        html = """
        <html><head>
        <link rel="canonical" href="/products/desk">
        <script type="application/ld+json">
        {"@type": "Product", "name": "Standing Desk", "brand": {"name": "Oakline"},
         "image": "/img/desk.jpg", "offers": {"price": "1,199.00", "priceCurrency": "usd"}}
        </script></head><body></body></html>
        """
        scraper = EnhancedScraper(transport=build_transport({url: page(html)}))

        result = await scraper.run(url, SITE.select(url))

        assert result.success
        assert result.confidence == 1.0
        assert result.data.price == "1199.00"
        assert result.data.price_currency == "USD"
        assert result.data.image_url == "https://shop.example.com/img/desk.jpg"
        assert result.data.canonical_url == "https://shop.example.com/products/desk"

    @pytest.mark.asyncio
    async def test_empty_document_is_failed_result(self):
        url = "https://shop.example.com/products/desk"
        scraper = EnhancedScraper(transport=build_transport({url: page("   ")}))

        result = await scraper.run(url, SITE.select(url))

        assert not result.success
        assert result.error == "Empty document"

    def test_parse_document_rejects_empty(self):
        with pytest.raises(DocumentParseError):
            parse_document("https://example.com/", "")


class TestRemoteRenderClient:

    def _client(self, routes, **kwargs) -> RemoteRenderClient:
        kwargs.setdefault("endpoint", PROXY_URL)
        return RemoteRenderClient(transport=build_transport(routes), **kwargs)

    @pytest.mark.asyncio
    async def test_extracted_fields(self):
        client = self._client({PROXY_URL: json_body({
            "success": True,
            "extracted": {
                "itemName": "Air Zoom Pegasus 40",
                "price": "$130.00",
                "imageUrl": "/images/pegasus.png",
                "brand": "Nike",
            },
        })})

        result = await client.run(NIKE_URL, SITE.select(NIKE_URL))

        assert result.success
        assert result.method == ParseMethod.REMOTE_RENDER
        assert result.data.item_name == "Air Zoom Pegasus 40"
        assert result.data.price == "130.00"
        assert result.data.image_url == "https://www.nike.com/images/pegasus.png"
        assert result.data.store_name == "Nike"
        assert result.confidence == 1.0

    @pytest.mark.asyncio
    async def test_request_body_and_auth(self):
        routes = {PROXY_URL: json_body({"success": True, "extracted": {"itemName": "Shoe Name"}})}
        transport = build_transport(routes)
        client = RemoteRenderClient(transport=transport, endpoint=PROXY_URL, api_key="secret")

        await client.run(NIKE_URL, SITE.select(NIKE_URL))

        request = transport.requests[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer secret"
        assert body["url"] == NIKE_URL
        assert body["mode"] == "extract"
        assert body["schema"]["required"] == ["itemName"]

    @pytest.mark.asyncio
    async def test_rendered_html_fallback(self):
        html = (
            '<html><head><script type="application/ld+json">'
            '{"@type": "Product", "name": "Rendered Shoe", "offers": {"price": "99"}}'
            "</script></head></html>"
        )
        client = self._client({PROXY_URL: json_body({
            "success": True,
            "content": html,
            "ogImage": "https://static.nike.com/shoe.jpg",
        })})

        result = await client.run(NIKE_URL, SITE.select(NIKE_URL))

        assert result.success
        assert result.data.item_name == "Rendered Shoe"
        assert result.data.image_url == "https://static.nike.com/shoe.jpg"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("route, message", [
        (json_body({"success": False, "error": "blocked"}), "blocked"),
        (json_body({"success": True, "extracted": {"price": "10"}}), "Missing required field: itemName"),
        (json_body({"success": True, "extracted": {"itemName": "   ", "price": "10"}}), "Missing required field: itemName"),
        (json_body({"success": True}), "No data extracted"),
        (json_body(["not", "an", "object"]), "Malformed remote render response"),
        (lambda request: httpx.Response(200, text="<html>oops</html>"), "Malformed remote render response"),
        (json_body({"error": "bad gateway"}, status_code=502), "Remote render returned HTTP 502"),
    ])
    async def test_failures(self, route, message):
        client = self._client({PROXY_URL: route})

        result = await client.run(NIKE_URL, SITE.select(NIKE_URL))

        assert not result.success
        assert result.confidence == 0.0
        assert result.error == message
        assert result.data.store_name == "Nike"

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = self._client({PROXY_URL: raise_timeout})

        result = await client.run(NIKE_URL, SITE.select(NIKE_URL))

        assert not result.success
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_not_configured_fails_fast(self):
        transport = build_transport({})
        client = RemoteRenderClient(transport=transport, endpoint=None)

        result = await client.run(NIKE_URL, SITE.select(NIKE_URL))

        assert not result.success
        assert "not configured" in result.error
        assert transport.requests == []
