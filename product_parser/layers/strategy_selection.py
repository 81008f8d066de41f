"""
Strategy Selection Layer for the Product URL Parser.
Maps a canonical URL to the extraction strategy for its merchant.
"""
from typing import Tuple

from product_parser.layers.canonicalizer import get_hostname
from product_parser.models.product import CustomSelectors, ParseMethod, SiteStrategy
from product_parser.utils.logger import LayerLogger


AMAZON_SELECTORS = CustomSelectors(
    title=("#productTitle", "span#productTitle", "h1.a-size-large"),
    price=(
        ".a-price .a-offscreen",
        "[data-a-color='price'] .a-price-whole",
        "#price_inside_buybox .a-price .a-offscreen",
    ),
    image=("#landingImage", "#imgBlkFront", "#imgTagWrapperId img", ".a-dynamic-image"),
)

TARGET_SELECTORS = CustomSelectors(
    title=("h1[data-test='product-title']", "h1[data-automation-id='product-title']"),
    price=("[data-test='product-price']",),
    image=("img[data-test='hero-image']",),
)

SHOPBOP_SELECTORS = CustomSelectors(
    title=("h1[data-testid='product-name']", "h1.product-name", ".pdp-name h1"),
    price=("[data-testid='current-price']", ".current-price", ".price-current"),
    image=("img[data-testid='product-image']", ".pdp-image img", ".product-images img"),
)


# Static merchant catalog, ordered by strategy cost
SITE_STRATEGIES: Tuple[SiteStrategy, ...] = (
    # Well-structured, high-traffic sites: regex only
    SiteStrategy("amazon.com", ParseMethod.SIMPLE, custom_selectors=AMAZON_SELECTORS),
    SiteStrategy("target.com", ParseMethod.SIMPLE, custom_selectors=TARGET_SELECTORS),
    SiteStrategy("walmart.com", ParseMethod.SIMPLE),
    SiteStrategy("bestbuy.com", ParseMethod.SIMPLE),
    SiteStrategy("homedepot.com", ParseMethod.SIMPLE),
    SiteStrategy("costco.com", ParseMethod.SIMPLE),

    # Medium complexity: DOM parse with structured data
    SiteStrategy("wayfair.com", ParseMethod.ENHANCED),
    SiteStrategy("overstock.com", ParseMethod.ENHANCED),
    SiteStrategy("newegg.com", ParseMethod.ENHANCED),
    SiteStrategy("macys.com", ParseMethod.ENHANCED),
    SiteStrategy("kohls.com", ParseMethod.ENHANCED),

    # JavaScript-heavy sites: remote rendering
    SiteStrategy("nike.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy("adidas.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy("zara.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy("hm.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy("lululemon.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy("nordstrom.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy("ssense.com", ParseMethod.REMOTE_RENDER, requires_js=True),
    SiteStrategy(
        "shopbop.com",
        ParseMethod.REMOTE_RENDER,
        requires_js=True,
        custom_selectors=SHOPBOP_SELECTORS,
    ),
)

# Unlisted regional storefronts of these retailers still parse well with regex
SIMPLE_BRAND_HINTS = ("amazon", "target", "walmart")


class StrategySelector:
    """
    Strategy Selector - picks the extraction pipeline for a URL.

    Never returns None: unknown hosts get a default strategy.
    """

    def __init__(self, catalog: Tuple[SiteStrategy, ...] = SITE_STRATEGIES):
        self.catalog = catalog
        self.logger = LayerLogger("strategy_selection")

    def select(self, url: str) -> SiteStrategy:
        """Return the catalog entry (or inferred default) for url."""
        hostname = get_hostname(url)

        if not hostname:
            self.logger.log_decision(
                decision=ParseMethod.ENHANCED.value,
                reason="hostname could not be parsed",
                url=url,
            )
            return SiteStrategy("unknown", ParseMethod.ENHANCED)

        matches = [entry for entry in self.catalog if entry.domain in hostname]
        if matches:
            entry = max(matches, key=lambda s: len(s.domain))
            self.logger.log_decision(
                decision=entry.strategy.value,
                reason="catalog match",
                url=url,
                domain=entry.domain,
            )
            return entry

        if any(hint in hostname for hint in SIMPLE_BRAND_HINTS):
            self.logger.log_decision(
                decision=ParseMethod.SIMPLE.value,
                reason="known retailer storefront",
                url=url,
            )
            return SiteStrategy(hostname, ParseMethod.SIMPLE)

        self.logger.log_decision(
            decision=ParseMethod.ENHANCED.value,
            reason="unknown host, using default strategy",
            url=url,
        )
        return SiteStrategy(hostname, ParseMethod.ENHANCED)
