"""Models package initialization."""
from product_parser.models.product import (
    CacheEntry,
    CustomSelectors,
    MethodStats,
    MetricsSnapshot,
    ParseMethod,
    ParseResult,
    ProductInfo,
    SiteStrategy,
)

__all__ = [
    "CacheEntry",
    "CustomSelectors",
    "MethodStats",
    "MetricsSnapshot",
    "ParseMethod",
    "ParseResult",
    "ProductInfo",
    "SiteStrategy",
]
