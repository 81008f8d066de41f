"""
Product Models for the Product URL Parser.
These models represent extracted product metadata and the envelope
around a single strategy execution, regardless of which strategy ran.
"""
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


PRICE_PATTERN = re.compile(r"\d+(?:\.\d+)?")


class ParseMethod(str, Enum):
    """Extraction pipeline that produced a result."""
    SIMPLE = "simple"
    ENHANCED = "enhanced"
    REMOTE_RENDER = "remote-render"
    FALLBACK = "fallback"


class ProductInfo(BaseModel):
    """
    Extracted product metadata.

    Every field is optional; a missing field means "not found".
    Serializes with camelCase aliases (itemName, storeName, ...).
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_name: Optional[str] = Field(default=None, alias="itemName")
    store_name: Optional[str] = Field(default=None, alias="storeName")
    price: Optional[str] = None
    price_currency: Optional[str] = Field(default=None, alias="priceCurrency")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    availability: Optional[str] = None
    brand: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    canonical_url: Optional[str] = Field(default=None, alias="canonicalUrl")

    @field_validator("price")
    @classmethod
    def validate_price(cls, value: Optional[str]) -> Optional[str]:
        """Price must be a plain non-negative decimal string."""
        if value is None:
            return value
        if not PRICE_PATTERN.fullmatch(value) or not math.isfinite(float(value)):
            raise ValueError(f"invalid price: {value!r}")
        return value

    def get_present_fields(self) -> List[str]:
        """Return list of non-empty fields."""
        return [name for name, value in self if value]

    def get_missing_fields(self) -> List[str]:
        """Return list of empty fields."""
        return [name for name, value in self if not value]


class ParseResult(BaseModel):
    """
    Envelope around one strategy execution.

    Created once per attempt. The engine finalizes parse_time (and the
    backfilled data) by copying, never by mutating in place.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    success: bool
    data: ProductInfo
    method: ParseMethod
    confidence: float = Field(ge=0.0, le=1.0, default=0.0)
    error: Optional[str] = None
    url: str
    parse_time: float = Field(default=0.0, alias="parseTime")


@dataclass(frozen=True)
class CustomSelectors:
    """CSS selectors tried before the generic defaults."""
    title: Tuple[str, ...] = ()
    price: Tuple[str, ...] = ()
    image: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SiteStrategy:
    """Static strategy configuration for one merchant domain."""
    domain: str
    strategy: ParseMethod
    requires_js: bool = False
    custom_selectors: Optional[CustomSelectors] = None


@dataclass(frozen=True)
class CacheEntry:
    """A cached parse result and the clock reading when it was stored."""
    result: ParseResult
    timestamp: float


class MethodStats(BaseModel):
    """Per-method call statistics."""
    method: str
    count: int = 0
    avg_time: float = 0.0


class MetricsSnapshot(BaseModel):
    """Point-in-time view of the metrics recorder."""
    total_parses: int = 0
    cache_hits: int = 0
    cache_hit_rate: float = 0.0
    avg_parse_time: float = 0.0
    network_fetches: int = 0
    fetches_by_kind: dict = Field(default_factory=dict)
    methods: List[MethodStats] = Field(default_factory=list)
    cache_size: Optional[int] = None
