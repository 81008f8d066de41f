"""
Confidence scoring and escalation policy for the Product URL Parser.
"""
from typing import Dict, Optional

from product_parser.config import config
from product_parser.layers.postprocess import clean_price
from product_parser.models.product import ParseMethod, ParseResult, ProductInfo


# Escalation order: each strategy may hand off to the next one only
NEXT_METHOD: Dict[ParseMethod, Optional[ParseMethod]] = {
    ParseMethod.SIMPLE: ParseMethod.ENHANCED,
    ParseMethod.ENHANCED: ParseMethod.REMOTE_RENDER,
    ParseMethod.REMOTE_RENDER: None,
    ParseMethod.FALLBACK: None,
}


class ConfidenceScorer:
    """Deterministic completeness score in [0, 1]."""

    NAME_WEIGHT = 0.4
    PRICE_WEIGHT = 0.3
    IMAGE_WEIGHT = 0.2
    BRAND_WEIGHT = 0.1

    def score(self, info: ProductInfo) -> float:
        confidence = 0.0
        if info.item_name and len(info.item_name) > 3:
            confidence += self.NAME_WEIGHT
        if info.price and clean_price(info.price) is not None:
            confidence += self.PRICE_WEIGHT
        if info.image_url:
            confidence += self.IMAGE_WEIGHT
        if info.brand:
            confidence += self.BRAND_WEIGHT
        # 0.4 + 0.3 + 0.2 + 0.1 is 0.9999999999999999 in floating point
        return min(round(confidence, 6), 1.0)


class EscalationPolicy:
    """
    Decides whether a low-confidence result warrants one more attempt.

    Thresholds are keyed by the strategy that would be escalated TO, so
    paying for remote rendering can require a different bar.
    """

    def __init__(
        self,
        threshold: float = config.ESCALATION_THRESHOLD,
        remote_render_threshold: float = config.REMOTE_RENDER_ESCALATION_THRESHOLD,
    ):
        self.thresholds = {
            ParseMethod.ENHANCED: threshold,
            ParseMethod.REMOTE_RENDER: remote_render_threshold,
        }

    def next_method(self, result: ParseResult) -> Optional[ParseMethod]:
        """Return the strategy to escalate to, or None to accept result."""
        target = NEXT_METHOD[result.method]
        if target is None:
            return None
        if result.confidence < self.thresholds[target]:
            return target
        return None
