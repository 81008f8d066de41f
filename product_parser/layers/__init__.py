"""Layers package initialization."""
from product_parser.layers.metrics import MetricsRecorder
from product_parser.layers.cache import ResultCache
from product_parser.layers.canonicalizer import UrlCanonicalizer, normalize_url
from product_parser.layers.strategy_selection import StrategySelector, SITE_STRATEGIES
from product_parser.layers.scoring import ConfidenceScorer, EscalationPolicy

__all__ = [
    "MetricsRecorder",
    "ResultCache",
    "UrlCanonicalizer",
    "normalize_url",
    "StrategySelector",
    "SITE_STRATEGIES",
    "ConfidenceScorer",
    "EscalationPolicy",
]
