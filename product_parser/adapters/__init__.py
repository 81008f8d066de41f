"""Adapters package initialization."""
from product_parser.adapters.base import ExtractionStrategy
from product_parser.adapters.simple_scraper import SimpleScraper
from product_parser.adapters.enhanced_scraper import EnhancedScraper
from product_parser.adapters.remote_render import RemoteRenderClient

__all__ = ["ExtractionStrategy", "SimpleScraper", "EnhancedScraper", "RemoteRenderClient"]
