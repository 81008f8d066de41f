"""
Structured-data extractors for product pages.

Each extractor is a pure function over a PageDocument that returns a
partial mapping of ProductInfo field names. Partials are merged by
reducing an ordered list left to right, filling empty fields only:

    JSON-LD -> OpenGraph -> Microdata -> selectors -> regex heuristics
"""
import asyncio
import html as html_lib
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from product_parser.layers.canonicalizer import normalize_url
from product_parser.layers.postprocess import detect_currency
from product_parser.models.product import CustomSelectors


@dataclass(frozen=True)
class PageDocument:
    """A fetched page: base URL, raw HTML and (optionally) its parsed DOM."""
    url: str
    html: str
    soup: Optional[BeautifulSoup] = None


Extractor = Callable[[PageDocument], Dict[str, Any]]


DEFAULT_TITLE_SELECTORS = (
    "h1[class*='product']",
    "h1[data-testid*='title']",
    ".product-title h1",
    "h1",
)

DEFAULT_PRICE_SELECTORS = (
    "[data-testid*='price']:not([data-testid*='original'])",
    ".price:not(.original-price)",
    "[class*='current-price']",
    "[itemprop='price']",
)

DEFAULT_IMAGE_SELECTORS = (
    "img[itemprop='image']",
    ".product-image img[src]:not([src*='placeholder'])",
    "img[data-testid*='product']",
    ".main-image img[src]",
)

# " | Site", " - Site", " – Site" at the end of a title
TITLE_SUFFIX = re.compile(r"\s+[|–—-]\s+(?:(?!\s[|–—-]\s).)*$")
TITLE_SEPARATOR = re.compile(r"\s+[|–—-]\s+")

H1_PATTERN = re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)
TITLE_PATTERN = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")
DOLLAR_PRICE = re.compile(r"\$\s?(\d+(?:,\d{3})*(?:\.\d{2})?)")
PRICE_IN_TEXT = re.compile(r"[$€£¥₹]?\s?(\d+(?:,\d{3})*(?:\.\d{1,2})?)")

META_IMAGE_PATTERNS = (
    re.compile(r"<meta[^>]*property=[\"']og:image[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*property=[\"']og:image[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*name=[\"']twitter:image[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*name=[\"']twitter:image[\"']", re.IGNORECASE),
)

PLACEHOLDER_MARKERS = ("placeholder", "loading", "spinner", "data:image")


def strip_title_suffix(title: str) -> str:
    """Remove a trailing " | Site" style suffix."""
    stripped = TITLE_SUFFIX.sub("", title.strip())
    return stripped or title.strip()


def is_placeholder_image(src: str) -> bool:
    lowered = src.lower()
    return any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def merge_partials(partials: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Reduce partial results left to right; earlier values win."""
    merged: Dict[str, Any] = {}
    for partial in partials:
        for key, value in partial.items():
            if not _is_empty(value) and _is_empty(merged.get(key)):
                merged[key] = value
    return merged


# =========================================================================
# JSON-LD
# =========================================================================

def _is_product(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    schema_type = node.get("@type")
    if isinstance(schema_type, list):
        return "Product" in schema_type
    return schema_type == "Product"


def _find_product(data: Any) -> Optional[Dict[str, Any]]:
    """First Product node in a parsed JSON-LD block (objects, arrays, @graph)."""
    if isinstance(data, list):
        for item in data:
            found = _find_product(item)
            if found is not None:
                return found
        return None

    if not isinstance(data, dict):
        return None
    if _is_product(data):
        return data
    if "@graph" in data:
        return _find_product(data["@graph"])
    return None


def _jsonld_images(image_data: Any) -> List[str]:
    """
    Normalize a JSON-LD image field to a list of URLs.

    Handles a string, a list of strings or ImageObjects, or one ImageObject.
    """
    if isinstance(image_data, str):
        return [image_data]
    if isinstance(image_data, dict):
        url = image_data.get("url") or image_data.get("contentUrl") or image_data.get("@id")
        return [url] if isinstance(url, str) else []
    if isinstance(image_data, list):
        images = []
        for item in image_data:
            images.extend(_jsonld_images(item))
        return images
    return []


def _availability_name(value: Any) -> Optional[str]:
    """https://schema.org/InStock -> InStock"""
    if not isinstance(value, str) or not value.strip():
        return None
    return value.rstrip("/").rsplit("/", 1)[-1]


def _map_jsonld_product(product: Dict[str, Any], base_url: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {"item_name": product.get("name")}

    brand = product.get("brand")
    if isinstance(brand, list):
        brand = brand[0] if brand else None
    if isinstance(brand, dict):
        result["brand"] = brand.get("name")
    elif isinstance(brand, str):
        result["brand"] = brand

    offers = product.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if isinstance(offers, dict):
        price = offers.get("price")
        if price is None:
            price = offers.get("lowPrice")
        result["price"] = price
        result["price_currency"] = offers.get("priceCurrency")
        result["availability"] = _availability_name(offers.get("availability"))

    images = _jsonld_images(product.get("image"))
    if images:
        result["image_url"] = urljoin(base_url, images[0])

    if product.get("sku") is not None:
        result["sku"] = str(product["sku"])
    if isinstance(product.get("description"), str):
        result["description"] = product["description"]

    return {key: value for key, value in result.items() if value not in (None, "")}


def extract_jsonld(page: PageDocument) -> Dict[str, Any]:
    """schema.org/Product from the first JSON-LD block that contains one."""
    if page.soup is None:
        return {}

    for script in page.soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            continue

        product = _find_product(data)
        if product is not None:
            return _map_jsonld_product(product, page.url)

    return {}


# =========================================================================
# OpenGraph
# =========================================================================

def _meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    tag = soup.find("meta", property=key) or soup.find("meta", attrs={"name": key})
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def extract_opengraph(page: PageDocument) -> Dict[str, Any]:
    """og:title, og:image and product price meta tags."""
    if page.soup is None:
        return {}
    soup = page.soup
    result: Dict[str, Any] = {}

    title = _meta_content(soup, "og:title")
    if title:
        result["item_name"] = strip_title_suffix(title)

    image = _meta_content(soup, "og:image")
    if image:
        result["image_url"] = urljoin(page.url, image)

    description = _meta_content(soup, "og:description")
    if description:
        result["description"] = description

    price = _meta_content(soup, "product:price:amount") or _meta_content(soup, "og:price:amount")
    if price:
        result["price"] = price
        result["price_currency"] = (
            _meta_content(soup, "product:price:currency")
            or _meta_content(soup, "og:price:currency")
        )

    return result


# =========================================================================
# Microdata
# =========================================================================

def _itemprop_value(soup: BeautifulSoup, prop: str) -> Optional[str]:
    element = soup.select_one(f"[itemprop='{prop}']")
    if element is None:
        return None
    value = element.get("content") or element.get_text(" ", strip=True)
    return value or None


def extract_microdata(page: PageDocument) -> Dict[str, Any]:
    """itemprop name, brand, price, priceCurrency and sku."""
    if page.soup is None:
        return {}
    soup = page.soup
    result = {
        "item_name": _itemprop_value(soup, "name"),
        "brand": _itemprop_value(soup, "brand"),
        "price": _itemprop_value(soup, "price"),
        "price_currency": _itemprop_value(soup, "priceCurrency"),
        "sku": _itemprop_value(soup, "sku"),
    }
    return {key: value for key, value in result.items() if value}


# =========================================================================
# Regex heuristics (no DOM required)
# =========================================================================

def _tag_text(fragment: str) -> str:
    return " ".join(html_lib.unescape(TAG_PATTERN.sub(" ", fragment)).split())


def extract_heuristics(page: PageDocument) -> Dict[str, Any]:
    """First h1/title, first $-price and first og:image from raw HTML."""
    result: Dict[str, Any] = {}

    for pattern in (H1_PATTERN, TITLE_PATTERN):
        match = pattern.search(page.html)
        text = _tag_text(match.group(1)) if match else ""
        if text:
            result["item_name"] = TITLE_SEPARATOR.split(text)[0].strip()
            break

    price_match = DOLLAR_PRICE.search(page.html)
    if price_match:
        result["price"] = price_match.group(1)
        result["price_currency"] = "USD"

    for pattern in META_IMAGE_PATTERNS:
        for match in pattern.finditer(page.html):
            src = html_lib.unescape(match.group(1))
            if not is_placeholder_image(src):
                result["image_url"] = urljoin(page.url, src)
                break
        if "image_url" in result:
            break

    return result


# =========================================================================
# Selector fallback
# =========================================================================

def _first_text(soup: BeautifulSoup, selectors: Tuple[str, ...]) -> Optional[str]:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is not None:
            text = element.get_text(" ", strip=True)
            if text:
                return text
    return None


def _first_price(soup: BeautifulSoup, selectors: Tuple[str, ...]) -> Dict[str, Any]:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get("content") or element.get_text(" ", strip=True)
        match = PRICE_IN_TEXT.search(text or "")
        if match:
            return {"price": match.group(1), "price_currency": detect_currency(text)}
    return {}


def _image_source(element: Tag) -> Optional[str]:
    if element.name != "img":
        element = element.find("img") or element
    return element.get("src") or element.get("data-src") or element.get("content")


def _first_image(soup: BeautifulSoup, selectors: Tuple[str, ...], base_url: str) -> Optional[str]:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        src = _image_source(element)
        if src and not is_placeholder_image(src):
            return urljoin(base_url, src)
    return None


def extract_with_selectors(
    page: PageDocument,
    custom: Optional[CustomSelectors] = None,
) -> Dict[str, Any]:
    """Custom selectors first, then the generic defaults."""
    if page.soup is None:
        return {}
    custom = custom or CustomSelectors()

    result = _first_price(page.soup, custom.price + DEFAULT_PRICE_SELECTORS)
    result["item_name"] = _first_text(page.soup, custom.title + DEFAULT_TITLE_SELECTORS)
    result["image_url"] = _first_image(page.soup, custom.image + DEFAULT_IMAGE_SELECTORS, page.url)
    return {key: value for key, value in result.items() if value}


def extract_canonical_url(page: PageDocument) -> Optional[str]:
    """
    Canonical URL of the page.

    Sources:
    1. <link rel="canonical">
    2. og:url
    """
    if page.soup is None:
        return None

    canonical = page.soup.find("link", rel="canonical")
    if canonical and canonical.get("href"):
        href = urljoin(page.url, canonical["href"].strip())
        if href.startswith("http"):
            return normalize_url(href)

    og_url = _meta_content(page.soup, "og:url")
    if og_url and og_url.startswith("http"):
        return normalize_url(og_url)

    return None


# Structured extractors, in precedence order
STRUCTURED_EXTRACTORS: Tuple[Extractor, ...] = (
    extract_jsonld,
    extract_opengraph,
    extract_microdata,
    extract_heuristics,
)


async def extract_document(
    page: PageDocument,
    custom: Optional[CustomSelectors] = None,
) -> Dict[str, Any]:
    """
    Run every extractor over a parsed page and merge by precedence.

    The structured extractors only read the document, so they run in
    parallel worker threads; merging happens after all complete.
    """
    jsonld, opengraph, microdata, heuristics = await asyncio.gather(
        *(asyncio.to_thread(extractor, page) for extractor in STRUCTURED_EXTRACTORS)
    )
    selectors = extract_with_selectors(page, custom)

    merged = merge_partials([jsonld, opengraph, microdata, selectors, heuristics])
    canonical_url = extract_canonical_url(page)
    if canonical_url:
        merged["canonical_url"] = canonical_url
    return merged
