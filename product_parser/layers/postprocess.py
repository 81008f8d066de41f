"""
Post-processing Layer for the Product URL Parser.
Cleans raw extracted fields and backfills the public contract:
every returned ProductInfo carries an item name and a store name.
"""
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit

from product_parser.layers.canonicalizer import get_hostname
from product_parser.models.product import PRICE_PATTERN, ParseResult, ProductInfo


STORE_NAMES = {
    "amazon.com": "Amazon",
    "target.com": "Target",
    "walmart.com": "Walmart",
    "bestbuy.com": "Best Buy",
    "homedepot.com": "Home Depot",
    "lowes.com": "Lowe's",
    "macys.com": "Macy's",
    "nordstrom.com": "Nordstrom",
    "wayfair.com": "Wayfair",
    "costco.com": "Costco",
    "kohls.com": "Kohl's",
    "newegg.com": "Newegg",
    "nike.com": "Nike",
    "zara.com": "Zara",
    "hm.com": "H&M",
    "lululemon.com": "Lululemon",
    "ssense.com": "SSENSE",
    "shopbop.com": "Shopbop",
}

TWO_PART_SUFFIXES = frozenset({
    "co.uk", "org.uk", "com.au", "co.jp", "com.br", "co.nz", "com.mx", "co.in", "co.za",
})

GENERIC_PATH_SEGMENTS = frozenset({
    "product", "products", "item", "items", "p", "dp", "ip", "gp",
    "shop", "store", "buy", "cart",
})

FILE_EXTENSION = re.compile(r"\.(?:html?|php|aspx?|jsp)$", re.IGNORECASE)
WORD_SEPARATORS = re.compile(r"[-_+\s]+")
NUMBER_TOKEN = re.compile(r"\d[\d.,]*")

# Checked in order: multi-character symbols before "$"
CURRENCY_SYMBOLS = (
    ("A$", "AUD"), ("C$", "CAD"), ("$", "USD"), ("€", "EUR"), ("£", "GBP"),
    ("¥", "JPY"), ("₹", "INR"), ("₽", "RUB"),
)
CURRENCY_CODES = frozenset({"USD", "EUR", "GBP", "JPY", "INR", "RUB", "AUD", "CAD"})

PRODUCT_FIELDS = frozenset(ProductInfo.model_fields)


def derive_store_name(url: str) -> str:
    """Display name for the merchant behind url."""
    hostname = get_hostname(url)
    if not hostname:
        return "Unknown Store"

    for domain, name in STORE_NAMES.items():
        if hostname == domain or hostname.endswith("." + domain):
            return name

    labels = hostname.split(".")
    if len(labels) >= 3 and ".".join(labels[-2:]) in TWO_PART_SUFFIXES:
        label = labels[-3]
    elif len(labels) >= 2:
        label = labels[-2]
    else:
        label = labels[0]
    return label[:1].upper() + label[1:]


def derive_item_name(url: str) -> Optional[str]:
    """
    Guess a product name from the last meaningful path segment.

    Skips short, generic, numeric and ID-like segments (no alphabetic
    word of three or more letters).
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return None

    candidate = None
    for segment in path.split("/"):
        segment = FILE_EXTENSION.sub("", unquote(segment))
        if len(segment) <= 3 or segment.lower() in GENERIC_PATH_SEGMENTS:
            continue
        words = [w for w in WORD_SEPARATORS.split(segment) if w]
        if not any(w.isalpha() and len(w) >= 3 for w in words):
            continue
        candidate = words

    if not candidate:
        return None
    return " ".join(word[:1].upper() + word[1:] for word in candidate)


def detect_currency(text: str) -> Optional[str]:
    """Map a currency symbol or ISO code found in text to an ISO code."""
    for symbol, code in CURRENCY_SYMBOLS:
        if symbol in text:
            return code
    for token in re.findall(r"\b[A-Z]{3}\b", text):
        if token in CURRENCY_CODES:
            return token
    return None


def clean_price(value: Any) -> Optional[str]:
    """
    Normalize a raw price to digits and at most one decimal point.

    Currency symbols and thousands separators are removed; a decimal comma
    ("12,99") is recognized. Returns None for anything that is not a
    non-negative finite number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            return None
        try:
            value = format(Decimal(str(value)), "f")
        except InvalidOperation:
            return None

    text = str(value)
    match = NUMBER_TOKEN.search(text)
    if not match:
        return None
    if match.start() > 0 and text[match.start() - 1] == "-":
        return None

    token = match.group().rstrip(".,")
    last_dot, last_comma = token.rfind("."), token.rfind(",")

    if last_dot != -1 and last_comma != -1:
        decimal_sep = "." if last_dot > last_comma else ","
        thousands_sep = "," if decimal_sep == "." else "."
        token = token.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif last_comma != -1:
        tail = token[last_comma + 1:]
        if token.count(",") == 1 and len(tail) in (1, 2):
            token = token.replace(",", ".")
        else:
            token = token.replace(",", "")
    elif token.count(".") > 1:
        head, _, tail = token.rpartition(".")
        token = head.replace(".", "") + ("." + tail if len(tail) <= 2 else tail)

    # "10.99,12.99" style ranges collapse to something that is not a number
    if not PRICE_PATTERN.fullmatch(token) or not math.isfinite(float(token)):
        return None
    return token


def clean_text(value: Any) -> Optional[str]:
    """Collapse whitespace; empty strings become None."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def to_product_info(fields: Dict[str, Any]) -> ProductInfo:
    """Build a ProductInfo from raw extracted fields, dropping invalid values."""
    cleaned: Dict[str, Any] = {}
    for name, value in fields.items():
        if name not in PRODUCT_FIELDS:
            continue
        if name == "price":
            value = clean_price(value)
        else:
            value = clean_text(value)
        if value:
            cleaned[name] = value

    if "price" in cleaned:
        currency = (cleaned.get("price_currency") or "USD").upper()
        cleaned["price_currency"] = currency
    else:
        cleaned.pop("price_currency", None)

    return ProductInfo(**cleaned)


def backfill(result: ParseResult, url: str) -> ParseResult:
    """Fill store name, item name and canonical URL from the request URL."""
    data = result.data
    updates: Dict[str, str] = {}

    store_name = data.store_name or derive_store_name(url)
    if not data.store_name:
        updates["store_name"] = store_name
    if not data.item_name:
        updates["item_name"] = derive_item_name(url) or store_name
    if not data.canonical_url:
        updates["canonical_url"] = url

    if not updates:
        return result
    return result.model_copy(update={"data": data.model_copy(update=updates)})
