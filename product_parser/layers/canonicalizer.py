"""
URL Canonicalizer for the Product URL Parser.
This is the first layer: every request URL passes through here before
the cache lookup and strategy selection.
"""
import asyncio
import re
from typing import Optional
from urllib.parse import unquote_plus, urljoin, urlsplit, urlunsplit

import httpx

from product_parser.config import config
from product_parser.errors import NetworkError
from product_parser.layers.metrics import MetricsRecorder
from product_parser.utils.logger import LayerLogger


# Link shorteners that must be resolved before the URL is useful
SHORTENER_DOMAINS = (
    "a.co",         # Amazon
    "amzn.to",      # Amazon
    "bit.ly",
    "tinyurl.com",
    "short.link",
    "ow.ly",
    "t.co",
    "goo.gl",
    "youtu.be",
)

# Amazon URLs that only redirect to the real product page
AMAZON_REDIRECT_PATTERNS = (
    re.compile(r"amazon\.com/gp/aw/d/"),
    re.compile(r"amazon\.com/dp/redirect"),
    re.compile(r"smile\.amazon\.com"),
)

TRACKING_PARAMS = frozenset({
    "fbclid", "gclid", "ref", "_ga", "_gl", "mc_cid", "mc_eid", "msclkid",
})
TRACKING_PREFIXES = ("utm_",)

MAX_REDIRECTS = 10

HOST_LIKE = re.compile(r"^[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+(:\d+)?$")

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def get_hostname(url: str) -> str:
    """Lower-cased hostname without a leading www., or "" if unparsable."""
    try:
        hostname = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    hostname = hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def _is_tracking_param(pair: str) -> bool:
    key = unquote_plus(pair.split("=", 1)[0]).lower()
    return key in TRACKING_PARAMS or key.startswith(TRACKING_PREFIXES)


def _looks_like_host(candidate: str) -> bool:
    return bool(HOST_LIKE.match(candidate.split("/", 1)[0]))


def ensure_scheme(url: str) -> str:
    """Prepend https:// to scheme-less input that starts with a hostname."""
    candidate = url.strip()
    if candidate and "://" not in candidate and _looks_like_host(candidate):
        return f"https://{candidate}"
    return url


def normalize_url(url: str) -> str:
    """
    Strip tracking parameters and the fragment from a URL.

    Scheme and host are lower-cased and an empty path becomes "/".
    Scheme-less inputs that look like a hostname get https:// prepended.
    Unparsable input is returned unchanged. The function is idempotent.
    """
    candidate = url.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return url

    candidate = ensure_scheme(candidate)

    try:
        parts = urlsplit(candidate)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return url

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not parts.hostname:
        return url

    query = "&".join(
        pair for pair in parts.query.split("&")
        if pair and not _is_tracking_param(pair)
    )

    return urlunsplit((scheme, parts.netloc.lower(), parts.path or "/", query, ""))


class UrlCanonicalizer:
    """
    URL Canonicalizer - produces the stable key used for caching and
    strategy selection.

    Shortened links are resolved with a bounded number of HEAD hops under
    a single overall timeout. Resolution never raises: any failure falls
    back to the original URL.
    """

    def __init__(
        self,
        timeout: float = config.SHORTENER_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsRecorder] = None,
    ):
        self.timeout = timeout
        self.transport = transport
        self.metrics = metrics
        self.logger = LayerLogger("canonicalizer")

    def needs_expansion(self, url: str) -> bool:
        """Check if the URL is a known shortener or Amazon redirect link."""
        hostname = get_hostname(url)
        if any(hostname == d or hostname.endswith("." + d) for d in SHORTENER_DOMAINS):
            return True
        return any(pattern.search(url) for pattern in AMAZON_REDIRECT_PATTERNS)

    async def canonicalize(self, url: str) -> str:
        """Resolve shorteners if needed, then normalize."""
        candidate = ensure_scheme(url)
        resolved = await self.expand(candidate) if self.needs_expansion(candidate) else candidate
        canonical = normalize_url(resolved)

        if canonical != url:
            self.logger.log_action(
                "canonicalize",
                "completed",
                url=url,
                canonical_url=canonical,
            )
        return canonical

    async def expand(self, url: str) -> str:
        """Follow redirects to the final destination, or return url on failure."""
        self.logger.log_action("expand_url", "started", url=url)

        try:
            final_url = await asyncio.wait_for(
                self._follow_redirects(url), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self.logger.log_fallback(
                from_source="expanded_url",
                to_source="original_url",
                reason=f"expansion timed out after {self.timeout}s",
                url=url,
            )
            return url
        except (httpx.HTTPError, httpx.InvalidURL, NetworkError, ValueError) as e:
            self.logger.log_fallback(
                from_source="expanded_url",
                to_source="original_url",
                reason=str(e) or e.__class__.__name__,
                url=url,
            )
            return url

        self.logger.log_action("expand_url", "completed", url=url, final_url=final_url)
        return final_url

    async def _follow_redirects(self, url: str) -> str:
        current = url
        headers = {"User-Agent": BROWSER_USER_AGENT}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=False,
            transport=self.transport,
        ) as client:
            for hop in range(MAX_REDIRECTS):
                if self.metrics:
                    self.metrics.record_fetch("redirect")
                response = await client.head(current, headers=headers)
                status = response.status_code

                if 300 <= status < 400:
                    location = response.headers.get("location")
                    if not location:
                        self.logger.log_redirect_hop(current, status, "redirect_without_location")
                        raise NetworkError(f"HTTP {status} without Location header")
                    self.logger.log_redirect_hop(current, status, "redirect", hop=hop + 1)
                    current = urljoin(current, location)
                    continue

                if 200 <= status < 300:
                    self.logger.log_redirect_hop(current, status, "final")
                    return current

                self.logger.log_redirect_hop(current, status, "unexpected_status")
                raise NetworkError(f"HTTP {status}")

        raise NetworkError(f"Maximum redirects ({MAX_REDIRECTS}) exceeded")
