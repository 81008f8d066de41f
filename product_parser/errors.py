"""
Extraction errors.

Strategies raise these internally; they are converted into failed
ParseResult values at the strategy boundary and never reach callers
of the public parse API.
"""


class ExtractionError(Exception):
    """Base class for all extraction failures."""
    error_type = "extraction_error"


class NetworkError(ExtractionError):
    """DNS, connection, timeout or non-2xx response."""
    error_type = "network_error"


class DocumentParseError(ExtractionError):
    """HTML or JSON that could not be parsed."""
    error_type = "parse_error"


class ProxyError(ExtractionError):
    """Remote rendering service failure or missing required field."""
    error_type = "proxy_error"
