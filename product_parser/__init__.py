"""Product URL Parser - structured product metadata from merchant page URLs."""

__version__ = "1.0.0"
