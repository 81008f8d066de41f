"""
Structured logging for the Product URL Parser.

Every parse request binds a short trace id into structlog's context
variables, so all log lines emitted while handling that URL (across
layers, strategies and worker threads) can be correlated.
"""
import logging
import uuid
from typing import Any, Iterable, Optional

import structlog

from product_parser.config import config


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Bind a (new) trace id for the current request context."""
    trace_id = trace_id or uuid.uuid4().hex[:8]
    structlog.contextvars.bind_contextvars(trace_id=trace_id)
    return trace_id


def get_trace_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get("trace_id")


def _renderer():
    if config.LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def configure_logging():
    """Configure structlog once for the whole process."""
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)


class LayerLogger:
    """
    Logger bound to one pipeline layer or strategy.

    Event names are fixed per method so log queries can filter on them:
    decision_made, action_<status>, fallback_triggered, error_occurred,
    redirect_hop and product_extracted.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name).bind(layer=layer_name)

    def log_decision(self, decision: str, reason: str, url: Optional[str] = None, **extra: Any):
        """A choice made by this layer, e.g. which strategy or a cache hit."""
        self.logger.info("decision_made", decision=decision, reason=reason, url=url, **extra)

    def log_action(self, action: str, status: str = "started", **extra: Any):
        self.logger.info(f"action_{status}", action=action, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra: Any):
        """Escalation to another strategy, or falling back to a weaker source."""
        self.logger.warning(
            "fallback_triggered",
            from_source=from_source,
            to_source=to_source,
            reason=reason,
            **extra,
        )

    def log_error(self, error: str, error_type: str = "unknown", **extra: Any):
        self.logger.error("error_occurred", error=error, error_type=error_type, **extra)

    def log_redirect_hop(self, url: str, status_code: Optional[int], result: str, **extra: Any):
        """One HTTP hop while resolving a shortened link."""
        self.logger.info("redirect_hop", url=url, status_code=status_code, result=result, **extra)

    def log_extraction(
        self,
        method: str,
        fields_present: Iterable[str],
        fields_missing: Iterable[str],
        confidence: float,
        **extra: Any,
    ):
        """Outcome of one extraction attempt."""
        self.logger.info(
            "product_extracted",
            method=method,
            fields_present=list(fields_present),
            fields_missing=list(fields_missing),
            confidence_score=confidence,
            **extra,
        )


configure_logging()
