"""
Structured logging for BookScout.

Every event carries the trace id of the extraction it belongs to, so one
page's dispatch, strategy tiers and enrichment lookup can be followed as a
single story in the log stream.
"""
import uuid
import logging
import structlog
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

from bookscout.config import config

# One id per extraction request; empty until first use
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def get_trace_id() -> str:
    """Trace id of the current extraction, created on first use."""
    trace_id = trace_id_var.get()
    if not trace_id:
        trace_id = set_trace_id()
    return trace_id


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Start a new extraction trace (or adopt the caller's id)."""
    trace_id = trace_id or _new_trace_id()
    trace_id_var.set(trace_id)
    return trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor stamping the extraction trace id."""
    event_dict["trace_id"] = get_trace_id()
    return event_dict


def configure_logging():
    """Install the processor chain; LOG_FORMAT picks JSON or console output."""
    renderer = (
        structlog.processors.JSONRenderer()
        if config.LOG_FORMAT == "json"
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class LayerLogger:
    """
    Event helpers shared by the dispatcher, the source strategies and the
    enrichment client. Each instance is bound to one component name, which
    appears as ``layer`` on every event it emits.

    Strategies receive a LayerLogger per call; logging only observes and
    never steers extraction.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name).bind(layer=layer_name)

    def log_decision(self, decision: str, reason: str, url: Optional[str] = None, **extra):
        """A routing choice, e.g. which strategy owns an address."""
        self.logger.info("decision_made", decision=decision, reason=reason, url=url, **extra)

    def log_action(self, action: str, status: str = "started", **extra):
        self.logger.info(f"action_{status}", action=action, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra):
        """A strategy moved down to its next tier."""
        self.logger.warning(
            "fallback_triggered",
            from_source=from_source,
            to_source=to_source,
            reason=reason,
            **extra
        )

    def log_error(self, error: str, error_type: str = "unknown", **extra):
        """A failure that was absorbed (malformed payload, failed lookup)."""
        self.logger.error("error_occurred", error=error, error_type=error_type, **extra)

    def log_http_probe(
        self,
        url: str,
        endpoint: str,
        status_code: Optional[int],
        result: str,
        **extra
    ):
        """Outcome of a volumes API request."""
        self.logger.info(
            "http_probe",
            url=url,
            endpoint=endpoint,
            status_code=status_code,
            result=result,
            **extra
        )

    def log_trace(self, source: str, stage: str, **values):
        """Debug-level trace of the stage an extraction reached."""
        self.logger.debug("extraction_trace", source=source, stage=stage, **values)

    def log_extraction(
        self,
        source: str,
        fields_present: List[str],
        fields_missing: List[str],
        **extra
    ):
        """Which canonical fields a finished record carries."""
        self.logger.info(
            "record_extracted",
            source=source,
            fields_present=fields_present,
            fields_missing=fields_missing,
            **extra
        )


configure_logging()
