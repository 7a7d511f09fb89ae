"""
Core metrics and monitoring decorators for the weather assistant.

This module defines Prometheus metrics and decorators for tracking:
- Request latency and counts
- Error rates
- Tool execution time
- External API latency (model backend and weather upstream)
- Which orchestration path produced each answer
- Which credential tier was chosen for weather calls
"""

import time
import functools
import logging
from typing import Any, Callable, Dict, Optional
from prometheus_client import Counter, Histogram

# Configure logger
logger = logging.getLogger(__name__)

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, float("inf")]  # Define buckets in seconds
)

# Error metrics
ERROR_COUNT = Counter(
    'error_total',
    'Total number of errors',
    ['type', 'location']  # type: e.g., 'http', 'llm', 'tool'; location: specific component
)

# Tool execution metrics
TOOL_EXECUTION_TIME = Histogram(
    'tool_execution_duration_seconds',
    'Time spent executing tools',
    ['tool_name'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, float("inf")]
)

# External API metrics
LLM_REQUEST_TIME = Histogram(
    'llm_request_duration_seconds',
    'Time spent waiting for the model backend',
    ['model'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, float("inf")]
)

WEATHER_REQUEST_TIME = Histogram(
    'weather_request_duration_seconds',
    'Time spent waiting for the weather upstream',
    ['endpoint'],  # 'geocode' or 'forecast'
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, float("inf")]
)

# Orchestration metrics
CHAT_OUTCOME_COUNT = Counter(
    'chat_outcome_total',
    'Answers produced by the chat orchestrator, by path',
    ['path']  # demo, direct, tool_answer, tool_fallback, unknown_tool, error
)

CREDENTIAL_DECISION_COUNT = Counter(
    'credential_decision_total',
    'Weather credential decisions, by precedence tier',
    ['source']
)


def track_latency(metric: Histogram, labels: Optional[Callable[[Any], Dict[str, str]]] = None) -> Callable:
    """
    Decorator factory observing the wall time of each call in `metric`.

    The observation is made whether the call returns or raises, so slow
    failures against the model backend or the weather upstream still show up.

    Args:
        metric (Histogram): Histogram to observe into.
        labels (Callable, optional): Receives the bound instance (the first
            positional argument) and returns the label values, e.g.
            `lambda self: {"model": self.model}`.

    Returns:
        Callable: The decorator.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - started
                target = metric.labels(**labels(args[0])) if labels and args else metric
                target.observe(elapsed)
                logger.debug(
                    "%s took %.3fs", func.__qualname__, elapsed,
                    extra={'duration': elapsed, 'function': func.__qualname__},
                )
        return wrapper
    return decorator


def track_errors(error_type: str, location: str) -> Callable:
    """
    Decorator factory counting exceptions that escape the wrapped call.

    The exception is recorded in ERROR_COUNT under (`error_type`, `location`),
    logged with its traceback and re-raised unchanged; handling stays with the
    caller.

    Example:
        @track_errors('llm', 'messages_client')
        def create_message(self, messages, ...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                record_error(error_type, location)
                logger.error(
                    "%s failed in %s: %s", error_type, location, exc,
                    extra={'error_type': error_type, 'location': location},
                    exc_info=True,
                )
                raise
        return wrapper
    return decorator


def record_error(error_type: str, location: str) -> None:
    """Count an error that was handled in place rather than raised."""
    ERROR_COUNT.labels(type=error_type, location=location).inc()
