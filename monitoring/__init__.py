"""
Monitoring package initializer.

This package exposes Prometheus metrics and helper decorators for tracking the
assistant's request handling, model backend calls and weather lookups.
"""

from .metrics import (
    REQUEST_COUNT,
    REQUEST_LATENCY,
    ERROR_COUNT,
    TOOL_EXECUTION_TIME,
    LLM_REQUEST_TIME,
    WEATHER_REQUEST_TIME,
    CHAT_OUTCOME_COUNT,
    CREDENTIAL_DECISION_COUNT,
    track_latency,
    track_errors,
    record_error,
)

__all__ = [
    'REQUEST_COUNT',
    'REQUEST_LATENCY',
    'ERROR_COUNT',
    'TOOL_EXECUTION_TIME',
    'LLM_REQUEST_TIME',
    'WEATHER_REQUEST_TIME',
    'CHAT_OUTCOME_COUNT',
    'CREDENTIAL_DECISION_COUNT',
    'track_latency',
    'track_errors',
    'record_error',
]
