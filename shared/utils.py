"""
shared/utils.py

Shared utility functions used across multiple modules.

Small log-hygiene helpers that the model backend client,
the weather client and the orchestrator all need.
"""

from typing import Optional


def truncate_message_for_logging(message: str, max_length: int = 100) -> str:
    """
    Truncate long messages for logging purposes.

    Args:
        message (str): Message to truncate
        max_length (int): Maximum length before truncation (default: 100)

    Returns:
        str: Truncated message with ellipsis if needed

    Used for logging to avoid extremely long log entries while preserving
    the beginning of the message for debugging purposes.
    """
    if message is None:
        return ""
    if len(message) <= max_length:
        return message
    return message[:max_length] + "..."


def mask_secret(value: Optional[str]) -> str:
    """
    Render a credential for logs without exposing it.

    The free public sentinel and the demo sentinel are not secrets and are shown
    as-is; anything else becomes "custom".
    """
    if not value:
        return "none"
    if value in ("demo", "open-meteo"):
        return value
    return "custom"
