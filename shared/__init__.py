"""
shared/__init__.py

Shared utilities and models used across multiple modules.

This package contains common functionality that is used by multiple
components of the weather assistant:
- models: Conversation content blocks, tool results, credential decisions and weather snapshots
- utils: JSON and logging helpers

These modules keep the orchestrator, tool executor and clients speaking the same types.
"""
