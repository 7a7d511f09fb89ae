"""
core/__init__.py

Core orchestration modules.

This package contains the central coordination logic for the weather assistant:
- credentials: Ordered credential policy for the weather upstream
- orchestrator: Tool-augmented chat exchange with the model backend
- demo: Offline answers when no backend credential is configured
- streaming: Word-by-word server-sent events emulation

These modules handle the high-level flow of a user turn through the system.
"""
