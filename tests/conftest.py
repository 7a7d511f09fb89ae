"""
conftest.py – central pytest configuration and test bootstrap.

Pytest imports this module before it collects any test files, which lets us
prepare the environment before the `config` package runs its import-time setup:

1) Extend `sys.path` with the project root so absolute imports like `from core ...`
   and `from shared ...` resolve without an editable install.
2) Pin the environment so every test run is offline and deterministic:
   - no model backend key, so the default orchestrator is in demo mode
   - the mock weather client for the shared tool executor
   - no log file and no streaming delay

Tests that need live mode build their own orchestrator with an injected fake client.
"""

import os
import sys
from pathlib import Path

# Ensure project root is on sys.path for direct imports like `core`, `shared`, etc.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Provide deterministic environment defaults for tests
os.environ.pop("ANTHROPIC_API_KEY", None)
os.environ.pop("CLAUDE_API_KEY", None)
os.environ["WEATHER_PROVIDER"] = "mock"
os.environ["LOG_FILE_PATH"] = ""
os.environ["STREAM_CHUNK_DELAY"] = "0"
