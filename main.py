""" main.py: FastAPI application entry point and runtime configuration.

This module builds the ASGI app, mounts API routers, configures CORS (Cross‑Origin Resource Sharing), records
request metrics and exposes a Prometheus metrics endpoint. It centralizes web‑layer wiring so the rest of the
codebase can focus on the chat orchestration. When executed directly, it starts a Uvicorn server using host/port
values from configuration.
"""

import time
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from config import CONFIG, is_demo_mode
from monitoring.metrics import REQUEST_COUNT, REQUEST_LATENCY
from version import __version__

# --- Router Imports ---
from api import chat as chat_router
from api import tools as tools_router

# Get a logger instance for this module
logger = logging.getLogger(__name__)

app = FastAPI(title="Weather Assistant", version=__version__)

# Include routers
app.include_router(chat_router.router, prefix="/api", tags=["Chat"])
app.include_router(tools_router.router, prefix="/api", tags=["Tools"])

# Add Prometheus metrics endpoint
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Configure CORS
allow_origins = CONFIG.get('cors', {}).get('allow_origins', ["*"])
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    """Count every request and observe its latency, labelled by route path."""
    start_time = time.time()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(time.time() - start_time)
    REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    return response


@app.get("/health")
def health():
    """Liveness check reporting the version and whether the assistant runs in demo mode."""
    return {"status": "ok", "version": __version__, "demo_mode": is_demo_mode()}


# The uvicorn server is used to run the FastAPI application.
if __name__ == '__main__':
    import uvicorn
    logger.info("[__main__] Starting Uvicorn server for main.py\n")
    uvicorn.run(
        app,
        host=CONFIG.get('server', {}).get('host', '0.0.0.0'),
        port=CONFIG.get('server', {}).get('port', 8080)
    )
