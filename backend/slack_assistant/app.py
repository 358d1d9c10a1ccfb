"""FastAPI application setup for the Slack assistant."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request

from slack_assistant.api.dependencies import get_app_settings, get_clients, get_profiles, get_store
from slack_assistant.api.routes_admin import router as admin_router
from slack_assistant.api.routes_messages import router as messages_router
from slack_assistant.api.routes_query import router as query_router
from slack_assistant.core.logging import configure_logging
from slack_assistant.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()

app = FastAPI(
    title="Slack Assistant",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])
app.include_router(messages_router, prefix="/messages", tags=["messages"])


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - start)
    return response


@app.on_event("startup")
async def startup() -> None:
    """Load settings and profiles and open the store; failures abort startup."""
    get_app_settings()
    get_profiles()
    get_store()
    get_clients()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
