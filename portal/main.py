"""
Membership & prize-draw admin portal
Main entry point for the application
"""

import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

from portal.core.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

# Sentry integration
if os.getenv("SENTRY_DSN"):
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=os.getenv("SENTRY_DSN"),
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        environment=settings.app_env,
    )

from portal.api.admin_attendance import router as admin_attendance_router
from portal.api.admin_finance import router as admin_finance_router
from portal.api.admin_manage import router as admin_manage_router
from portal.api.admin_prize_draw import router as admin_prize_draw_router
from portal.api.agents import router as agents_router
from portal.api.auth import router as auth_router
from portal.api.health import router as health_router
from portal.api.messages import router as messages_router
from portal.api.prize_draw import router as prize_draw_router
from portal.api.wallet import router as wallet_router
from portal.core.redis_client import redis_client
from portal.middleware.rate_limit import RateLimitMiddleware

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
ACTIVE_CONNECTIONS = Gauge('http_active_connections', 'Number of active HTTP connections')

app = FastAPI(
    title=settings.app_name,
    description="Membership, prize draw, messaging, attendance and financial close administration",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# No-op when REDIS_URL is unset
app.add_middleware(RateLimitMiddleware, redis_client=redis_client)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    ACTIVE_CONNECTIONS.inc()
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        duration = time.time() - start_time
        ACTIVE_CONNECTIONS.dec()

        # route template, not the raw path
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code if response is not None else 500
        ).inc()
        REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(duration)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(health_router, tags=["health"])
app.include_router(auth_router)
app.include_router(prize_draw_router)
app.include_router(admin_prize_draw_router)
app.include_router(messages_router)
app.include_router(wallet_router)
app.include_router(admin_finance_router)
app.include_router(admin_attendance_router)
app.include_router(admin_manage_router)
app.include_router(agents_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
