"""Storefront Orders FastAPI application.

Serves order intake, the order lifecycle, delivery verification, ratings
and the realtime WebSocket feed. Every HTTP request runs inside the
ordering domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import os
from uuid import uuid4

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied.
os.environ.setdefault("REALTIME_TRANSPORT", "websocket")

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from ordering.domain import ordering  # noqa: E402
from ordering.utils.logging import add_context, clear_context  # noqa: E402

ordering.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Orders API",
    description="Order lifecycle, delivery verification and realtime order feed",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context and bind request details to the log context."""
    clear_context()
    add_context(
        request_id=request.headers.get("x-request-id") or uuid4().hex,
        path=request.url.path,
        actor_role=request.headers.get("x-actor-role"),
    )
    with ordering.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from ordering.api import customer_router, order_router, realtime_router, store_router  # noqa: E402
from ordering.api.errors import register_error_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(store_router)
app.include_router(customer_router)
app.include_router(realtime_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
            },
        }
    )
