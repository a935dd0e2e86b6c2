"""Storefront FastAPI application.

Processes cart and order commands synchronously via HTTP. Every request is
wrapped in the storefront domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (handlers fire in UoW)
#   - "production" → event_processing = "async" (handlers fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from storefront.domain import storefront  # noqa: E402
from storefront.utils.logging import bind_request_context, clear_request_context, configure_logging

configure_logging()
storefront.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Multi-tenant carts, pricing and order fulfillment",
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
    """Push the storefront domain context and bind the tenant to log lines."""
    bind_request_context(tenant_id=request.headers.get("x-tenant-id"), path=request.url.path)
    try:
        with storefront.domain_context():
            return await call_next(request)
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from storefront.api.errors import register_exception_handlers  # noqa: E402
from storefront.api.routes import cart_router, lookup_router, maintenance_router, order_router  # noqa: E402

register_exception_handlers(app)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(lookup_router)
app.include_router(maintenance_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": storefront.name}})
