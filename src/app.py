"""Grocery fulfillment FastAPI application.

Web server that processes checkout, order lifecycle, payment callbacks and
shop/rider management synchronously via HTTP. Each request is wrapped in the
fulfillment domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fulfillment.domain import fulfillment

fulfillment.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Grocery Fulfillment API",
    description="Checkout, order lifecycle and payment reconciliation for neighbourhood shops",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_DOMAIN_PREFIXES = ("/checkout", "/orders", "/payments", "/shops", "/riders")


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the fulfillment domain context for each domain request."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with fulfillment.domain_context():
            response = await call_next(request)
        return response
    # No domain match, pass through (health check, docs, etc.)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from fulfillment.api import register_fulfillment_exception_handlers, routers  # noqa: E402

for router in routers:
    app.include_router(router)

register_fulfillment_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": fulfillment.name})
