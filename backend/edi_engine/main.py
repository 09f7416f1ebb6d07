"""FastAPI application."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .problem_details import register_problem_handlers
from .routers import documents, generation, mappings, queue, trading_partners

# Create app
app = FastAPI(
    title="EDI Interchange Engine",
    version="1.0.0",
    description="Multi-tenant X12 document exchange with trading partners"
)

# Production safety checks.
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")

# CORS
cors_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
# Tenant/user headers are set by the gateway and must be whitelisted.
cors_headers = ["Content-Type", "X-Tenant-ID", "X-User-ID"]
if settings.ENV.lower() != "production":
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)


register_problem_handlers(app)


# Include routers
app.include_router(documents.router, prefix="/api/v1")
app.include_router(generation.router, prefix="/api/v1")
app.include_router(queue.router, prefix="/api/v1")
app.include_router(trading_partners.router, prefix="/api/v1")
app.include_router(mappings.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "service": settings.APP_NAME,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "EDI Interchange Engine API",
        "version": "1.0.0",
        "docs": "/docs"
    }
