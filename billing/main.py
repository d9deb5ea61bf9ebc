from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
import logging
import os

# Import database components
from billing.database.database import engine, Base

# Import middleware
from billing.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from billing.modules.products.router import product_router
from billing.modules.inventory.router import stock_router
from billing.modules.bills.router import bills_router
from billing.modules.invoices.router import invoices_router

# Import models for table creation
import billing.modules.products.models
import billing.modules.bills.models

from billing.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Paint Billing API",
    description="Sales billing against a shared product inventory with stock-safe bill creation",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(product_router, prefix=settings.API_PREFIX)
app.include_router(stock_router, prefix=settings.API_PREFIX)
app.include_router(bills_router, prefix=settings.API_PREFIX)
app.include_router(invoices_router, prefix=settings.API_PREFIX)

# Invoice documents are served as static files when stored locally
if settings.INVOICE_STORAGE == "local":
    os.makedirs(settings.INVOICES_DIR, exist_ok=True)
    app.mount(
        settings.INVOICES_URL_PREFIX,
        StaticFiles(directory=settings.INVOICES_DIR, check_dir=False),
        name="invoices"
    )

@app.get("/")
async def read_root():
    return {
        "message": "Paint Billing API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("Paint Billing API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Invoice storage: {settings.INVOICE_STORAGE}")

    # Create database tables (only for development - no migrations yet)
    if settings.ENVIRONMENT == "development":
        Base.metadata.create_all(bind=engine)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Paint Billing API shutting down...")
