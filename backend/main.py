"""
Dorm Billing API (FastAPI)
帳單引擎的 HTTP 介面：每個引擎操作對應一個端點
"""
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.routers import bills, meter_readings, payments, reports
from repository.errors import StoreError
from services.errors import BillingError
from utils.logger import logger

# Initialize FastAPI
app = FastAPI(
    title="Dorm Billing API",
    description="Billing & metering engine for dormitory operators",
    version="1.0.0"
)

# CORS (Allow Frontend to connect)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For development; restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(bills.router)
app.include_router(meter_readings.router)
app.include_router(payments.router)
app.include_router(reports.router)


def _error_body(error) -> dict:
    return {
        "error_code": error.error_code,
        "message": error.message,
        "details": error.details,
    }


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    logger.warning(f"{request.method} {request.url.path} → {exc.error_code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=_error_body(exc))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"{request.method} {request.url.path} → {exc.error_code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=_error_body(exc))


@app.get("/")
async def root():
    return {
        "message": "Dorm Billing API v1.0 is running 🚀",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/api/health")
async def health_check():
    """System Health Check"""
    return {"status": "healthy", "service": "backend"}
