"""
MakerCalc Engine API
FastAPI wrapper around the costing and quote calculation engines. Stateless:
no database, no auth; persistence and rendering live in the client apps.
"""
import logging
import time

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from makercalc import config  # noqa: E402  (reads env populated by load_dotenv)
from makercalc.api.calculator_routes import router as calculator_router  # noqa: E402
from makercalc.services.logging_config import setup_logging  # noqa: E402
from makercalc.services.middleware import RequestTimingMiddleware  # noqa: E402

setup_logging(level=config.LOG_LEVEL, json_output=config.LOG_JSON)
logger = logging.getLogger("makercalc-api")

_PROCESS_START = time.monotonic()

app = FastAPI(
    title="MakerCalc Engine API",
    version="1.0.0",
    description="Cost, margin and quote calculations for small production businesses",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

app.include_router(calculator_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": "1.0.0",
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        "default_currency": config.DEFAULT_CURRENCY,
        "shipping_vat_policy": config.SHIPPING_VAT_POLICY,
    }
