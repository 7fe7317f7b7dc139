# main.py
import os
if os.getenv("DEBUGPY", "0") == "1":
    import debugpy
    debugpy.listen(("0.0.0.0", 5678))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import configure_logging
from config.settings import DashboardSettings
from middleware.request_logging import RequestLoggingMiddleware
from routers.market_analysis_routes import router as market_analysis_router

configure_logging()

settings = DashboardSettings.from_env()

app = FastAPI(title="Market Dashboard API")

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Analysis-Source"],
)

# Include routers
app.include_router(market_analysis_router, prefix="/api")
