"""
PeopleDesk HRM - FastAPI Application Entry Point

Run locally with:  uvicorn main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db, close_db
from app.routers import attendance, auth, employees, leave, payroll
from app.utils.error_handling import setup_exception_handlers

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_PREFIX = f"/api/{settings.api_version}"
APP_VERSION = "0.1.0"

# (router module, path segment, OpenAPI tag)
ROUTERS = [
    (auth, "auth", "Authentication"),
    (employees, "employees", "Employees"),
    (attendance, "attendance", "Attendance"),
    (leave, "leave", "Leave"),
    (payroll, "payroll", "Payroll"),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} ({settings.app_env})")

    # Production schemas come from Alembic
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    yield

    await close_db()
    logger.info(f"{settings.app_name} stopped, database connections closed")


app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant attendance, leave and payroll service",
    version=APP_VERSION,
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # auth cookie
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

for module, segment, tag in ROUTERS:
    app.include_router(module.router, prefix=f"{API_PREFIX}/{segment}", tags=[tag])


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


@app.get("/api")
async def api_info():
    return {
        "name": settings.app_name,
        "version": APP_VERSION,
        "environment": settings.app_env,
        "api_docs": "/api/docs" if settings.is_development else "disabled",
    }


@app.get(API_PREFIX)
async def api_root():
    """Index of the mounted resource groups."""
    return {
        "message": f"Welcome to {settings.app_name} API {settings.api_version}",
        "endpoints": {segment: f"{API_PREFIX}/{segment}" for _, segment, _ in ROUTERS},
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
