import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from photowalk.config import settings
from photowalk.database import create_tables
from photowalk.dependencies import verify_api_key
from photowalk.routers.missions import router as missions_router
from photowalk.routers.photos import router as photos_router
from photowalk.routers.route import router as route_router
from photowalk.routers.sessions import router as sessions_router
from photowalk.routers.walks import router as walks_router
from photowalk.utils.exceptions import register_exception_handlers
from photowalk.utils.response import success_response

logger = logging.getLogger(__name__)

SERVICE_NAME = "photo-walk-api"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    os.makedirs(settings.static_dir, exist_ok=True)
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set: missions will use the default set")
    if not settings.mapbox_access_token:
        logger.warning("MAPBOX_ACCESS_TOKEN not set: route lookups are disabled")
    if not settings.cloudinary_configured:
        logger.warning("Cloudinary not configured: uploads go to %s", settings.static_dir)
    yield


app = FastAPI(
    title="Photo Walk API",
    description="Backend API for photo walks: missions, routes, uploads and walk history",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.mount("/static", StaticFiles(directory=settings.static_dir, check_dir=False), name="static")

_api_key_dep = [Depends(verify_api_key)]

app.include_router(missions_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(route_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(photos_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(walks_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(sessions_router, prefix="/api/v1", dependencies=_api_key_dep)


@app.get("/health")
async def health_check():
    return success_response(service=SERVICE_NAME, version=VERSION)
