from fastapi import APIRouter

from rippermod_installer.routers import installers, plans, sources

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(installers.router)
api_router.include_router(plans.router)
api_router.include_router(sources.router)
