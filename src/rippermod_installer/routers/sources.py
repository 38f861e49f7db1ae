from fastapi import APIRouter

from rippermod_installer.config import settings
from rippermod_installer.schemas.installers import StagingSourceOut
from rippermod_installer.services.plan_service import list_sources

router = APIRouter(prefix="/sources", tags=["sources"])


@router.get("", response_model=list[StagingSourceOut])
async def list_staging_sources() -> list[StagingSourceOut]:
    """List archives and extracted mod folders waiting in the staging folder."""
    return [
        StagingSourceOut(name=s.name, is_archive=s.is_archive, size=s.size)
        for s in list_sources(settings.staging_dir)
    ]
