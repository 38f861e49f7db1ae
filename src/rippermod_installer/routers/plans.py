"""Auto-selecting install planner."""

from fastapi import APIRouter

from rippermod_installer.routers.installers import run_plan
from rippermod_installer.schemas.installers import InstallPlanOut, PlanRequest

router = APIRouter(prefix="/plans", tags=["plans"])


@router.post("", response_model=InstallPlanOut)
async def create_plan(data: PlanRequest) -> InstallPlanOut:
    """Plan a staging source with the first installer that supports it."""
    return await run_plan(data)
