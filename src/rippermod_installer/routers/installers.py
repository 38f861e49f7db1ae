"""Endpoints for listing installers and running them against a staging source."""

import logging

from fastapi import APIRouter, HTTPException

from rippermod_installer.config import settings
from rippermod_installer.installers import (
    FileTree,
    InstallRejected,
    InstallResult,
    get_all_installers,
    get_installer,
)
from rippermod_installer.installers.fallback import CollectingWarningSink
from rippermod_installer.schemas.installers import (
    InstallerOut,
    InstallPlanOut,
    InstructionOut,
    PlanRequest,
    RejectionOut,
    StructureWarningOut,
    TestRequest,
    TestResultOut,
)
from rippermod_installer.services.plan_service import UnsupportedSourceError, plan_install

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/installers", tags=["installers"])


def to_plan_out(result: InstallResult) -> InstallPlanOut:
    return InstallPlanOut(
        installer=str(result.installer),
        layout=str(result.kind),
        instructions=[
            InstructionOut(source=i.source, destination=i.destination)
            for i in result.instructions
        ],
    )


def rejection_detail(exc: InstallRejected, sink: CollectingWarningSink) -> dict:
    return RejectionOut(
        message=exc.message,
        reason=exc.reason,
        files=exc.files,
        warnings=[
            StructureWarningOut(
                installer=w.installer,
                mod_name=w.mod_name,
                message=w.message,
                files=w.files,
            )
            for w in sink.warnings
        ],
    ).model_dump()


async def run_plan(data: PlanRequest, installer_type: str | None = None) -> InstallPlanOut:
    """Plan *data.source* and translate planning failures into HTTP errors."""
    sink = CollectingWarningSink()
    try:
        result = await plan_install(
            settings.staging_dir,
            data.source,
            mod_name=data.mod_name,
            installer_type=installer_type,
            warnings=sink,
        )
    except InstallRejected as exc:
        logger.info("Plan rejected for %s: %s", data.source, exc.reason)
        raise HTTPException(422, rejection_detail(exc, sink)) from exc
    except UnsupportedSourceError as exc:
        raise HTTPException(422, str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(404, str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return to_plan_out(result)


@router.get("", response_model=list[InstallerOut])
async def list_installers() -> list[InstallerOut]:
    """List registered installers in the order they are tried."""
    return [InstallerOut(type=str(i.type), priority=i.priority) for i in get_all_installers()]


@router.post("/{installer_type}/test", response_model=TestResultOut)
async def check_installer(installer_type: str, data: TestRequest) -> TestResultOut:
    """Check whether an installer supports a listing of archive paths."""
    installer = get_installer(installer_type)
    if installer is None:
        raise HTTPException(404, f"Unknown installer: {installer_type}")
    try:
        tree = FileTree.from_paths(data.files)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc

    result = installer.test(tree)
    return TestResultOut(supported=result.supported, required_files=result.required_files)


@router.post("/{installer_type}/install", response_model=InstallPlanOut)
async def plan_with_installer(installer_type: str, data: PlanRequest) -> InstallPlanOut:
    """Compute move instructions for a staging source with a specific installer."""
    if get_installer(installer_type) is None:
        raise HTTPException(404, f"Unknown installer: {installer_type}")
    return await run_plan(data, installer_type)
