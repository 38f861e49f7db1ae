"""Request/response models for the installer endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class InstallerOut(BaseModel):
    type: str
    priority: int


class TestRequest(BaseModel):
    files: list[str]


class TestResultOut(BaseModel):
    supported: bool
    required_files: list[str] = []


class PlanRequest(BaseModel):
    source: str
    mod_name: str | None = None


class InstructionOut(BaseModel):
    source: str
    destination: str


class InstallPlanOut(BaseModel):
    installer: str
    layout: str
    instructions: list[InstructionOut]


class StructureWarningOut(BaseModel):
    installer: str
    mod_name: str
    message: str
    files: list[str]


class RejectionOut(BaseModel):
    message: str
    reason: str
    files: list[str]
    warnings: list[StructureWarningOut] = []


class StagingSourceOut(BaseModel):
    name: str
    is_archive: bool
    size: int
