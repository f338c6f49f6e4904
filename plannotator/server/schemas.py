from __future__ import annotations

from pydantic import BaseModel, Field

from plannotator.core.models import Feedback


class DecisionRequest(BaseModel):
    approved: bool
    feedback: Feedback | None = None


class LegacyDecisionRequest(BaseModel):
    feedback: str | None = None


class DecisionResponse(BaseModel):
    ok: bool = True
    approved: bool


class ErrorResponse(BaseModel):
    error: str
    message: str


class PlanResponse(BaseModel):
    plan: str
    origin: str
    isRemote: bool
    sharingEnabled: bool
    title: str
    version: int
    timestamp: str
    slug: str


class PlanVersionItem(BaseModel):
    version: int
    timestamp: str
    hash: str


class PlanVersionsResponse(BaseModel):
    slug: str
    currentVersion: int
    versions: list[PlanVersionItem] = Field(default_factory=list)


class PlanVersionResponse(BaseModel):
    slug: str
    version: int
    content: str
