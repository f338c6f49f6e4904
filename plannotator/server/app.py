from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from plannotator.core.config import ReviewConfig
from plannotator.core.errors import ReviewError
from plannotator.core.feedback import format_feedback
from plannotator.core.logging.audit import audit_event
from plannotator.core.storage.plan_history import list_versions, load_version
from plannotator.core.storage.plan_store import NO_CHANGES_SENTINEL, extract_first_heading
from .schemas import (
    DecisionRequest,
    DecisionResponse,
    ErrorResponse,
    LegacyDecisionRequest,
    PlanResponse,
    PlanVersionItem,
    PlanVersionResponse,
    PlanVersionsResponse,
)
from .session import Decision, Session

DEFAULT_DENY_FEEDBACK = "Plan rejected by user"
BOOTSTRAP_MARKER = "<!--plannotator:bootstrap-->"

static_dir = Path(__file__).parent / "static"


def load_default_ui() -> str:
    return (static_dir / "index.html").read_text(encoding="utf-8")


def render_ui(html: str, bootstrap: dict[str, Any]) -> str:
    """Inject the session bootstrap into the UI bundle."""

    # "</" inside a script body would close the tag early.
    payload = json.dumps(bootstrap, ensure_ascii=False).replace("</", "<\\/")
    script = f"<script>window.__PLANNOTATOR__ = {payload};</script>"
    if BOOTSTRAP_MARKER in html:
        return html.replace(BOOTSTRAP_MARKER, script, 1)
    if "</head>" in html:
        return html.replace("</head>", f"{script}</head>", 1)
    return script + html


def _decision_from_request(payload: DecisionRequest) -> Decision:
    feedback = payload.feedback
    rendered = format_feedback(feedback.annotations, feedback.comment) if feedback else NO_CHANGES_SENTINEL
    if payload.approved:
        return Decision.approve(None if rendered == NO_CHANGES_SENTINEL else rendered)
    return Decision.deny(DEFAULT_DENY_FEEDBACK if rendered == NO_CHANGES_SENTINEL else rendered)


def create_app(session: Session, ui_html: str | None = None, config: ReviewConfig | None = None) -> FastAPI:
    config = config or ReviewConfig(remote=session.is_remote)
    app = FastAPI(title="Plannotator Review", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.session = session
    app.state.config = config
    page = render_ui(
        ui_html if ui_html is not None else load_default_ui(),
        {
            "plan": session.plan,
            "origin": session.origin,
            "mode": "remote" if session.is_remote else "local",
            "sharingEnabled": config.sharing_enabled,
        },
    )

    @app.exception_handler(ReviewError)
    async def review_error_handler(request: Request, exc: ReviewError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.error_code, message=str(exc)).model_dump(),
        )

    def _accept(decision: Decision, route: str) -> DecisionResponse:
        try:
            session.record_decision(decision)
        except ReviewError:
            audit_event("session.rejected_duplicate", slug=session.slug, route=route, approved=decision.approved)
            raise
        audit_event("session.decided", slug=session.slug, route=route, approved=decision.approved)
        return DecisionResponse(approved=decision.approved)

    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        return HTMLResponse(page)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/plan", response_model=PlanResponse)
    def plan_details() -> PlanResponse:
        return PlanResponse(
            plan=session.plan,
            origin=session.origin,
            isRemote=session.is_remote,
            sharingEnabled=config.sharing_enabled,
            title=extract_first_heading(session.plan) or "Untitled Plan",
            version=session.version,
            timestamp=session.created_at.isoformat(),
            slug=session.slug,
        )

    @app.get("/api/plan/versions", response_model=PlanVersionsResponse)
    def plan_versions() -> PlanVersionsResponse:
        items: list[PlanVersionItem] = []
        if config.plan_save_enabled:
            items = [
                PlanVersionItem(version=item.version, timestamp=item.timestamp, hash=item.hash)
                for item in list_versions(session.slug, config.plan_dir)
            ]
        return PlanVersionsResponse(slug=session.slug, currentVersion=session.version, versions=items)

    @app.get("/api/plan/version", response_model=PlanVersionResponse)
    def plan_version(version: int = Query(..., ge=1)) -> PlanVersionResponse:
        content = load_version(session.slug, version, config.plan_dir) if config.plan_save_enabled else None
        if content is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "version_not_found", "message": f"Version {version} not found"},
            )
        return PlanVersionResponse(slug=session.slug, version=version, content=content)

    @app.post("/decision", response_model=DecisionResponse)
    def decision(payload: DecisionRequest) -> DecisionResponse:
        return _accept(_decision_from_request(payload), "decision")

    @app.post("/api/approve", response_model=DecisionResponse)
    def approve(payload: LegacyDecisionRequest | None = None) -> DecisionResponse:
        notes = payload.feedback if payload else None
        return _accept(Decision.approve(notes), "approve")

    @app.post("/api/deny", response_model=DecisionResponse)
    def deny(payload: LegacyDecisionRequest | None = None) -> DecisionResponse:
        feedback = (payload.feedback if payload else None) or DEFAULT_DENY_FEEDBACK
        return _accept(Decision.deny(feedback), "deny")

    return app
