from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from plannotator.core.config import ReviewConfig
from plannotator.core.storage.plan_history import save_version
from plannotator.server.app import create_app, render_ui
from plannotator.server.session import Session

PLAN = "# Migrate Storage\n\n1. Copy data\n2. Flip reads\n3. Remove old tables"


def _client(tmp_path: Path, **config_overrides) -> tuple[TestClient, Session]:
    session = Session(plan=PLAN, origin="claude-code", slug="2025-01-01-migrate-storage", is_remote=False)
    config = ReviewConfig(plan_dir=str(tmp_path), **config_overrides)
    return TestClient(create_app(session, config=config)), session


def test_index_serves_ui_with_plan_injected(tmp_path: Path) -> None:
    client, _ = _client(tmp_path)
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "window.__PLANNOTATOR__" in response.text
    assert "Migrate Storage" in response.text
    assert '"origin": "claude-code"' in response.text


def test_render_ui_escapes_script_close():
    html = render_ui("<html><head></head><body></body></html>", {"plan": "</script><b>x</b>"})
    assert "</script><b>" not in html
    assert "<\\/script>" in html
    assert html.index("window.__PLANNOTATOR__") < html.index("</head>")


def test_render_ui_without_head_prepends_script():
    html = render_ui("<div>bundle</div>", {"plan": "p"})
    assert html.startswith("<script>window.__PLANNOTATOR__")


def test_custom_ui_bundle(tmp_path: Path) -> None:
    session = Session(plan=PLAN, origin="opencode", slug="s", is_remote=True)
    client = TestClient(create_app(session, "<!--plannotator:bootstrap--><main>custom</main>"))
    body = client.get("/").text
    assert body.startswith("<script>")
    assert "<main>custom</main>" in body
    assert '"mode": "remote"' in body


def test_first_decision_wins_and_second_is_rejected(tmp_path: Path) -> None:
    client, session = _client(tmp_path)
    first = client.post(
        "/decision",
        json={
            "approved": False,
            "feedback": {
                "annotations": [{"start": 3, "end": 4, "text": "Add a backfill step"}],
                "comment": "Close, but not yet",
            },
        },
    )
    assert first.status_code == 200
    assert first.json() == {"ok": True, "approved": False}

    second = client.post("/decision", json={"approved": True})
    assert second.status_code == 409
    assert second.json()["error"] == "session_already_decided"

    assert session.decision is not None
    assert session.decision.approved is False
    assert "Add a backfill step" in session.decision.feedback
    assert "Close, but not yet" in session.decision.feedback


def test_approve_without_feedback_has_no_notes(tmp_path: Path) -> None:
    client, session = _client(tmp_path)
    assert client.post("/decision", json={"approved": True}).status_code == 200
    assert session.decision.approved is True
    assert session.decision.feedback is None


def test_deny_without_feedback_gets_default_message(tmp_path: Path) -> None:
    client, session = _client(tmp_path)
    client.post("/decision", json={"approved": False, "feedback": {"annotations": []}})
    assert session.decision.feedback == "Plan rejected by user"


def test_invalid_body_is_unprocessable(tmp_path: Path) -> None:
    client, session = _client(tmp_path)
    assert client.post("/decision", json={"feedback": {}}).status_code == 422
    bad_range = {"approved": False, "feedback": {"annotations": [{"start": 0, "end": 1, "text": "x"}]}}
    assert client.post("/decision", json=bad_range).status_code == 422
    assert session.decision is None


def test_legacy_endpoints_share_the_slot(tmp_path: Path) -> None:
    client, session = _client(tmp_path)
    denied = client.post("/api/deny", json={"feedback": "Split step 2"})
    assert denied.status_code == 200
    assert client.post("/api/approve", json={}).status_code == 409
    assert client.post("/decision", json={"approved": True}).status_code == 409
    assert session.decision.feedback == "Split step 2"


def test_plan_metadata(tmp_path: Path) -> None:
    client, _ = _client(tmp_path, sharing_enabled=False)
    payload = client.get("/api/plan").json()
    assert payload["plan"] == PLAN
    assert payload["title"] == "Migrate Storage"
    assert payload["isRemote"] is False
    assert payload["sharingEnabled"] is False
    assert payload["slug"] == "2025-01-01-migrate-storage"
    assert client.get("/health").json() == {"status": "ok"}


def test_plan_versions(tmp_path: Path) -> None:
    save_version("2025-01-01-migrate-storage", "# Migrate Storage\n\nold", tmp_path)
    client, _ = _client(tmp_path)

    listing = client.get("/api/plan/versions").json()
    assert [item["version"] for item in listing["versions"]] == [1]

    loaded = client.get("/api/plan/version", params={"version": 1})
    assert loaded.status_code == 200
    assert loaded.json()["content"] == "# Migrate Storage\n\nold"
    assert client.get("/api/plan/version", params={"version": 9}).status_code == 404


def test_plan_versions_disabled_when_saving_off(tmp_path: Path) -> None:
    save_version("2025-01-01-migrate-storage", "# old", tmp_path)
    client, _ = _client(tmp_path, plan_save_enabled=False)
    assert client.get("/api/plan/versions").json()["versions"] == []
