from __future__ import annotations

import socket
import threading
import time
from dataclasses import replace
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from plannotator.core.config import ReviewConfig, get_review_config
from plannotator.core.errors import BindError
from plannotator.core.logging.audit import audit_event, safe_excerpt, text_hash
from plannotator.core.logging.logger import get_logger
from plannotator.core.remote import BindTarget, resolve_bind
from plannotator.core.storage.plan_history import content_hash, get_latest_version, save_version
from plannotator.core.storage.plan_store import (
    extract_first_heading,
    generate_slug,
    save_annotations,
    save_final_snapshot,
    save_plan,
)
from .app import create_app
from .session import CancelToken, Decision, Session, SessionState

MAX_BIND_ATTEMPTS = 5
BIND_RETRY_DELAY_SECONDS = 0.5
STARTUP_TIMEOUT_SECONDS = 10.0
SHUTDOWN_TIMEOUT_SECONDS = 5.0

ReadyCallback = Callable[[str, bool, int], None]


def _open_socket(target: BindTarget) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((target.host, target.port))
    except OSError:
        sock.close()
        raise
    return sock


def bind_listener(target: BindTarget, *, attempts: int = MAX_BIND_ATTEMPTS) -> socket.socket:
    """Bind the review socket, retrying only where another port is acceptable."""

    logger = get_logger()
    for attempt in range(1, attempts + 1):
        try:
            return _open_socket(target)
        except OSError as exc:
            if target.is_remote:
                raise BindError(
                    f"Port {target.port} is in use (set PLANNOTATOR_PORT to use a different port)"
                ) from exc
            if attempt == attempts:
                raise BindError(f"Port {target.port} in use after {attempts} attempts") from exc
            logger.warning("Bind attempt %s/%s on port %s failed: %s", attempt, attempts, target.port, exc)
            if not target.ephemeral:
                time.sleep(BIND_RETRY_DELAY_SECONDS * attempt)
    raise BindError(f"Could not bind port {target.port}")


def _current_version(slug: str, plan: str, config: ReviewConfig) -> int:
    if not config.plan_save_enabled:
        return 1
    latest = get_latest_version(slug, config.plan_dir)
    if latest is None:
        return 1
    return latest.version if latest.hash == content_hash(plan) else latest.version + 1


class SessionServer:
    """One plan review: listener, decision wait, and the stored record.

    Use ``SessionServer.start`` to create one. The FastAPI app runs on a
    uvicorn thread bound to a socket opened here, so bind failures surface
    from ``start`` itself.
    """

    def __init__(self, session: Session, sock: socket.socket, target: BindTarget, config: ReviewConfig) -> None:
        self.session = session
        self.target = target
        self.config = config
        self._sock = sock
        self._lock = threading.Lock()
        self._result: Decision | None = None
        self._uvicorn: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self.session.port

    @property
    def is_remote(self) -> bool:
        return self.session.is_remote

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def state(self) -> SessionState:
        return self.session.state

    @classmethod
    def start(
        cls,
        plan: str,
        origin: str,
        ui_html: str | None = None,
        on_ready: Optional[ReadyCallback] = None,
        config: ReviewConfig | None = None,
    ) -> "SessionServer":
        if not plan or not plan.strip():
            raise ValueError("plan must be a non-empty string")
        if not origin or not origin.strip():
            raise ValueError("origin must be a non-empty string")
        config = config or get_review_config()
        slug = generate_slug(plan)
        target = resolve_bind(config)
        session = Session(
            plan=plan,
            origin=origin,
            slug=slug,
            is_remote=target.is_remote,
            version=_current_version(slug, plan, config),
        )
        sock = bind_listener(target)
        session.port = sock.getsockname()[1]
        server = cls(session, sock, target, config)
        try:
            server._serve(create_app(session, ui_html, config))
            audit_event(
                "session.started",
                slug=slug,
                origin=origin,
                port=session.port,
                remote=session.is_remote,
                title=safe_excerpt(extract_first_heading(plan) or "Untitled Plan"),
                plan_hash=text_hash(plan),
            )
            if on_ready is not None:
                on_ready(server.url, session.is_remote, session.port)
        except BaseException:
            server.stop()
            raise
        return server

    def _serve(self, app: FastAPI) -> None:
        uv_config = uvicorn.Config(app, log_config=None, log_level="warning", access_log=False, lifespan="off")
        self._uvicorn = uvicorn.Server(uv_config)
        self._thread = threading.Thread(
            target=self._uvicorn.run,
            kwargs={"sockets": [self._sock]},
            name=f"plannotator-review-{self.session.port}",
            daemon=True,
        )
        self._thread.start()
        deadline = time.monotonic() + STARTUP_TIMEOUT_SECONDS
        while not self._uvicorn.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                raise BindError(f"Review server on port {self.session.port} failed to start")
            time.sleep(0.01)
        self.session.listening = True

    def wait_for_decision(self, cancel: CancelToken | None = None) -> Decision:
        """Block until the reviewer decides, then persist the record.

        Raises ``SessionAborted`` if the server is stopped or ``cancel`` fires
        first.
        """

        if cancel is not None:
            cancel.register(self.stop)
        try:
            decision = self.session.slot.wait()
        finally:
            if cancel is not None:
                cancel.unregister(self.stop)
        return self._persist(decision)

    def _persist(self, decision: Decision) -> Decision:
        with self._lock:
            if self._result is not None:
                return self._result
            if not self.config.plan_save_enabled:
                self._result = decision
                return decision
            slug, plan, plan_dir = self.session.slug, self.session.plan, self.config.plan_dir
            version = save_version(slug, plan, plan_dir)
            if not version.skipped:
                get_logger().info("Saved plan version %s: %s", version.version, version.path)
            save_plan(slug, plan, plan_dir)
            annotations = decision.feedback or ""
            if annotations:
                save_annotations(slug, annotations, plan_dir)
            snapshot = save_final_snapshot(slug, decision.status, plan, annotations, plan_dir)
            self._result = replace(decision, saved_path=snapshot)
            return self._result

    def stop(self) -> None:
        with self._lock:
            if self.session.stopped:
                return
            self.session.stopped = True
        self.session.abort()
        if self._uvicorn is not None:
            self._uvicorn.should_exit = True
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        self._sock.close()
        self.session.listening = False
        audit_event("session.stopped", slug=self.session.slug, port=self.session.port)

    def __enter__(self) -> "SessionServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
