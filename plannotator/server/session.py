from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from plannotator.core.errors import SessionAborted, SessionAlreadyDecided


class SessionState(str, Enum):
    CREATED = "created"
    LISTENING = "listening"
    DECIDED = "decided"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Decision:
    approved: bool
    feedback: Optional[str] = None
    saved_path: Optional[Path] = None

    @classmethod
    def approve(cls, notes: str | None = None) -> "Decision":
        return cls(approved=True, feedback=notes or None)

    @classmethod
    def deny(cls, feedback: str) -> "Decision":
        return cls(approved=False, feedback=feedback)

    @property
    def status(self) -> str:
        return "approved" if self.approved else "denied"


class DecisionSlot:
    """Write-once holder for a session's decision.

    ``try_set`` and ``abort`` race under one lock, so exactly one terminal
    value ever lands in the slot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._decision: Decision | None = None
        self._aborted = False

    @property
    def decision(self) -> Decision | None:
        return self._decision

    @property
    def decided(self) -> bool:
        return self._decision is not None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def try_set(self, decision: Decision) -> bool:
        with self._lock:
            if self._ready.is_set():
                return False
            self._decision = decision
            self._ready.set()
            return True

    def abort(self) -> bool:
        with self._lock:
            if self._ready.is_set():
                return False
            self._aborted = True
            self._ready.set()
            return True

    def wait(self) -> Decision:
        self._ready.wait()
        if self._decision is None:
            raise SessionAborted()
        return self._decision


class CancelToken:
    """Lets hosting code abandon ``wait_for_decision`` from another thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def register(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return
        callback()

    def unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


@dataclass
class Session:
    plan: str
    origin: str
    slug: str
    is_remote: bool
    port: int = 0
    version: int = 1
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    slot: DecisionSlot = field(default_factory=DecisionSlot)
    listening: bool = False
    stopped: bool = False

    def __post_init__(self) -> None:
        if not self.plan or not self.plan.strip():
            raise ValueError("plan must be a non-empty string")
        if not self.origin or not self.origin.strip():
            raise ValueError("origin must be a non-empty string")

    @property
    def state(self) -> SessionState:
        if self.stopped:
            return SessionState.STOPPED
        if self.slot.decided:
            return SessionState.DECIDED
        if self.listening:
            return SessionState.LISTENING
        return SessionState.CREATED

    @property
    def decision(self) -> Decision | None:
        return self.slot.decision

    def record_decision(self, decision: Decision) -> Decision:
        if not self.slot.try_set(decision):
            raise SessionAlreadyDecided()
        return decision

    def abort(self) -> bool:
        return self.slot.abort()
