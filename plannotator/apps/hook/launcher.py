from __future__ import annotations

import json
import sys
import time
from typing import Any, Dict, TextIO

from plannotator.core.config import get_review_config
from plannotator.core.logging.logger import get_logger
from plannotator.server.browser import handle_server_ready
from plannotator.server.runner import SessionServer
from plannotator.server.session import Decision

# Lets the browser receive the decision response before the listener closes.
RESPONSE_GRACE_SECONDS = 1.5


def read_plan(stream: TextIO) -> str:
    event = json.loads(stream.read())
    plan = (event.get("tool_input") or {}).get("plan") if isinstance(event, dict) else None
    return plan if isinstance(plan, str) else ""


def hook_output(decision: Decision) -> Dict[str, Any]:
    if decision.approved:
        verdict: Dict[str, Any] = {"behavior": "allow"}
    else:
        verdict = {"behavior": "deny", "message": decision.feedback or "Plan changes requested"}
    return {
        "hookSpecificOutput": {
            "hookEventName": "PermissionRequest",
            "decision": verdict,
        }
    }


def main() -> int:
    logger = get_logger()
    try:
        plan = read_plan(sys.stdin)
    except json.JSONDecodeError:
        logger.error("Failed to parse hook event from stdin")
        return 1
    if not plan.strip():
        logger.error("No plan content in hook event")
        return 1

    config = get_review_config()
    server = SessionServer.start(
        plan,
        config.origin,
        on_ready=lambda url, is_remote, port: handle_server_ready(url, is_remote, port, plan=plan, config=config),
        config=config,
    )
    try:
        decision = server.wait_for_decision()
        time.sleep(RESPONSE_GRACE_SECONDS)
    finally:
        server.stop()

    print(json.dumps(hook_output(decision)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
