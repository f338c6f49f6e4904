from __future__ import annotations

import webbrowser

from plannotator.core.config import ReviewConfig
from plannotator.core.logging.logger import get_logger
from plannotator.core.share import write_remote_share_link


def open_browser(url: str) -> bool:
    """Open ``url`` in the default browser; never raises."""

    try:
        return webbrowser.open(url)
    except webbrowser.Error:
        get_logger().warning("Could not open a browser for %s", url)
        return False


def handle_server_ready(url: str, is_remote: bool, port: int, *, plan: str, config: ReviewConfig) -> None:
    logger = get_logger()
    if not is_remote:
        logger.info("Plan review ready at %s", url)
        open_browser(url)
        return
    logger.info("Remote review server listening on port %s (forward it to reach %s)", port, url)
    if config.sharing_enabled:
        write_remote_share_link(plan, config.share_base_url)
