from __future__ import annotations

from dataclasses import dataclass

from plannotator.core.config import ReviewConfig

DEFAULT_REMOTE_PORT = 19432
LOCAL_HOST = "127.0.0.1"
REMOTE_HOST = "0.0.0.0"


@dataclass(frozen=True)
class BindTarget:
    host: str
    port: int
    is_remote: bool

    @property
    def ephemeral(self) -> bool:
        return self.port == 0


def resolve_bind(config: ReviewConfig) -> BindTarget:
    """Pick the listen address for a review session.

    Remote sessions sit behind a tunnel or port-forward, so they use a fixed
    port on every interface. Local sessions take an OS-assigned loopback port
    unless one was configured explicitly.
    """

    if config.remote:
        return BindTarget(host=REMOTE_HOST, port=config.port or DEFAULT_REMOTE_PORT, is_remote=True)
    return BindTarget(host=LOCAL_HOST, port=config.port or 0, is_remote=False)
