from __future__ import annotations

import logging

import pytest

from plannotator.core import share
from plannotator.core.errors import DecodeError
from plannotator.core.share import (
    format_size,
    generate_remote_share_url,
    read_share_link,
    write_remote_share_link,
)


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (0, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (2048, "2.0 KB"),
        (1536, "1.5 KB"),
        (200_000, "195 KB"),
        (102_912, "101 KB"),
    ],
)
def test_format_size(num_bytes, expected):
    assert format_size(num_bytes) == expected


def test_share_url_round_trips_plan():
    url = generate_remote_share_url("# Plan\n\nShip it", "https://share.example.com/")
    assert url.startswith("https://share.example.com/#")
    payload = read_share_link(url)
    assert payload.p == "# Plan\n\nShip it"
    assert payload.a == []


def test_share_url_uses_default_base():
    assert generate_remote_share_url("# Plan").startswith("https://share.plannotator.ai/#")


def test_read_share_link_accepts_bare_fragment():
    url = generate_remote_share_url("# Bare")
    assert read_share_link(url.split("#", 1)[1]).p == "# Bare"


def test_read_share_link_rejects_garbage():
    with pytest.raises(DecodeError):
        read_share_link("https://share.example.com/#not-a-payload")


def test_read_share_link_rejects_wrong_shape():
    from plannotator.core.codec.compress import compress

    with pytest.raises(DecodeError):
        read_share_link(compress({"plan": "missing p"}))


def test_write_share_link_logs_url_and_size(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.INFO, logger="plannotator"):
        url = write_remote_share_link("# Plan", "https://share.example.com")
    assert url is not None
    assert url in caplog.text
    assert " B)" in caplog.text


def test_write_share_link_swallows_failures(monkeypatch: pytest.MonkeyPatch):
    def boom(plan, base_url=None):
        raise RuntimeError("compression exploded")

    monkeypatch.setattr(share, "generate_remote_share_url", boom)
    assert write_remote_share_link("# Plan") is None
