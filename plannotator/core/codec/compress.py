"""Deflate-raw + base64url codec for share-link payloads.

The browser side uses ``CompressionStream('deflate-raw')`` with the same
alphabet, so strings produced here open in the share portal and vice versa.
"""
from __future__ import annotations

import base64
import binascii
import json
import zlib
from typing import Any

from plannotator.core.errors import DecodeError

# Negative wbits selects a raw stream: no zlib header, no adler32 trailer.
_RAW_DEFLATE_WBITS = -15


def compress(value: Any) -> str:
    payload = json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    compressor = zlib.compressobj(zlib.Z_BEST_COMPRESSION, zlib.DEFLATED, _RAW_DEFLATE_WBITS)
    compressed = compressor.compress(payload) + compressor.flush()
    return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")


def decompress(text: str) -> Any:
    padded = text.strip() + "=" * (-len(text.strip()) % 4)
    try:
        compressed = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError("Invalid or corrupted link: malformed encoding.") from exc

    decompressor = zlib.decompressobj(_RAW_DEFLATE_WBITS)
    try:
        payload = decompressor.decompress(compressed) + decompressor.flush()
    except zlib.error as exc:
        raise DecodeError("Invalid or corrupted link: bad compressed data.") from exc
    if not decompressor.eof:
        raise DecodeError("Invalid or corrupted link: truncated compressed data.")

    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError("Invalid or corrupted link: payload is not valid JSON.") from exc
